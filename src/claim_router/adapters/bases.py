"""
Abstract Base Classes for Chain and Wallet Adapters

Defines the interfaces the claim flow consumes. Concrete implementations live
in ``adapters.evm`` (web3 over JSON-RPC, EIP-1193 wallets, local keys) and in
``contracts.simulator`` (in-process chain).

Core Classes:
    - WalletSigner: account request, chain id query/switch, transaction submission
    - ChainReader: distributor reads, token metadata, allowances, receipts
    - ClaimReadApi: read surface offered to the UI collaborator

All implementations must inherit from these base classes and implement the
required abstract methods.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from ..schemas.transactions import EVMTransactionConfirmation, TokenMetadata, TransactionRequest
from ..schemas.https import AllowanceResponse, TokensResponse

logger = logging.getLogger(__name__)


class WalletSigner(ABC):
    """
    Abstract wallet capability.

    The orchestrator treats a signer as opaque: it never sees keys, only
    accounts, the active chain, and transaction hashes.

    Key Responsibilities:
    1. request_accounts: Ask the user for account access
    2. chain_id / switch_chain: Keep the wallet on the claim chain
    3. send_transaction: Have the user sign and broadcast a transaction

    Implementations raise ``UserRejectedError`` when the user declines and
    ``WalletUnavailableError`` when the provider cannot be reached.
    """

    @abstractmethod
    async def request_accounts(self) -> List[str]:
        """
        Request account access.

        Returns:
            List[str]: Authorized account addresses, primary first.
        """
        pass

    @abstractmethod
    async def chain_id(self) -> int:
        """Return the chain id the wallet is currently connected to."""
        pass

    @abstractmethod
    async def switch_chain(self, chain_id: int) -> None:
        """Switch the wallet to ``chain_id``, adding the chain when supported."""
        pass

    @abstractmethod
    async def send_transaction(self, tx: TransactionRequest) -> str:
        """
        Sign and broadcast ``tx`` from the connected account.

        Suspends until the user approves or rejects in the wallet.

        Returns:
            str: 0x-prefixed transaction hash.
        """
        pass


def needs_approval(allowance: int, required_amount: Optional[int] = None) -> bool:
    """
    Decide whether an approval must precede a claim.

    With a known required amount, approval is needed when the allowance is
    strictly below it; otherwise only when the allowance is exactly zero.
    """
    if required_amount is not None:
        return allowance < required_amount
    return allowance == 0


class ChainReader(ABC):
    """
    Abstract read access to the claim chain.

    Token metadata is cached per lowercase address. The settlement asset is
    answered without a chain read; unreadable tokens fall back to
    ``(address[:8], 18)`` and are not cached, so a later call retries.
    """

    def __init__(self, settlement_token: str, settlement_symbol: str = "WETH", settlement_decimals: int = 18):
        self.settlement_token = settlement_token
        self._metadata_cache: Dict[str, TokenMetadata] = {
            settlement_token.lower(): TokenMetadata(symbol=settlement_symbol, decimals=settlement_decimals),
        }

    @abstractmethod
    async def available_fees(self, fee_owner: str, token: str) -> int:
        """
        Read the distributor's ``availableFees(fee_owner, token)``.

        Raises:
            UpstreamReadError: If the read fails.
        """
        pass

    @abstractmethod
    async def available_fees_batch(self, fee_owner: str, tokens: Sequence[str]) -> Dict[str, int]:
        """
        Batched ``availableFees`` reads.

        Failed entries, and every entry of a failed batch, read as zero.

        Returns:
            Dict[str, int]: Amount per token, keyed exactly as given.
        """
        pass

    @abstractmethod
    async def allowance(self, owner: str, spender: str, token: str) -> int:
        """Read ``token.allowance(owner, spender)``; errors propagate."""
        pass

    @abstractmethod
    async def balance_of(self, token: str, account: str) -> int:
        """Read ``token.balanceOf(account)``; errors propagate."""
        pass

    @abstractmethod
    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> EVMTransactionConfirmation:
        """
        Wait for one confirmation of ``tx_hash``.

        Raises:
            ConfirmationTimeoutError: If no receipt is observed within ``timeout`` seconds.
        """
        pass

    @abstractmethod
    async def _read_metadata(self, token: str) -> TokenMetadata:
        pass

    async def token_metadata(self, token: str) -> TokenMetadata:
        key = token.lower()
        cached = self._metadata_cache.get(key)
        if cached is not None:
            return cached
        try:
            metadata = await self._read_metadata(token)
        except Exception as e:
            logger.warning("Failed to fetch metadata for %s: %s", token, e)
            return TokenMetadata(symbol=token[:8], decimals=18)
        self._metadata_cache[key] = metadata
        return metadata

    async def check_allowance(
        self,
        owner: str,
        spender: str,
        token: str,
        required_amount: Optional[int] = None,
    ) -> AllowanceResponse:
        """
        Allowance gate.

        Any read failure is reported as ``needs_approval=True`` with a zero
        allowance, never as "no approval needed".
        """
        try:
            current = await self.allowance(owner, spender, token)
        except Exception as e:
            logger.warning("Allowance read failed for %s (owner %s): %s", token, owner, e)
            return AllowanceResponse(allowance="0", needs_approval=True)
        return AllowanceResponse(
            allowance=str(current),
            needs_approval=needs_approval(current, required_amount),
        )


class ClaimReadApi(ABC):
    """
    Read surface consumed by the orchestrator and the UI collaborator.

    Implemented in-process by ``servers.tokens.TokensService`` and over HTTP
    by ``clients.http_client.ClaimApiClient``.
    """

    @abstractmethod
    async def resolve_claimable(self, wallet: str, force_refresh: bool = False) -> TokensResponse:
        """Tokens deployed by ``wallet`` and its current claimable rewards."""
        pass

    @abstractmethod
    async def check_allowance(self, wallet: str, token: str, amount: Optional[int] = None) -> AllowanceResponse:
        """Router allowance of ``wallet`` for ``token``."""
        pass

    @abstractmethod
    async def invalidate_cache(self, wallet: str) -> None:
        """Drop any cached payload for ``wallet``."""
        pass
