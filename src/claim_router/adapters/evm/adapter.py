"""
EVM chain reader over JSON-RPC.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from eth_abi import decode
from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted

from .constants import ClaimSettings
from .ERC20_ABI import get_balance_abi, get_metadata_abi
from .ROUTER_ABI import get_claim_router_abi, get_fee_locker_abi, get_multicall3_abi
from .transactions import encode_available_fees_call
from .verifies import query_erc20_allowance
from ..bases import ChainReader
from ...engine.exceptions import ConfirmationTimeoutError, UpstreamReadError
from ...schemas.transactions import EVMTransactionConfirmation, TokenMetadata

logger = logging.getLogger(__name__)


class EVMAdapter(ChainReader):
    """
    Chain reader backed by ``AsyncWeb3``.

    Reads the fee distributor directly or through Multicall3, resolves token
    metadata, allowances and balances, and waits for receipts.

    Usage:
        adapter = EVMAdapter(ClaimSettings.from_env())
        weth_fees = await adapter.available_fees(wallet, adapter.settlement_token)
        fees = await adapter.available_fees_batch(wallet, token_addresses)

    Args:
        settings: Claim settings (default: ``ClaimSettings.from_env()``).
        web3: Optional pre-built AsyncWeb3 instance, mainly for tests.
    """

    def __init__(self, settings: Optional[ClaimSettings] = None, web3: Optional[AsyncWeb3] = None):
        self.settings = settings or ClaimSettings.from_env()
        super().__init__(
            settlement_token=self.settings.settlement_token,
            settlement_symbol=self.settings.settlement_symbol,
            settlement_decimals=self.settings.settlement_decimals,
        )
        self._web3 = web3

    def _get_web3_instance(self) -> AsyncWeb3:
        """
        Create (once) and return the AsyncWeb3 instance for the claim chain.

        Returns:
            AsyncWeb3: Instance connected to ``settings.rpc_url``.
        """
        if self._web3 is None:
            self._web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
                self.settings.rpc_url,
                request_kwargs={"timeout": self.settings.request_timeout}
            ))
        return self._web3

    async def available_fees(self, fee_owner: str, token: str) -> int:
        w3 = self._get_web3_instance()
        locker = w3.eth.contract(
            address=w3.to_checksum_address(self.settings.distributor_address),
            abi=get_fee_locker_abi(),
        )
        try:
            fees = await locker.functions.availableFees(
                w3.to_checksum_address(fee_owner),
                w3.to_checksum_address(token),
            ).call()
        except Exception as e:
            raise UpstreamReadError(f"availableFees({fee_owner}, {token}) failed: {e}") from e
        return int(fees)

    async def available_fees_batch(self, fee_owner: str, tokens: Sequence[str]) -> Dict[str, int]:
        results: Dict[str, int] = {}
        if not tokens:
            return results

        size = self.settings.multicall_batch_size
        for start in range(0, len(tokens), size):
            chunk = list(tokens[start:start + size])
            results.update(await self._available_fees_chunk(fee_owner, chunk))
        return results

    async def _available_fees_chunk(self, fee_owner: str, tokens: List[str]) -> Dict[str, int]:
        w3 = self._get_web3_instance()
        distributor = w3.to_checksum_address(self.settings.distributor_address)
        multicall = w3.eth.contract(
            address=w3.to_checksum_address(self.settings.multicall_address),
            abi=get_multicall3_abi(),
        )
        calls = [(distributor, True, encode_available_fees_call(fee_owner, token)) for token in tokens]

        logger.debug("Multicall availableFees for %d tokens", len(tokens))
        try:
            returned = await multicall.functions.aggregate3(calls).call()
        except Exception as e:
            logger.warning("Multicall batch of %d tokens failed: %s", len(tokens), e)
            return {token: 0 for token in tokens}

        results: Dict[str, int] = {}
        for token, (success, data) in zip(tokens, returned):
            if not success or len(data) < 32:
                logger.debug("availableFees read failed for %s", token)
                results[token] = 0
                continue
            (amount,) = decode(["uint256"], bytes(data))
            results[token] = int(amount)
        return results

    async def allowance(self, owner: str, spender: str, token: str) -> int:
        return await query_erc20_allowance(self._get_web3_instance(), token, owner, spender)

    async def balance_of(self, token: str, account: str) -> int:
        w3 = self._get_web3_instance()
        contract = w3.eth.contract(address=w3.to_checksum_address(token), abi=get_balance_abi())
        return int(await contract.functions.balanceOf(w3.to_checksum_address(account)).call())

    async def _read_metadata(self, token: str) -> TokenMetadata:
        w3 = self._get_web3_instance()
        contract = w3.eth.contract(address=w3.to_checksum_address(token), abi=get_metadata_abi())
        symbol, decimals = await asyncio.gather(
            contract.functions.symbol().call(),
            contract.functions.decimals().call(),
        )
        return TokenMetadata(symbol=symbol, decimals=int(decimals))

    async def router_tax_bps(self) -> int:
        """Current ``claimTaxBps`` of the configured router."""
        w3 = self._get_web3_instance()
        router = w3.eth.contract(
            address=w3.to_checksum_address(self.settings.router_address),
            abi=get_claim_router_abi(),
        )
        return int(await router.functions.claimTaxBps().call())

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> EVMTransactionConfirmation:
        w3 = self._get_web3_instance()
        try:
            receipt = await w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=timeout,
                poll_latency=self.settings.receipt_poll_latency,
            )
        except TimeExhausted as e:
            raise ConfirmationTimeoutError(
                f"Transaction {tx_hash} was not confirmed within {timeout:.0f}s",
                tx_hash=tx_hash,
            ) from e
        return EVMTransactionConfirmation.from_receipt(receipt, tx_hash=tx_hash)
