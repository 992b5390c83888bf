"""
Wallet Signers

EIP-1193 providers (the host frame's provider, or an injected browser
wallet) and a local private-key signer for headless use.

An EIP-1193 provider is represented by its ``request`` coroutine::

    async def request(method: str, params: list | None = None) -> Any

Provider errors are expected to carry the EIP-1193 ``code`` attribute when
there is one (4001 user rejection, 4902 unknown chain).
"""

import logging
from typing import Any, Awaitable, Callable, List, Optional

from eth_account import Account
from web3 import AsyncWeb3

from .constants import BASE_CHAIN_ID, BASE_CHAIN_PARAMS, get_private_key_from_env
from ..bases import WalletSigner
from ...engine.exceptions import UserRejectedError, WalletUnavailableError
from ...schemas.transactions import TransactionRequest, hexify

logger = logging.getLogger(__name__)

RequestFunc = Callable[[str, Optional[list]], Awaitable[Any]]

USER_REJECTED_CODE = 4001
UNRECOGNIZED_CHAIN_CODE = 4902


def is_user_rejection(error: BaseException) -> bool:
    """
    Whether a provider error means the user declined.

    EIP-1193 code 4001, or a message mentioning a rejection, denial or
    cancellation.
    """
    if getattr(error, "code", None) == USER_REJECTED_CODE:
        return True
    message = str(error).lower()
    return any(word in message for word in ("rejected", "denied", "cancelled"))


class Eip1193Wallet(WalletSigner):
    """
    Signer over an EIP-1193 ``request`` coroutine.

    Args:
        request: Provider request coroutine.
        target_chain_id: Chain every transaction must be sent on.
    """

    def __init__(self, request: RequestFunc, target_chain_id: int = BASE_CHAIN_ID):
        self._request_fn = request
        self.target_chain_id = target_chain_id
        self.account: Optional[str] = None

    async def _request(self, method: str, params: Optional[list] = None) -> Any:
        try:
            return await self._request_fn(method, params)
        except (UserRejectedError, WalletUnavailableError):
            raise
        except Exception as e:
            if is_user_rejection(e):
                raise UserRejectedError() from e
            raise

    async def request_accounts(self) -> List[str]:
        accounts = await self._request("eth_requestAccounts")
        if not accounts:
            raise WalletUnavailableError("Wallet returned no accounts")
        self.account = accounts[0]
        return list(accounts)

    async def chain_id(self) -> int:
        return int(await self._request("eth_chainId"), 16)

    async def switch_chain(self, chain_id: int) -> None:
        await self._request("wallet_switchEthereumChain", [{"chainId": hex(chain_id)}])

    async def send_transaction(self, tx: TransactionRequest) -> str:
        if self.account is None:
            await self.request_accounts()
        if await self.chain_id() != self.target_chain_id:
            logger.info("Switching wallet to chain %s", self.target_chain_id)
            await self.switch_chain(self.target_chain_id)

        logger.debug("eth_sendTransaction %s to %s", tx.description, tx.to)
        tx_hash = await self._request("eth_sendTransaction", [tx.to_rpc_params(self.account)])
        return hexify(tx_hash)


class FrameWallet(Eip1193Wallet):
    """Provider supplied by the host frame."""


class BrowserWallet(Eip1193Wallet):
    """
    Injected browser wallet.

    Unlike the frame provider, a browser wallet may not know the claim
    chain yet; an unrecognized-chain error (4902) is answered by adding it.
    """

    async def switch_chain(self, chain_id: int) -> None:
        try:
            await super().switch_chain(chain_id)
        except UserRejectedError:
            raise
        except Exception as e:
            if getattr(e, "code", None) != UNRECOGNIZED_CHAIN_CODE or chain_id != BASE_CHAIN_ID:
                raise
            logger.info("Adding chain %s to browser wallet", chain_id)
            await self._request("wallet_addEthereumChain", [BASE_CHAIN_PARAMS])


class LocalAccountWallet(WalletSigner):
    """
    Headless signer holding a private key.

    Transactions are built against the RPC node: nonce, gas estimate with a
    10% buffer, and EIP-1559 fees with a legacy gas-price fallback.

    Args:
        w3: AsyncWeb3 instance for the claim chain.
        private_key: Signing key (default: ``EVM_PRIVATE_KEY``).
    """

    def __init__(self, w3: AsyncWeb3, private_key: Optional[str] = None):
        private_key = private_key or get_private_key_from_env()
        if not private_key:
            raise WalletUnavailableError("Private key is required for signing.")
        self.w3 = w3
        self._private_key = private_key
        self.account = Account.from_key(private_key).address

    async def request_accounts(self) -> List[str]:
        return [self.account]

    async def chain_id(self) -> int:
        return await self.w3.eth.chain_id

    async def switch_chain(self, chain_id: int) -> None:
        current = await self.chain_id()
        if current != chain_id:
            raise WalletUnavailableError(f"RPC node serves chain {current}, cannot switch to {chain_id}")

    async def send_transaction(self, tx: TransactionRequest) -> str:
        w3 = self.w3
        tx_params = {
            "chainId": await w3.eth.chain_id,
            "from": self.account,
            "to": w3.to_checksum_address(tx.to),
            "data": tx.data,
            "value": tx.value,
            "nonce": await w3.eth.get_transaction_count(self.account),
        }

        try:
            gas_estimate = await w3.eth.estimate_gas({"from": self.account, "to": tx_params["to"], "data": tx.data})
            tx_params["gas"] = int(gas_estimate * 1.1)
        except Exception as e:
            logger.warning("Gas estimation failed for %s, using fallback limit: %s", tx.description, e)
            tx_params["gas"] = 300000

        try:
            fee_history = await w3.eth.fee_history(1, "latest", [25.0])
            base_fee = fee_history["baseFeePerGas"][-1]
            priority_fee = fee_history["reward"][0][0]
            tx_params["maxPriorityFeePerGas"] = priority_fee
            tx_params["maxFeePerGas"] = (base_fee * 2) + priority_fee
        except Exception:
            tx_params["gasPrice"] = await w3.eth.gas_price

        signed_tx = w3.eth.account.sign_transaction(tx_params, self._private_key)
        tx_hash = await w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        return hexify(tx_hash)


def select_wallet_provider(
    frame_request: Optional[RequestFunc] = None,
    browser_request: Optional[RequestFunc] = None,
    target_chain_id: int = BASE_CHAIN_ID,
) -> Eip1193Wallet:
    """
    Pick the wallet the session signs with: the frame provider when running
    inside a host frame, otherwise the injected browser wallet.

    Raises:
        WalletUnavailableError: If neither provider is present.
    """
    if frame_request is not None:
        return FrameWallet(frame_request, target_chain_id)
    if browser_request is not None:
        return BrowserWallet(browser_request, target_chain_id)
    raise WalletUnavailableError("No wallet provider available")
