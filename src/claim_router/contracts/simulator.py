"""
Chain reader and wallet backed by ``LocalChain``.

``deploy_base_fixture`` lays out the Base claim path (fee locker, settlement
asset, Multicall3, router, CLAIM token) at the mainnet addresses, so the
default ``ClaimSettings`` point at it without overrides.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from eth_abi import decode
from eth_utils import keccak, to_checksum_address

from .base import addr
from .chain import LocalChain
from .distributor import FeeLocker, Multicall3
from .router import ClaimRouter
from .tokens import ERC20Token
from ..adapters.bases import ChainReader, WalletSigner
from ..adapters.evm.constants import (
    CLAIM_ROUTER_ADDRESS,
    CLAIM_TOKEN_ADDRESS,
    CLANKER_FEE_LOCKER_ADDRESS,
    DEFAULT_TAX_BPS,
    MULTICALL3_ADDRESS,
    TREASURY_ADDRESS,
    WETH_ADDRESS,
    ClaimSettings,
)
from ..adapters.evm.ERC20_ABI import get_erc20_abi
from ..adapters.evm.transactions import (
    decode_aggregate3,
    decode_output,
    encode_aggregate3,
    encode_available_fees_call,
    encode_call,
)
from ..engine.exceptions import (
    ConfirmationTimeoutError,
    ContractRevert,
    UpstreamReadError,
    UserRejectedError,
    WalletUnavailableError,
)
from ..schemas.transactions import EVMTransactionConfirmation, TokenMetadata, TransactionRequest

logger = logging.getLogger(__name__)


def local_address(label: str) -> str:
    """Deterministic checksum address derived from ``label``."""
    return to_checksum_address(keccak(text=label)[-20:])


class LocalChainReader(ChainReader):
    """
    ``ChainReader`` that answers every read with an ``eth_call`` against a
    ``LocalChain``. Receipts are available as soon as a transaction is mined.
    """

    def __init__(self, chain: LocalChain, settings: Optional[ClaimSettings] = None):
        self.chain = chain
        self.settings = settings or ClaimSettings()
        super().__init__(
            settlement_token=self.settings.settlement_token,
            settlement_symbol=self.settings.settlement_symbol,
            settlement_decimals=self.settings.settlement_decimals,
        )

    async def available_fees(self, fee_owner: str, token: str) -> int:
        try:
            data = self.chain.static_call(
                self.settings.distributor_address,
                encode_available_fees_call(fee_owner, token),
            )
        except ContractRevert as e:
            raise UpstreamReadError(f"availableFees({fee_owner}, {token}) failed: {e}") from e
        (amount,) = decode(["uint256"], data)
        return int(amount)

    async def available_fees_batch(self, fee_owner: str, tokens: Sequence[str]) -> Dict[str, int]:
        results: Dict[str, int] = {}
        size = self.settings.multicall_batch_size
        for start in range(0, len(tokens), size):
            chunk = list(tokens[start:start + size])
            calls = [
                (self.settings.distributor_address, True, encode_available_fees_call(fee_owner, token))
                for token in chunk
            ]
            try:
                returned = decode_aggregate3(
                    self.chain.static_call(self.settings.multicall_address, encode_aggregate3(calls))
                )
            except ContractRevert as e:
                logger.warning("Multicall batch of %d tokens failed: %s", len(chunk), e)
                results.update({token: 0 for token in chunk})
                continue
            for token, (success, payload) in zip(chunk, returned):
                results[token] = int(decode(["uint256"], payload)[0]) if success and len(payload) >= 32 else 0
        return results

    def _erc20_view(self, token: str, name: str, args: Sequence = ()):
        abi = get_erc20_abi()
        return decode_output(abi, name, self.chain.static_call(token, encode_call(abi, name, args)))[0]

    async def allowance(self, owner: str, spender: str, token: str) -> int:
        return int(self._erc20_view(token, "allowance", [owner, spender]))

    async def balance_of(self, token: str, account: str) -> int:
        return int(self._erc20_view(token, "balanceOf", [account]))

    async def _read_metadata(self, token: str) -> TokenMetadata:
        return TokenMetadata(
            symbol=self._erc20_view(token, "symbol"),
            decimals=int(self._erc20_view(token, "decimals")),
        )

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> EVMTransactionConfirmation:
        receipt = self.chain.get_receipt(tx_hash)
        if receipt is None:
            raise ConfirmationTimeoutError(
                f"Transaction {tx_hash} was not confirmed within {timeout:.0f}s",
                tx_hash=tx_hash,
            )
        return EVMTransactionConfirmation.from_receipt(receipt, tx_hash=tx_hash)


class LocalChainWallet(WalletSigner):
    """
    Wallet for one local account.

    Args:
        chain: Chain transactions are mined on.
        account: Signing account.
        reject: Descriptions of transactions the "user" declines
            (``"*"`` declines everything).
        chain_id: Chain the wallet starts on (default: ``chain.chain_id``).
    """

    def __init__(
        self,
        chain: LocalChain,
        account: str,
        reject: Sequence[str] = (),
        chain_id: Optional[int] = None,
    ):
        self.chain = chain
        self.account = to_checksum_address(account)
        self.reject = set(reject)
        self.sent: List[TransactionRequest] = []
        self._chain_id = chain.chain_id if chain_id is None else chain_id

    async def request_accounts(self) -> List[str]:
        return [self.account]

    async def chain_id(self) -> int:
        return self._chain_id

    async def switch_chain(self, chain_id: int) -> None:
        self._chain_id = chain_id

    async def send_transaction(self, tx: TransactionRequest) -> str:
        if "*" in self.reject or tx.description in self.reject:
            raise UserRejectedError()
        if self._chain_id != self.chain.chain_id:
            raise WalletUnavailableError(f"wallet is on chain {self._chain_id}, expected {self.chain.chain_id}")
        self.sent.append(tx)
        return self.chain.send_transaction(self.account, tx)


@dataclass
class LocalDeployment:
    """Handles to the contracts of a local claim path."""
    chain: LocalChain
    owner: str
    settings: ClaimSettings
    router: ClaimRouter
    locker: FeeLocker
    multicall: Multicall3
    weth: ERC20Token
    claim_token: ERC20Token
    tokens: Dict[str, ERC20Token] = field(default_factory=dict)

    def add_token(self, symbol: str, decimals: int = 18, address: Optional[str] = None) -> ERC20Token:
        token = ERC20Token(self.chain, address or local_address(f"token:{symbol}"), symbol, decimals)
        self.chain.deploy(token)
        self.tokens[token.address] = token
        return token

    def credit_fees(self, fee_owner: str, token: ERC20Token, amount: int) -> None:
        self.locker.store_fees(fee_owner, token.address, amount)

    def reader(self) -> LocalChainReader:
        return LocalChainReader(self.chain, self.settings)

    def wallet(self, account: str, **kwargs) -> LocalChainWallet:
        return LocalChainWallet(self.chain, account, **kwargs)

    def balance(self, token: ERC20Token, account: str) -> int:
        return token.balance_of(addr(account))


def deploy_base_fixture(
    owner: str,
    treasury: str = TREASURY_ADDRESS,
    tax_bps: int = DEFAULT_TAX_BPS,
    allow_distributor: bool = True,
    settings: Optional[ClaimSettings] = None,
) -> LocalDeployment:
    """
    Deploy the claim path on a fresh ``LocalChain``.

    Args:
        owner: Router admin.
        treasury: Router treasury.
        tax_bps: Initial router tax.
        allow_distributor: Allowlist the fee locker on the router.
        settings: Settings to hand out (default: mainnet defaults).
    """
    settings = settings or ClaimSettings()
    chain = LocalChain(chain_id=settings.chain_id)

    weth = chain.deploy(ERC20Token(chain, WETH_ADDRESS, "WETH", 18))
    claim_token = chain.deploy(ERC20Token(chain, CLAIM_TOKEN_ADDRESS, "CLAIM", 18))
    locker = chain.deploy(FeeLocker(chain, CLANKER_FEE_LOCKER_ADDRESS))
    multicall = chain.deploy(Multicall3(chain, MULTICALL3_ADDRESS))
    router = chain.deploy(ClaimRouter(chain, CLAIM_ROUTER_ADDRESS, owner=owner, treasury=treasury, tax_bps=tax_bps))

    if allow_distributor:
        chain.execute(owner, router.address, "set_distributor", locker.address, True)

    logger.debug("Deployed local claim path: router=%s locker=%s", router.address, locker.address)
    return LocalDeployment(
        chain=chain,
        owner=owner,
        settings=settings,
        router=router,
        locker=locker,
        multicall=multicall,
        weth=weth,
        claim_token=claim_token,
        tokens={weth.address: weth, claim_token.address: claim_token},
    )
