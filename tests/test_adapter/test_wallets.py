"""
Wallet signer tests: EIP-1193 providers and the private-key signer.
"""

import asyncio
from unittest.mock import Mock

import pytest
from eth_account import Account

from test_mocks import (
    MOCK_BASE_FEE,
    MOCK_GAS_ESTIMATE,
    MOCK_OWNER_ADDRESS,
    MOCK_OWNER_PRIVATE_KEY,
    MOCK_PRIORITY_FEE,
    MOCK_TOKEN_ADDRESS,
    MOCK_TX_HASH,
    MockWeb3Provider,
)

from claim_router.adapters.evm.constants import BASE_CHAIN_ID, BASE_CHAIN_PARAMS
from claim_router.adapters.evm.transactions import build_approve_transaction
from claim_router.adapters.evm.wallets import (
    BrowserWallet,
    FrameWallet,
    LocalAccountWallet,
    is_user_rejection,
    select_wallet_provider,
)
from claim_router.engine.exceptions import UserRejectedError, WalletUnavailableError


class ProviderError(Exception):
    def __init__(self, code, message="provider error"):
        super().__init__(message)
        self.code = code


class FakeProvider:
    """EIP-1193 ``request`` coroutine with scripted failures per method."""

    def __init__(self, chain_id=BASE_CHAIN_ID, accounts=(MOCK_OWNER_ADDRESS,), errors=None):
        self.chain_id = chain_id
        self.accounts = list(accounts)
        self.errors = dict(errors or {})
        self.calls = []

    async def __call__(self, method, params=None):
        self.calls.append((method, params))
        error = self.errors.pop(method, None)
        if error is not None:
            raise error
        if method == "eth_requestAccounts":
            return self.accounts
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            self.chain_id = int(params[0]["chainId"], 16)
            return None
        if method == "wallet_addEthereumChain":
            self.chain_id = int(params[0]["chainId"], 16)
            return None
        if method == "eth_sendTransaction":
            return MOCK_TX_HASH.upper().replace("0X", "0x")
        raise AssertionError(f"unexpected method {method}")

    def methods(self):
        return [method for method, _ in self.calls]


def approve_tx():
    return build_approve_transaction(MOCK_TOKEN_ADDRESS, MOCK_OWNER_ADDRESS, 1)


class TestRejectionDetection:

    def test_code_4001(self):
        assert is_user_rejection(ProviderError(4001))

    def test_message_keywords(self):
        assert is_user_rejection(Exception("User denied transaction signature"))
        assert is_user_rejection(Exception("Request cancelled"))

    def test_other_errors(self):
        assert not is_user_rejection(ProviderError(-32603, "internal error"))


class TestEip1193Wallet:

    @pytest.mark.asyncio
    async def test_request_accounts_sets_account(self):
        wallet = FrameWallet(FakeProvider())
        assert await wallet.request_accounts() == [MOCK_OWNER_ADDRESS]
        assert wallet.account == MOCK_OWNER_ADDRESS

    @pytest.mark.asyncio
    async def test_empty_accounts_is_unavailable(self):
        wallet = FrameWallet(FakeProvider(accounts=()))
        with pytest.raises(WalletUnavailableError):
            await wallet.request_accounts()

    @pytest.mark.asyncio
    async def test_send_transaction_connects_and_switches_chain(self):
        provider = FakeProvider(chain_id=1)
        wallet = FrameWallet(provider)

        tx_hash = await wallet.send_transaction(approve_tx())

        assert tx_hash == MOCK_TX_HASH
        assert provider.methods() == [
            "eth_requestAccounts",
            "eth_chainId",
            "wallet_switchEthereumChain",
            "eth_sendTransaction",
        ]
        params = provider.calls[-1][1][0]
        assert params["from"] == MOCK_OWNER_ADDRESS
        assert params["value"] == "0x0"

    @pytest.mark.asyncio
    async def test_rejection_becomes_user_rejected(self):
        provider = FakeProvider(errors={"eth_sendTransaction": ProviderError(4001, "User rejected the request.")})
        wallet = FrameWallet(provider)

        with pytest.raises(UserRejectedError, match="Transaction rejected by user"):
            await wallet.send_transaction(approve_tx())

    @pytest.mark.asyncio
    async def test_other_provider_errors_propagate(self):
        provider = FakeProvider(errors={"eth_sendTransaction": ProviderError(-32000, "insufficient funds")})
        wallet = FrameWallet(provider)

        with pytest.raises(ProviderError):
            await wallet.send_transaction(approve_tx())


class TestBrowserWallet:

    @pytest.mark.asyncio
    async def test_unknown_chain_is_added(self):
        provider = FakeProvider(chain_id=1, errors={"wallet_switchEthereumChain": ProviderError(4902)})
        wallet = BrowserWallet(provider)

        await wallet.switch_chain(BASE_CHAIN_ID)

        assert provider.calls[-1] == ("wallet_addEthereumChain", [BASE_CHAIN_PARAMS])
        assert await wallet.chain_id() == BASE_CHAIN_ID

    @pytest.mark.asyncio
    async def test_frame_wallet_does_not_add_chains(self):
        provider = FakeProvider(chain_id=1, errors={"wallet_switchEthereumChain": ProviderError(4902)})
        wallet = FrameWallet(provider)

        with pytest.raises(ProviderError):
            await wallet.switch_chain(BASE_CHAIN_ID)

    @pytest.mark.asyncio
    async def test_rejected_switch(self):
        provider = FakeProvider(chain_id=1, errors={"wallet_switchEthereumChain": ProviderError(4001)})
        wallet = BrowserWallet(provider)

        with pytest.raises(UserRejectedError):
            await wallet.switch_chain(BASE_CHAIN_ID)


class TestProviderSelection:

    def test_frame_wins(self):
        wallet = select_wallet_provider(FakeProvider(), FakeProvider())
        assert isinstance(wallet, FrameWallet)

    def test_browser_outside_frame(self):
        assert isinstance(select_wallet_provider(None, FakeProvider()), BrowserWallet)

    def test_no_provider(self):
        with pytest.raises(WalletUnavailableError):
            select_wallet_provider(None, None)


class TestLocalAccountWallet:

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("EVM_PRIVATE_KEY", raising=False)
        with pytest.raises(WalletUnavailableError, match="Private key is required"):
            LocalAccountWallet(MockWeb3Provider())

    @pytest.mark.asyncio
    async def test_signs_and_broadcasts(self):
        mock_web3 = MockWeb3Provider(tx_count=3)
        chain_id = asyncio.get_running_loop().create_future()
        chain_id.set_result(BASE_CHAIN_ID)
        mock_web3.eth.chain_id = chain_id
        mock_web3.eth.account = Mock(wraps=Account)
        wallet = LocalAccountWallet(mock_web3, private_key=MOCK_OWNER_PRIVATE_KEY)

        tx_hash = await wallet.send_transaction(approve_tx())

        assert wallet.account == MOCK_OWNER_ADDRESS
        assert tx_hash == MOCK_TX_HASH
        mock_web3.eth.get_transaction_count.assert_awaited_once_with(MOCK_OWNER_ADDRESS)
        mock_web3.eth.send_raw_transaction.assert_awaited_once()
        signed_params = mock_web3.eth.account.sign_transaction.call_args.args[0]
        assert signed_params["nonce"] == 3
        assert signed_params["chainId"] == BASE_CHAIN_ID
        assert signed_params["gas"] == int(MOCK_GAS_ESTIMATE * 1.1)
        assert signed_params["maxPriorityFeePerGas"] == MOCK_PRIORITY_FEE
        assert signed_params["maxFeePerGas"] == MOCK_BASE_FEE * 2 + MOCK_PRIORITY_FEE
