"""
Wallet session lifecycle tests.
"""

import asyncio

import pytest

from claim_router.adapters.evm.constants import BASE_CHAIN_ID
from claim_router.adapters.evm.wallets import BrowserWallet, FrameWallet
from claim_router.clients.session import ClaimSession
from claim_router.schemas.bases import AppStatus

ACCOUNT = "0x00000000000000000000000000000000000000aa"


class Provider:
    """EIP-1193 request coroutine for a wallet holding ``ACCOUNT``."""

    def __init__(self, chain_id=BASE_CHAIN_ID, accounts=(ACCOUNT,), hang=False):
        self.chain_id = chain_id
        self.accounts = list(accounts)
        self.hang = hang
        self.methods = []

    async def __call__(self, method, params=None):
        self.methods.append(method)
        if self.hang:
            await asyncio.sleep(10)
        if method == "eth_requestAccounts":
            return self.accounts
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            self.chain_id = int(params[0]["chainId"], 16)
            return None
        raise AssertionError(f"unexpected method {method}")


async def frame_context():
    return {"user": {"fid": 1}}


async def slow_probe():
    await asyncio.sleep(10)


class TestBoot:

    @pytest.mark.asyncio
    async def test_without_probe(self):
        session = ClaimSession(browser_request=Provider())

        assert await session.boot() == AppStatus.NOT_IN_FRAME
        assert session.in_frame is False
        assert not session.is_connected

    @pytest.mark.asyncio
    async def test_probe_timeout_means_not_in_frame(self):
        session = ClaimSession(frame_request=Provider(), sdk_timeout=0.01)

        assert await session.boot(slow_probe) == AppStatus.NOT_IN_FRAME

    @pytest.mark.asyncio
    async def test_empty_context_means_not_in_frame(self):
        async def no_context():
            return None

        session = ClaimSession(frame_request=Provider())

        assert await session.boot(no_context) == AppStatus.NOT_IN_FRAME

    @pytest.mark.asyncio
    async def test_frame_connects_automatically(self):
        session = ClaimSession(frame_request=Provider(), browser_request=Provider())

        assert await session.boot(frame_context) == AppStatus.READY
        assert session.address == ACCOUNT
        assert isinstance(session.signer, FrameWallet)
        assert session.frame_context == {"user": {"fid": 1}}

    @pytest.mark.asyncio
    async def test_frame_wallet_timeout(self):
        session = ClaimSession(frame_request=Provider(hang=True), wallet_timeout=0.01)

        assert await session.boot(frame_context) == AppStatus.ERROR
        assert session.error == "No wallet accounts available"

    @pytest.mark.asyncio
    async def test_frame_wallet_without_accounts(self):
        session = ClaimSession(frame_request=Provider(accounts=()))

        assert await session.boot(frame_context) == AppStatus.ERROR
        assert session.error == "Wallet returned no accounts"

    @pytest.mark.asyncio
    async def test_frame_sdk_error_means_not_in_frame(self):
        async def broken_sdk():
            raise RuntimeError("sdk not loaded")

        session = ClaimSession(frame_request=Provider(), browser_request=Provider())

        assert await session.boot(broken_sdk) == AppStatus.NOT_IN_FRAME
        assert session.in_frame is False

    @pytest.mark.asyncio
    async def test_frame_provider_error_is_reported(self):
        async def crashing_provider(method, params=None):
            raise RuntimeError("bridge disconnected")

        session = ClaimSession(frame_request=crashing_provider)

        assert await session.boot(frame_context) == AppStatus.ERROR
        assert session.error == "bridge disconnected"
        assert not session.is_connected


class TestConnect:

    @pytest.mark.asyncio
    async def test_browser_wallet_switches_chain(self):
        provider = Provider(chain_id=1)
        session = ClaimSession(browser_request=provider)
        await session.boot()

        assert await session.connect() == ACCOUNT
        assert session.status == AppStatus.READY
        assert isinstance(session.signer, BrowserWallet)
        assert provider.chain_id == BASE_CHAIN_ID
        assert "wallet_switchEthereumChain" in provider.methods

    @pytest.mark.asyncio
    async def test_browser_wallet_on_right_chain(self):
        provider = Provider()
        session = ClaimSession(browser_request=provider)
        await session.boot()

        await session.connect()

        assert "wallet_switchEthereumChain" not in provider.methods

    @pytest.mark.asyncio
    async def test_no_wallet_installed(self):
        session = ClaimSession()
        await session.boot()

        assert await session.connect() is None
        assert session.status == AppStatus.NOT_IN_FRAME
        assert session.error == "No wallet found. Please install MetaMask or another wallet extension."

    @pytest.mark.asyncio
    async def test_signer_is_reused(self):
        session = ClaimSession(browser_request=Provider())
        await session.boot()

        await session.connect()
        signer = session.signer
        session.disconnect()
        await session.connect()

        assert session.signer is signer

    @pytest.mark.asyncio
    async def test_disconnect(self):
        session = ClaimSession(browser_request=Provider())
        await session.boot()
        await session.connect()

        session.disconnect()

        assert session.address is None
        assert session.status == AppStatus.NOT_IN_FRAME

    @pytest.mark.asyncio
    async def test_retry_in_frame_keeps_error(self):
        provider = Provider(accounts=())
        session = ClaimSession(frame_request=provider)
        await session.boot(frame_context)

        assert await session.retry() == AppStatus.ERROR

        provider.accounts = [ACCOUNT]
        assert await session.retry() == AppStatus.READY
