"""
Wallet session lifecycle.

A session boots by probing the host frame. Inside a frame it connects the
frame's wallet automatically; outside it waits in ``not_in_frame`` until the
user connects a browser wallet. The wallet provider is selected once and
reused for every transaction of the session.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from ..adapters.evm.constants import BASE_CHAIN_ID
from ..adapters.evm.wallets import Eip1193Wallet, RequestFunc, select_wallet_provider
from ..engine.exceptions import ClaimRouterError, WalletUnavailableError
from ..schemas.bases import AppStatus

logger = logging.getLogger(__name__)

SDK_TIMEOUT = 5.0
WALLET_TIMEOUT = 5.0

FrameProbe = Callable[[], Awaitable[Any]]


class ClaimSession:
    """
    Session state: app status, selected wallet and connected address.

    Args:
        frame_request: EIP-1193 request coroutine of the host frame, if any.
        browser_request: EIP-1193 request coroutine of an injected wallet, if any.
        target_chain_id: Chain the session claims on.
        sdk_timeout: Seconds to wait for the frame probe.
        wallet_timeout: Seconds to wait for the frame wallet's accounts.
    """

    def __init__(
        self,
        frame_request: Optional[RequestFunc] = None,
        browser_request: Optional[RequestFunc] = None,
        target_chain_id: int = BASE_CHAIN_ID,
        sdk_timeout: float = SDK_TIMEOUT,
        wallet_timeout: float = WALLET_TIMEOUT,
    ):
        self._frame_request = frame_request
        self._browser_request = browser_request
        self.target_chain_id = target_chain_id
        self.sdk_timeout = sdk_timeout
        self.wallet_timeout = wallet_timeout

        self.status = AppStatus.BOOTING
        self.in_frame = False
        self.frame_context: Any = None
        self.signer: Optional[Eip1193Wallet] = None
        self.address: Optional[str] = None
        self.error: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.address is not None

    def _select_signer(self) -> Eip1193Wallet:
        if self.signer is None:
            self.signer = select_wallet_provider(
                self._frame_request if self.in_frame else None,
                None if self.in_frame else self._browser_request,
                self.target_chain_id,
            )
        return self.signer

    def _fail(self, message: str) -> None:
        logger.warning("Wallet session error: %s", message)
        self.error = message
        self.status = AppStatus.ERROR if self.in_frame else AppStatus.NOT_IN_FRAME

    async def boot(self, frame_probe: Optional[FrameProbe] = None) -> AppStatus:
        """
        Probe the host frame and, inside one, connect its wallet.

        Returns:
            AppStatus: ``ready``, ``not_in_frame`` or ``error``.
        """
        self.status = AppStatus.BOOTING
        context = None
        if frame_probe is not None:
            try:
                context = await asyncio.wait_for(frame_probe(), timeout=self.sdk_timeout)
            except asyncio.TimeoutError:
                logger.info("Frame probe did not answer within %.0fs", self.sdk_timeout)
            except Exception as e:
                logger.warning("Frame probe failed: %s", e)

        if not context:
            logger.info("Not in a frame, waiting for a browser wallet")
            self.in_frame = False
            self.status = AppStatus.NOT_IN_FRAME
            return self.status

        self.in_frame = True
        self.frame_context = context
        self.status = AppStatus.CONNECTING
        try:
            signer = self._select_signer()
            accounts = await asyncio.wait_for(signer.request_accounts(), timeout=self.wallet_timeout)
        except asyncio.TimeoutError:
            self._fail("No wallet accounts available")
            return self.status
        except ClaimRouterError as e:
            self._fail(str(e))
            return self.status
        except Exception as e:
            logger.exception("Wallet provider error during boot")
            self._fail(str(e) or "Failed to connect wallet")
            return self.status

        self._set_connected(accounts)
        return self.status

    def _set_connected(self, accounts: List[str]) -> None:
        self.address = accounts[0]
        self.error = None
        self.status = AppStatus.READY
        logger.info("Wallet connected: %s", self.address)

    async def connect(self) -> Optional[str]:
        """
        Connect the session's wallet, switching a browser wallet to the
        claim chain.

        Returns:
            Connected address, or None with ``error`` set.
        """
        self.status = AppStatus.CONNECTING
        self.error = None
        try:
            signer = self._select_signer()
            accounts = await signer.request_accounts()
            if not self.in_frame and await signer.chain_id() != self.target_chain_id:
                await signer.switch_chain(self.target_chain_id)
        except WalletUnavailableError:
            self._fail("No wallet found. Please install MetaMask or another wallet extension.")
            return None
        except ClaimRouterError as e:
            self._fail(str(e))
            return None
        except Exception as e:
            logger.exception("Wallet provider error during connect")
            self._fail(str(e) or "Failed to connect wallet")
            return None

        self._set_connected(accounts)
        return self.address

    async def retry(self) -> AppStatus:
        """Reconnect after an error."""
        await self.connect()
        if self.address is None and self.in_frame:
            self.status = AppStatus.ERROR
        return self.status

    def disconnect(self) -> None:
        self.address = None
        self.status = AppStatus.READY if self.in_frame else AppStatus.NOT_IN_FRAME
        logger.info("Wallet disconnected")
