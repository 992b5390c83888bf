"""
Claim read API server - FastAPI wrapper around ``TokensService``.

Routes:
    GET  /api/tokens?wallet=&refresh=true
    GET  /api/claim-balance?wallet=
    GET  /api/router-allowance?wallet=&token=&amount=
    POST /api/cache/invalidate  {"walletAddress": ...}

Missing query parameters answer with the empty/default payload of the
route (an allowance without wallet or token reports ``needsApproval``).
A malformed request body is a 400 with ``{"error": ...}``.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .tokens import TokensService
from ..adapters.bases import ChainReader
from ..adapters.evm.constants import ClaimSettings
from ..schemas.https import (
    AllowanceResponse,
    CacheInvalidateRequest,
    CacheInvalidateResponse,
    ClaimBalanceResponse,
    ErrorResponse,
    TokensResponse,
)

logger = logging.getLogger(__name__)


class ClaimServer(FastAPI):
    """FastAPI server exposing the claim read API."""

    def __init__(
        self,
        service: Optional[TokensService] = None,
        chain: Optional[ChainReader] = None,
        settings: Optional[ClaimSettings] = None,
        **fastapi_kwargs
    ):
        """Initialize the read API server.

        Args:
            service: Read service (default: built from ``chain`` and ``settings``)
            chain: Chain reader used when no service is given (default: EVMAdapter)
            settings: Claim settings (default: ``ClaimSettings.from_env()``)
            **fastapi_kwargs: FastAPI arguments (title, version, etc.)
        """
        if service is None:
            settings = settings or ClaimSettings.from_env()
            if chain is None:
                from ..adapters.evm.adapter import EVMAdapter
                chain = EVMAdapter(settings)
            service = TokensService(chain, settings=settings)
        self.service = service

        super().__init__(**fastapi_kwargs)

        self._setup_error_handlers()
        self._setup_routes()

    def _setup_error_handlers(self) -> None:
        @self.exception_handler(RequestValidationError)
        async def validation_error(request: Request, exc: RequestValidationError):
            logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
            return JSONResponse(
                status_code=400,
                content=ErrorResponse(error="Invalid request").to_payload(),
            )

    def _setup_routes(self) -> None:
        service = self.service

        @self.get("/api/tokens")
        async def get_tokens(wallet: Optional[str] = None, refresh: Optional[str] = None):
            if not wallet:
                return TokensResponse.empty().to_payload()
            response = await service.resolve_claimable(wallet, force_refresh=refresh == "true")
            return response.to_payload()

        @self.get("/api/claim-balance")
        async def get_claim_balance(wallet: Optional[str] = None):
            if not wallet:
                return ClaimBalanceResponse(
                    balance="0", formatted_balance="0", decimals=18, symbol="CLAIM"
                ).to_payload()
            return (await service.claim_balance(wallet)).to_payload()

        @self.get("/api/router-allowance")
        async def get_router_allowance(
            wallet: Optional[str] = None,
            token: Optional[str] = None,
            amount: Optional[str] = None,
        ):
            if not wallet or not token:
                return AllowanceResponse(allowance="0", needs_approval=True).to_payload()
            try:
                required = int(amount) if amount else None
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content=ErrorResponse(error=f"Invalid amount: {amount}").to_payload(),
                )
            return (await service.check_allowance(wallet, token, required)).to_payload()

        @self.post("/api/cache/invalidate")
        async def invalidate_cache(body: CacheInvalidateRequest):
            await service.invalidate_cache(body.wallet_address)
            return CacheInvalidateResponse().to_payload()
