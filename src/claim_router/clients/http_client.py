"""
HTTP client for the claim read API.

``ClaimApiClient`` is the remote counterpart of ``servers.tokens.TokensService``:
the orchestrator can settle balances against either one.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..adapters.bases import ClaimReadApi
from ..engine.exceptions import UpstreamReadError
from ..schemas.https import (
    AllowanceResponse,
    CacheInvalidateRequest,
    ClaimBalanceResponse,
    TokensResponse,
)

logger = logging.getLogger(__name__)


class ClaimApiClient(httpx.AsyncClient, ClaimReadApi):
    """
    Extended httpx.AsyncClient speaking the claim read API.

    Transport failures, non-2xx answers and unparseable bodies all raise
    ``UpstreamReadError``.

    Usage:
        ```python
        async with ClaimApiClient(base_url="http://localhost:8000") as api:
            response = await api.resolve_claimable(wallet, force_refresh=True)
        ```
    """

    def __init__(self, base_url: str = "http://localhost:8000", **kwargs):
        kwargs.setdefault("timeout", 30.0)
        super().__init__(base_url=base_url, **kwargs)

    async def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamReadError(f"{method} {path} failed: {e}") from e
        if not response.is_success:
            raise UpstreamReadError(f"{method} {path} returned {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamReadError(f"{method} {path} returned invalid JSON") from e

    async def resolve_claimable(self, wallet: str, force_refresh: bool = False) -> TokensResponse:
        params = {"wallet": wallet}
        if force_refresh:
            params["refresh"] = "true"
        data = await self._call("GET", "/api/tokens", params=params)
        try:
            return TokensResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamReadError(f"Unexpected tokens payload: {e}") from e

    async def check_allowance(self, wallet: str, token: str, amount: Optional[int] = None) -> AllowanceResponse:
        params = {"wallet": wallet, "token": token}
        if amount is not None:
            params["amount"] = str(amount)
        data = await self._call("GET", "/api/router-allowance", params=params)
        try:
            return AllowanceResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamReadError(f"Unexpected allowance payload: {e}") from e

    async def claim_balance(self, wallet: str) -> ClaimBalanceResponse:
        data = await self._call("GET", "/api/claim-balance", params={"wallet": wallet})
        try:
            return ClaimBalanceResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamReadError(f"Unexpected balance payload: {e}") from e

    async def invalidate_cache(self, wallet: str) -> None:
        body = CacheInvalidateRequest(wallet_address=wallet)
        await self._call("POST", "/api/cache/invalidate", json=body.to_payload())
        logger.debug("Invalidated read cache for %s", wallet)
