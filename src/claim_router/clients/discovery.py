"""
Token discovery client.

Looks up the tokens a wallet deployed through the launch protocol's search
API and maps them to display ``Token`` models. Only the resulting address
list feeds the claimable-balance resolver.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from ..adapters.evm.constants import CLANKER_API_BASE
from ..engine.exceptions import UpstreamReadError
from ..schemas.https import ClankerPage, ClankerToken, Token

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
PARALLEL_PAGES = 5
SAFETY_MAX_PAGES = 100

ICON_COLORS = [
    "#ef4444", "#f97316", "#f59e0b", "#eab308", "#84cc16",
    "#22c55e", "#10b981", "#14b8a6", "#06b6d4", "#0ea5e9",
    "#3b82f6", "#6366f1", "#8b5cf6", "#a855f7", "#d946ef",
    "#ec4899", "#f43f5e",
]


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def icon_color(address: str) -> str:
    """
    Stable palette colour for a token address.

    Uses the ``hash * 31 + char`` string hash with 32-bit shift semantics,
    so colours match the web client for the same address.
    """
    acc = 0
    for char in address:
        acc = ord(char) + (_to_int32(_to_int32(acc) << 5) - acc)
    return ICON_COLORS[abs(acc) % len(ICON_COLORS)]


def to_token(record: ClankerToken) -> Token:
    market = record.related.market if record.related else None
    trust = record.trust_status
    return Token(
        id=record.contract_address,
        name=record.name,
        symbol=record.symbol,
        contract_address=record.contract_address,
        created_at=record.deployed_at or record.created_at or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        icon_color=icon_color(record.contract_address),
        image_url=record.img_url or None,
        market_cap=market.market_cap if market else None,
        price=market.price if market else None,
        is_trusted=bool(trust and (trust.is_trusted_deployer or trust.is_trusted_clanker or trust.fid_matches_deployer)),
    )


class TokenDiscoveryClient(httpx.AsyncClient):
    """
    httpx.AsyncClient for the creator search endpoint.

    The first page is fetched alone; further pages go out ``PARALLEL_PAGES``
    at a time until a page comes back short or empty, or ``SAFETY_MAX_PAGES``
    pages have been requested. A non-2xx page counts as an empty page.

    Usage:
        ```python
        async with TokenDiscoveryClient() as discovery:
            tokens = await discovery.fetch_tokens(wallet)
        ```
    """

    def __init__(self, base_url: str = CLANKER_API_BASE, **kwargs):
        headers = {"Accept": "application/json", "User-Agent": "ClaimApp/1.0"}
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", 30.0)
        super().__init__(base_url=base_url, headers=headers, **kwargs)

    async def fetch_page(self, wallet: str, page: int) -> List[ClankerToken]:
        params = {"q": wallet, "limit": PAGE_SIZE, "offset": page * PAGE_SIZE, "sort": "desc"}
        try:
            response = await self.get("/search-creator", params=params)
        except httpx.HTTPError as e:
            raise UpstreamReadError(f"Token discovery request failed: {e}") from e

        if not response.is_success:
            logger.warning("Token discovery returned %s for page %d", response.status_code, page + 1)
            return []
        try:
            tokens = ClankerPage.model_validate(response.json()).tokens
        except ValueError as e:
            logger.warning("Unreadable token discovery page %d: %s", page + 1, e)
            return []

        logger.debug("Page %d: fetched %d tokens", page + 1, len(tokens))
        return tokens

    async def fetch_all(self, wallet: str, max_pages: Optional[int] = None) -> List[ClankerToken]:
        """Every token record deployed by ``wallet``."""
        max_pages = max_pages or SAFETY_MAX_PAGES
        first = await self.fetch_page(wallet, 0)
        records = list(first)
        if len(first) < PAGE_SIZE:
            return records

        page = 1
        while page < max_pages:
            count = min(PARALLEL_PAGES, max_pages - page)
            results = await asyncio.gather(*(self.fetch_page(wallet, page + i) for i in range(count)))
            for tokens in results:
                records.extend(tokens)
            if any(len(tokens) < PAGE_SIZE for tokens in results):
                break
            page += count

        logger.debug("Fetched %d token records for %s", len(records), wallet)
        return records

    async def fetch_tokens(self, wallet: str) -> List[Token]:
        return [to_token(record) for record in await self.fetch_all(wallet)]
