"""
In-process read API.

``TokensService`` answers the read surface used by the UI collaborator and
by the orchestrator's balance settling: discovered tokens plus their
claimable rewards (cached per wallet), router allowances, and the CLAIM
token balance. Upstream failures degrade to empty or default payloads.
"""

import logging
from typing import Optional

from .cache import TTLCache
from .resolver import ClaimableResolver
from ..adapters.bases import ChainReader, ClaimReadApi
from ..adapters.evm.constants import ClaimSettings, format_token_amount
from ..clients.discovery import TokenDiscoveryClient
from ..engine.exceptions import ClaimRouterError
from ..schemas.https import AllowanceResponse, ClaimBalanceResponse, TokensResponse

logger = logging.getLogger(__name__)


class TokensService(ClaimReadApi):
    """
    Args:
        chain: Chain reader for fees, allowances and balances.
        discovery: Token discovery client.
        settings: Claim settings (router address, CLAIM token, cache TTL).
        cache: Cache of ``TokensResponse`` keyed by lowercase wallet.
    """

    def __init__(
        self,
        chain: ChainReader,
        discovery: Optional[TokenDiscoveryClient] = None,
        settings: Optional[ClaimSettings] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.settings = settings or ClaimSettings()
        self.chain = chain
        self.discovery = discovery or TokenDiscoveryClient(
            base_url=self.settings.discovery_base_url,
            timeout=self.settings.request_timeout,
        )
        self.resolver = ClaimableResolver(chain)
        self.cache: TTLCache[TokensResponse] = cache or TTLCache(self.settings.cache_ttl)

    async def resolve_claimable(self, wallet: str, force_refresh: bool = False) -> TokensResponse:
        key = wallet.lower()
        if force_refresh:
            self.cache.invalidate(key)
        else:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        response = await self._fetch(wallet)
        self.cache.set(key, response)
        return response

    async def _fetch(self, wallet: str) -> TokensResponse:
        try:
            tokens = await self.discovery.fetch_tokens(wallet)
            if not tokens:
                logger.debug("No tokens found for %s", wallet)
                return TokensResponse.empty()
            claimable = await self.resolver.resolve(wallet, [token.contract_address for token in tokens])
        except ClaimRouterError as e:
            logger.warning("Failed to resolve tokens for %s: %s", wallet, e)
            return TokensResponse.empty()
        return TokensResponse(tokens=tokens, total_claimable=claimable)

    async def check_allowance(self, wallet: str, token: str, amount: Optional[int] = None) -> AllowanceResponse:
        return await self.chain.check_allowance(wallet, self.settings.router_address, token, amount)

    async def claim_balance(self, wallet: str) -> ClaimBalanceResponse:
        """CLAIM token balance of ``wallet``; read failures give a zero balance."""
        token = self.settings.claim_token_address
        try:
            balance = await self.chain.balance_of(token, wallet)
        except Exception as e:
            logger.warning("Failed to read CLAIM balance for %s: %s", wallet, e)
            return ClaimBalanceResponse(balance="0", formatted_balance="0", decimals=18, symbol="CLAIM")
        metadata = await self.chain.token_metadata(token)
        return ClaimBalanceResponse(
            balance=str(balance),
            formatted_balance=format_token_amount(balance, metadata.decimals),
            decimals=metadata.decimals,
            symbol=metadata.symbol,
        )

    async def invalidate_cache(self, wallet: str) -> None:
        self.cache.invalidate(wallet.lower())

    async def aclose(self) -> None:
        await self.discovery.aclose()
