"""
Claimable-balance resolver.

Turns a fee owner and a list of candidate token addresses into the set of
rewards that can actually be claimed. The settlement asset is read directly
from the distributor; everything else goes through the chain reader's
batched reads, where a failed read counts as zero. Only strictly positive
balances are returned, so the resulting address list is always safe to pass
to a claim (the distributor reverts on "nothing to claim").
"""

import asyncio
import logging
from typing import List, Sequence

from ..adapters.bases import ChainReader
from ..adapters.evm.constants import format_token_amount
from ..engine.exceptions import UpstreamReadError
from ..schemas.https import RewardAsset, TotalClaimable

logger = logging.getLogger(__name__)


class ClaimableResolver:
    """
    Resolve claimable rewards through a ``ChainReader``.

    Usage:
        resolver = ClaimableResolver(EVMAdapter(settings))
        claimable = await resolver.resolve(wallet, token_addresses)
    """

    def __init__(self, chain: ChainReader):
        self.chain = chain

    async def resolve(self, fee_owner: str, candidates: Sequence[str]) -> TotalClaimable:
        """
        Args:
            fee_owner: Wallet whose fees are read.
            candidates: Token addresses to check, in display order.

        Returns:
            TotalClaimable: Positive rewards, settlement asset first, then
            candidates in the order given.
        """
        settlement = self.chain.settlement_token
        positive: List[tuple] = []

        try:
            settlement_amount = await self.chain.available_fees(fee_owner, settlement)
        except UpstreamReadError as e:
            logger.warning("Settlement asset fee read failed for %s: %s", fee_owner, e)
            settlement_amount = 0
        if settlement_amount > 0:
            positive.append((settlement, settlement_amount))

        seen = {settlement.lower()}
        others = []
        for token in candidates:
            if token.lower() in seen:
                continue
            seen.add(token.lower())
            others.append(token)

        amounts = await self.chain.available_fees_batch(fee_owner, others)
        for token in others:
            amount = amounts.get(token, 0)
            if amount > 0:
                positive.append((token, amount))

        rewards = await asyncio.gather(*(self._reward(token, amount) for token, amount in positive))
        logger.debug("Resolved %d claimable assets for %s", len(rewards), fee_owner)
        return TotalClaimable(rewards=list(rewards), token_addresses=[reward.address for reward in rewards])

    async def _reward(self, token: str, amount: int) -> RewardAsset:
        metadata = await self.chain.token_metadata(token)
        return RewardAsset(
            address=token,
            symbol=metadata.symbol,
            decimals=metadata.decimals,
            amount=str(amount),
            formatted_amount=format_token_amount(amount, metadata.decimals),
        )
