"""
Claim router contract model.

The router intermediates a fee claim without ever holding user funds ahead
of time. The upstream distributor pays the user directly, so the router
measures the user's balance delta around each distributor call and then pulls
the tax back from the user with ``transferFrom``. The user must therefore
have approved the router for at least the tax on every claimed token.

Tax arithmetic (integer, floor division)::

    tax            = claimed * bps // 10_000
    treasury_share = tax // 2
    rebate_share   = tax - treasury_share      # keeps the odd unit
    user_net       = claimed - tax
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

from .base import (
    CallContext,
    Contract,
    ZERO_ADDRESS,
    addr,
    non_reentrant,
    only_owner,
    view,
    when_not_paused,
)
from ..adapters.evm.constants import BPS_DENOMINATOR, DEFAULT_TAX_BPS, MAX_TAX_BPS
from ..adapters.evm.ROUTER_ABI import get_claim_router_abi
from ..engine.exceptions import (
    CallerNotEOA,
    DistributorCallFailed,
    DistributorNotAllowed,
    DistributorNotContract,
    EmptyRewardTokens,
    InsufficientRebateBalance,
    TaxExceedsCap,
    ZeroAddress,
)


@dataclass(frozen=True)
class TaxSplit:
    claimed: int
    tax: int
    treasury_share: int
    rebate_share: int

    @property
    def user_net(self) -> int:
        return self.claimed - self.tax


def split_tax(claimed: int, bps: int) -> TaxSplit:
    """Split the tax on ``claimed`` base units at ``bps`` basis points."""
    if claimed < 0:
        raise ValueError("claimed must be non-negative")
    if not 0 <= bps <= MAX_TAX_BPS:
        raise ValueError(f"bps must be within [0, {MAX_TAX_BPS}]")
    tax = claimed * bps // BPS_DENOMINATOR
    treasury_share = tax // 2
    return TaxSplit(
        claimed=claimed,
        tax=tax,
        treasury_share=treasury_share,
        rebate_share=tax - treasury_share,
    )


class ClaimRouter(Contract):
    """
    Fee-routing contract model.

    Args:
        chain: Chain the router is deployed on.
        address: Router address.
        owner: Admin account.
        treasury: Immutable treasury receiving half of every tax.
        tax_bps: Initial tax rate, at most ``MAX_TAX_BPS``.
    """

    _frozen_attributes = ("chain", "address", "_treasury")

    def __init__(self, chain, address: str, owner: str, treasury: str, tax_bps: int = DEFAULT_TAX_BPS):
        super().__init__(chain, address)
        if addr(treasury) == ZERO_ADDRESS or addr(owner) == ZERO_ADDRESS:
            raise ZeroAddress()
        if tax_bps > MAX_TAX_BPS:
            raise TaxExceedsCap()
        self._owner = addr(owner)
        self._treasury = addr(treasury)
        self._tax_bps = tax_bps
        self._paused = False
        self._entered = False
        self._allowed: Dict[str, bool] = {}

    def abi(self):
        return get_claim_router_abi()

    # ==================== Views ====================

    @view
    def claim_tax_bps(self) -> int:
        return self._tax_bps

    @view
    def treasury(self) -> str:
        return self._treasury

    @view
    def owner(self) -> str:
        return self._owner

    @view
    def paused(self) -> bool:
        return self._paused

    @view
    def allowed_distributors(self, distributor: str) -> bool:
        return self._allowed.get(addr(distributor), False)

    @view
    def rebate_balance(self, token: str) -> int:
        return self.chain.token(token).balance_of(self.address)

    # ==================== Claim ====================

    @when_not_paused
    @non_reentrant
    def claim_from_clanker(self, ctx: CallContext, distributor: str, reward_tokens: Sequence[str]) -> List[TaxSplit]:
        """
        Claim every token in ``reward_tokens`` from ``distributor`` for the caller.

        Reverts before any state change on an empty list, a contract caller, a
        distributor outside the allowlist or without code. Any failing
        distributor call reverts the whole claim.

        Returns:
            List[TaxSplit]: One split per token that paid out.
        """
        if not reward_tokens:
            raise EmptyRewardTokens()
        if ctx.sender != ctx.origin:
            raise CallerNotEOA()
        distributor = addr(distributor)
        if not self.allowed_distributors(distributor):
            raise DistributorNotAllowed(f"distributor not allowed: {distributor}")
        if not self.chain.has_code(distributor):
            raise DistributorNotContract(f"distributor has no code: {distributor}")

        user = ctx.sender
        inner = ctx.forward(self.address)
        splits: List[TaxSplit] = []
        for token in reward_tokens:
            token = addr(token)
            erc20 = self.chain.token(token)
            before = erc20.balance_of(user)

            success, error = self.chain.try_call(inner, distributor, "claim", user, token)
            if not success:
                raise DistributorCallFailed(f"distributor claim failed for {token}: {error}")

            after = erc20.balance_of(user)
            claimed = after - before if after > before else 0
            if claimed == 0:
                continue

            split = split_tax(claimed, self._tax_bps)
            if split.treasury_share:
                self.chain.call(inner, token, "transfer_from", user, self._treasury, split.treasury_share)
            if split.rebate_share:
                self.chain.call(inner, token, "transfer_from", user, self.address, split.rebate_share)

            self.emit("Claimed", user, distributor, token, claimed, split.tax)
            splits.append(split)
        return splits

    # ==================== Admin ====================

    @only_owner
    def set_claim_tax_bps(self, ctx: CallContext, new_bps: int) -> None:
        if new_bps > MAX_TAX_BPS:
            raise TaxExceedsCap(f"tax {new_bps} bps exceeds cap of {MAX_TAX_BPS} bps")
        old_bps = self._tax_bps
        self._tax_bps = new_bps
        self.emit("TaxUpdated", old_bps, new_bps)

    @only_owner
    def set_distributor(self, ctx: CallContext, distributor: str, allowed: bool) -> None:
        if addr(distributor) == ZERO_ADDRESS:
            raise ZeroAddress()
        self._allowed[addr(distributor)] = bool(allowed)
        self.emit("DistributorUpdated", addr(distributor), bool(allowed))

    @only_owner
    def withdraw_rebate(self, ctx: CallContext, token: str, to: str, amount: int) -> None:
        if addr(to) == ZERO_ADDRESS:
            raise ZeroAddress()
        available = self.rebate_balance(token)
        if amount > available:
            raise InsufficientRebateBalance(available=available, requested=amount)
        self.chain.call(ctx.forward(self.address), token, "transfer", to, amount)
        self.emit("RebateWithdrawn", addr(token), addr(to), amount)

    @only_owner
    def pause(self, ctx: CallContext) -> None:
        self._paused = True
        self.emit("Paused", ctx.sender)

    @only_owner
    def unpause(self, ctx: CallContext) -> None:
        self._paused = False
        self.emit("Unpaused", ctx.sender)

    @only_owner
    def transfer_ownership(self, ctx: CallContext, new_owner: str) -> None:
        if addr(new_owner) == ZERO_ADDRESS:
            raise ZeroAddress()
        previous = self._owner
        self._owner = addr(new_owner)
        self.emit("OwnershipTransferred", previous, self._owner)
