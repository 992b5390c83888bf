"""
Upstream fee distributor and call-aggregation models.
"""

from typing import Dict, List, Sequence, Tuple

from .base import CallContext, Contract, addr, view
from ..adapters.evm.ROUTER_ABI import get_fee_locker_abi, get_multicall3_abi
from ..engine.exceptions import ContractRevert, NothingToClaim


class FeeLocker(Contract):
    """
    Fee locker holding creator fees per (owner, token).

    ``claim`` pays the owner directly whoever the caller is, and has no
    return value.
    """

    def __init__(self, chain, address: str):
        super().__init__(chain, address)
        self._fees: Dict[str, Dict[str, int]] = {}

    def abi(self):
        return get_fee_locker_abi()

    def store_fees(self, fee_owner: str, token: str, amount: int) -> None:
        """Credit fees to ``fee_owner``, minting the backing tokens into the locker."""
        self.chain.token(token).mint(self.address, amount)
        owner_fees = self._fees.setdefault(addr(fee_owner), {})
        owner_fees[addr(token)] = owner_fees.get(addr(token), 0) + amount

    @view
    def available_fees(self, fee_owner: str, token: str) -> int:
        return self._fees.get(addr(fee_owner), {}).get(addr(token), 0)

    def claim(self, ctx: CallContext, fee_owner: str, token: str) -> None:
        amount = self.available_fees(fee_owner, token)
        if amount == 0:
            raise NothingToClaim()
        self._fees[addr(fee_owner)][addr(token)] = 0
        self.chain.call(ctx.forward(self.address), token, "transfer", fee_owner, amount)


class Multicall3(Contract):
    """``aggregate3`` over raw calldata."""

    def abi(self):
        return get_multicall3_abi()

    def aggregate3(self, ctx: CallContext, calls: Sequence[Tuple[str, bool, bytes]]) -> List[Tuple[bool, bytes]]:
        results: List[Tuple[bool, bytes]] = []
        inner = ctx.forward(self.address)
        for target, allow_failure, call_data in calls:
            success, return_data = self.chain.try_call_data(inner, target, bytes(call_data))
            if not success and not allow_failure:
                raise ContractRevert("Multicall3: call failed")
            results.append((success, return_data))
        return results
