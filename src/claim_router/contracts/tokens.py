"""
ERC20 token model.
"""

from typing import Dict

from .base import CallContext, Contract, ZERO_ADDRESS, addr, view
from ..adapters.evm.constants import MAX_UINT256
from ..adapters.evm.ERC20_ABI import get_erc20_abi
from ..engine.exceptions import InsufficientAllowance, InsufficientBalance, ZeroAddress


class ERC20Token(Contract):
    """
    Minimal ERC20 with OpenZeppelin semantics: an allowance of
    ``MAX_UINT256`` is treated as infinite and never decremented.
    """

    def __init__(self, chain, address: str, symbol: str, decimals: int = 18):
        super().__init__(chain, address)
        self._symbol = symbol
        self._decimals = decimals
        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[str, Dict[str, int]] = {}

    def abi(self):
        return get_erc20_abi()

    @view
    def symbol(self) -> str:
        return self._symbol

    @view
    def decimals(self) -> int:
        return self._decimals

    @view
    def balance_of(self, account: str) -> int:
        return self._balances.get(addr(account), 0)

    @view
    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get(addr(owner), {}).get(addr(spender), 0)

    def approve(self, ctx: CallContext, spender: str, amount: int) -> bool:
        if addr(spender) == ZERO_ADDRESS:
            raise ZeroAddress("ERC20: approve to the zero address")
        self._allowances.setdefault(ctx.sender, {})[addr(spender)] = amount
        self.emit("Approval", ctx.sender, addr(spender), amount)
        return True

    def transfer(self, ctx: CallContext, to: str, amount: int) -> bool:
        self._move(ctx.sender, addr(to), amount)
        return True

    def transfer_from(self, ctx: CallContext, owner: str, to: str, amount: int) -> bool:
        owner = addr(owner)
        current = self.allowance(owner, ctx.sender)
        if current < amount:
            raise InsufficientAllowance()
        if current != MAX_UINT256:
            self._allowances.setdefault(owner, {})[ctx.sender] = current - amount
        self._move(owner, addr(to), amount)
        return True

    def mint(self, to: str, amount: int) -> None:
        """Credit ``amount`` to ``to`` (setup helper, not part of the ABI)."""
        self._total_supply += amount
        self._balances[addr(to)] = self.balance_of(to) + amount
        self.emit("Transfer", ZERO_ADDRESS, addr(to), amount)

    def _move(self, sender: str, to: str, amount: int) -> None:
        if to == ZERO_ADDRESS:
            raise ZeroAddress("ERC20: transfer to the zero address")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance()
        self._balances[sender] = balance - amount
        self._balances[to] = self.balance_of(to) + amount
        self.emit("Transfer", sender, to, amount)
