"""
Contract model primitives.

A contract model is a plain Python object deployed on a ``LocalChain``.
State-mutating entry points take a ``CallContext`` as their first argument
(``msg.sender`` / ``tx.origin``); views take only their ABI arguments and are
marked with ``@view`` so calldata dispatch knows not to pass a context.
"""

import copy
import functools
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from eth_abi import encode
from eth_utils import to_checksum_address

from ..adapters.evm.constants import ZERO_ADDRESS
from ..adapters.evm.transactions import event_topic, find_entry
from ..engine.exceptions import ContractPaused, NotOwner, ReentrantCall


def addr(value: str) -> str:
    """Normalized (lowercase) address used as a storage key."""
    return str(value).lower()


@dataclass(frozen=True)
class CallContext:
    """Message context of a call: immediate caller and transaction signer."""
    sender: str
    origin: str

    @classmethod
    def external(cls, account: str) -> "CallContext":
        """Context of a transaction sent directly by ``account``."""
        return cls(sender=addr(account), origin=addr(account))

    def forward(self, caller: str) -> "CallContext":
        """Context of a nested call made by the contract at ``caller``."""
        return CallContext(sender=addr(caller), origin=self.origin)


def view(fn: Callable) -> Callable:
    fn.is_view = True
    return fn


def only_owner(fn: Callable) -> Callable:
    @functools.wraps(fn)
    def wrapper(self, ctx: CallContext, *args, **kwargs):
        if ctx.sender != self._owner:
            raise NotOwner()
        return fn(self, ctx, *args, **kwargs)
    return wrapper


def when_not_paused(fn: Callable) -> Callable:
    @functools.wraps(fn)
    def wrapper(self, ctx: CallContext, *args, **kwargs):
        if self._paused:
            raise ContractPaused()
        return fn(self, ctx, *args, **kwargs)
    return wrapper


def non_reentrant(fn: Callable) -> Callable:
    @functools.wraps(fn)
    def wrapper(self, ctx: CallContext, *args, **kwargs):
        if self._entered:
            raise ReentrantCall()
        self._entered = True
        try:
            return fn(self, ctx, *args, **kwargs)
        finally:
            self._entered = False
    return wrapper


def _abi_value(kind: str, value: Any) -> Any:
    return to_checksum_address(value) if kind == "address" else value


class Contract:
    """
    Base class for contract models.

    Subclasses keep their storage in instance attributes; ``snapshot`` and
    ``restore`` copy everything except the chain reference and the address,
    which is how the chain rolls a reverted call back.
    """

    _frozen_attributes = ("chain", "address")

    def __init__(self, chain, address: str):
        self.chain = chain
        self.address = addr(address)

    def abi(self) -> List[Dict[str, Any]]:
        return []

    def snapshot(self) -> Dict[str, Any]:
        state = {k: v for k, v in vars(self).items() if k not in self._frozen_attributes}
        return copy.deepcopy(state)

    def restore(self, state: Dict[str, Any]) -> None:
        self.__dict__.update(copy.deepcopy(state))

    def emit(self, event: str, *values: Any) -> None:
        """Record a log for ``event`` with values in ABI input order."""
        entry = find_entry(self.abi(), event, kind="event")
        topics = [event_topic(entry)]
        data_types, data_values = [], []
        for param, value in zip(entry["inputs"], values):
            if param.get("indexed"):
                topics.append("0x" + encode([param["type"]], [_abi_value(param["type"], value)]).hex())
            else:
                data_types.append(param["type"])
                data_values.append(_abi_value(param["type"], value))

        self.chain.record_log({
            "address": self.address,
            "topics": topics,
            "data": "0x" + encode(data_types, data_values).hex(),
            "event": event,
            "args": dict(zip([p["name"] for p in entry["inputs"]], values)),
        })

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


__all__ = [
    "ZERO_ADDRESS",
    "addr",
    "CallContext",
    "Contract",
    "view",
    "only_owner",
    "when_not_paused",
    "non_reentrant",
]
