"""
In-process chain for contract models.

``LocalChain`` executes contract models with EVM-like call semantics:

- every top-level transaction and every raw sub-call is atomic; a
  ``ContractRevert`` rolls back all contract storage and logs written inside it
- calldata produced by ``adapters.evm.transactions`` is decoded against the
  known ABIs and dispatched to the model's snake_case method
- mined transactions produce web3-shaped receipts (``status``, ``logs`` with
  hex ``topics``/``data``), so verification code runs unchanged against it
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_abi import decode, encode
from eth_utils import keccak

from .base import CallContext, Contract, addr
from .tokens import ERC20Token
from ..adapters.evm.constants import BASE_CHAIN_ID
from ..schemas.transactions import TransactionRequest
from ..adapters.evm.transactions import known_functions
from ..engine.exceptions import ContractRevert, UnknownFunction

logger = logging.getLogger(__name__)

# Error(string) selector used for revert payloads
ERROR_SELECTOR = bytes.fromhex("08c379a0")


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class LocalChain:
    """
    Registry and executor for contract models.

    Attributes:
        chain_id: Reported chain id.
        block_number: Incremented once per mined transaction.
        receipts: Receipts by transaction hash.
        events: Every log that survived its transaction, in order.
    """

    def __init__(self, chain_id: int = BASE_CHAIN_ID):
        self.chain_id = chain_id
        self.block_number = 0
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.events: List[Dict[str, Any]] = []
        self._contracts: Dict[str, Contract] = {}
        self._tx_logs: Optional[List[Dict[str, Any]]] = None
        self._nonces: Dict[str, int] = {}
        self._selectors = known_functions()

    # ==================== Deployment / lookup ====================

    def deploy(self, contract: Contract) -> Contract:
        if contract.address in self._contracts:
            raise ValueError(f"address already has code: {contract.address}")
        self._contracts[contract.address] = contract
        return contract

    def has_code(self, address: str) -> bool:
        return addr(address) in self._contracts

    def at(self, address: str) -> Contract:
        try:
            return self._contracts[addr(address)]
        except KeyError:
            raise ContractRevert(f"no contract at {address}") from None

    def token(self, address: str) -> ERC20Token:
        contract = self.at(address)
        if not isinstance(contract, ERC20Token):
            raise ContractRevert(f"not a token: {address}")
        return contract

    def record_log(self, log: Dict[str, Any]) -> None:
        if self._tx_logs is None:
            self.events.append(log)
        else:
            self._tx_logs.append(log)

    # ==================== State ====================

    def _snapshot(self) -> Tuple[Dict[str, Dict[str, Any]], int]:
        states = {address: contract.snapshot() for address, contract in self._contracts.items()}
        return states, len(self._tx_logs) if self._tx_logs is not None else 0

    def _restore(self, snapshot: Tuple[Dict[str, Dict[str, Any]], int]) -> None:
        states, log_count = snapshot
        for address, state in states.items():
            self._contracts[address].restore(state)
        if self._tx_logs is not None:
            del self._tx_logs[log_count:]

    # ==================== Message calls ====================

    def call(self, ctx: CallContext, target: str, function: str, *args: Any) -> Any:
        """Call ``function`` on the model at ``target``; reverts propagate."""
        contract = self.at(target)
        method = getattr(contract, function, None)
        if function.startswith("_") or not callable(method):
            raise UnknownFunction(f"{type(contract).__name__} has no function {function}")
        if getattr(method, "is_view", False):
            return method(*args)
        return method(ctx, *args)

    def try_call(self, ctx: CallContext, target: str, function: str, *args: Any) -> Tuple[bool, Any]:
        """Raw call: a revert rolls back only this call and is returned, not raised."""
        snapshot = self._snapshot()
        try:
            return True, self.call(ctx, target, function, *args)
        except ContractRevert as e:
            self._restore(snapshot)
            return False, e

    def call_data(self, ctx: CallContext, target: str, data: bytes) -> bytes:
        """Dispatch ABI calldata and return ABI-encoded output."""
        try:
            name, input_types, output_types = self._selectors[bytes(data[:4])]
        except KeyError:
            raise UnknownFunction() from None
        args = decode(input_types, bytes(data[4:]))
        result = self.call(ctx, target, _snake(name), *args)
        if not output_types:
            return b""
        return encode(output_types, [result])

    def try_call_data(self, ctx: CallContext, target: str, data: bytes) -> Tuple[bool, bytes]:
        snapshot = self._snapshot()
        try:
            return True, self.call_data(ctx, target, data)
        except ContractRevert as e:
            self._restore(snapshot)
            return False, ERROR_SELECTOR + encode(["string"], [str(e)])

    def static_call(self, target: str, data: bytes, sender: str = "0x" + "00" * 20) -> bytes:
        """``eth_call``: execute and discard every state change."""
        snapshot = self._snapshot()
        try:
            return self.call_data(CallContext.external(sender), target, data)
        finally:
            self._restore(snapshot)

    # ==================== Transactions ====================

    def _transaction(self, sender: str, invoke: Callable[[CallContext], Any]) -> Tuple[Any, List[Dict[str, Any]]]:
        snapshot = self._snapshot()
        self._tx_logs = []
        try:
            result = invoke(CallContext.external(sender))
            logs = self._tx_logs
        except ContractRevert:
            self._tx_logs = None
            self._restore(snapshot)
            raise
        finally:
            self._tx_logs = None
        self.events.extend(logs)
        return result, logs

    def execute(self, sender: str, target: str, function: str, *args: Any) -> Any:
        """
        Run one atomic transaction from ``sender`` against a model method.

        Raises:
            ContractRevert: The named revert, after all state has been rolled back.
        """
        result, _ = self._transaction(sender, lambda ctx: self.call(ctx, target, function, *args))
        return result

    def send_transaction(self, sender: str, tx: TransactionRequest) -> str:
        """
        Mine ``tx`` from ``sender`` and record its receipt.

        Reverts do not raise; they produce a receipt with ``status == 0`` and
        a ``revertReason``.

        Returns:
            str: Transaction hash.
        """
        sender = addr(sender)
        nonce = self._nonces.get(sender, 0)
        self._nonces[sender] = nonce + 1
        tx_hash = "0x" + keccak(text=f"{self.chain_id}:{sender}:{nonce}:{tx.to}:{tx.data}").hex()
        data = bytes.fromhex(tx.data[2:] if tx.data.startswith("0x") else tx.data)

        self.block_number += 1
        receipt: Dict[str, Any] = {
            "transactionHash": tx_hash,
            "blockNumber": self.block_number,
            "from": sender,
            "to": addr(tx.to),
            "gasUsed": 21000 + 16 * len(data),
        }
        try:
            _, logs = self._transaction(sender, lambda ctx: self.call_data(ctx, tx.to, data))
            receipt["status"] = 1
            receipt["logs"] = [
                {"address": log["address"], "topics": list(log["topics"]), "data": log["data"], "logIndex": index}
                for index, log in enumerate(logs)
            ]
        except ContractRevert as e:
            logger.debug("Transaction %s reverted: %s", tx_hash, e)
            receipt["status"] = 0
            receipt["logs"] = []
            receipt["revertReason"] = str(e)

        self.receipts[tx_hash] = receipt
        return tx_hash

    def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.receipts.get(tx_hash)
