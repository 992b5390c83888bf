"""
Calldata builders for the claim path.

Encodes function calls with ``eth_abi`` against the ABI modules so the same
bytes can be sent to the deployed contracts through any wallet signer, or
executed by the local chain simulator.
"""

from typing import Any, Dict, List, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import keccak, to_checksum_address

from .ERC20_ABI import get_approve_abi, get_erc20_abi
from .ROUTER_ABI import get_claim_router_abi, get_fee_locker_abi, get_multicall3_abi
from ...schemas.transactions import TransactionRequest
from ...schemas.claims import ClaimRequest


def abi_type(param: Dict[str, Any]) -> str:
    """Canonical ABI type string, collapsing tuple components."""
    kind = param["type"]
    if kind.startswith("tuple"):
        inner = ",".join(abi_type(component) for component in param["components"])
        return f"({inner}){kind[len('tuple'):]}"
    return kind


def function_signature(entry: Dict[str, Any]) -> str:
    return f"{entry['name']}({','.join(abi_type(p) for p in entry['inputs'])})"


def function_selector(entry: Dict[str, Any]) -> bytes:
    return keccak(text=function_signature(entry))[:4]


def event_topic(entry: Dict[str, Any]) -> str:
    """topic0 of an event ABI entry."""
    return "0x" + keccak(text=function_signature(entry)).hex()


def find_entry(abi: Sequence[Dict[str, Any]], name: str, kind: str = "function") -> Dict[str, Any]:
    for entry in abi:
        if entry.get("type") == kind and entry.get("name") == name:
            return entry
    raise KeyError(f"{kind} {name!r} not found in ABI")


def _normalize_args(types: List[str], args: Sequence[Any]) -> List[Any]:
    normalized = []
    for kind, value in zip(types, args):
        if kind == "address":
            normalized.append(to_checksum_address(value))
        elif kind == "address[]":
            normalized.append([to_checksum_address(v) for v in value])
        else:
            normalized.append(value)
    return normalized


def encode_call(abi: Sequence[Dict[str, Any]], name: str, args: Sequence[Any] = ()) -> bytes:
    """Selector followed by ABI-encoded arguments."""
    entry = find_entry(abi, name)
    types = [abi_type(p) for p in entry["inputs"]]
    return function_selector(entry) + encode(types, _normalize_args(types, args))


def decode_output(abi: Sequence[Dict[str, Any]], name: str, data: bytes) -> Tuple[Any, ...]:
    entry = find_entry(abi, name)
    return decode([abi_type(p) for p in entry["outputs"]], data)


def encode_available_fees_call(fee_owner: str, token: str) -> bytes:
    return encode_call(get_fee_locker_abi(), "availableFees", [fee_owner, token])


def encode_distributor_claim_call(fee_owner: str, token: str) -> bytes:
    return encode_call(get_fee_locker_abi(), "claim", [fee_owner, token])


def encode_aggregate3(calls: Sequence[Tuple[str, bool, bytes]]) -> bytes:
    """Encode ``aggregate3`` for (target, allowFailure, callData) tuples."""
    return encode_call(
        get_multicall3_abi(),
        "aggregate3",
        [[(to_checksum_address(target), allow, data) for target, allow, data in calls]],
    )


def decode_aggregate3(data: bytes) -> List[Tuple[bool, bytes]]:
    (results,) = decode_output(get_multicall3_abi(), "aggregate3", data)
    return [(bool(success), bytes(payload)) for success, payload in results]


def build_approve_transaction(token: str, spender: str, amount: int) -> TransactionRequest:
    """ERC20 ``approve(spender, amount)`` on ``token``."""
    return TransactionRequest(
        to=to_checksum_address(token),
        data="0x" + encode_call(get_approve_abi(), "approve", [spender, amount]).hex(),
        description="approve",
    )


def build_router_claim_transaction(router: str, request: ClaimRequest) -> TransactionRequest:
    """Router ``claimFromClanker(distributor, rewardTokens)``."""
    data = encode_call(
        get_claim_router_abi(),
        "claimFromClanker",
        [request.distributor, list(request.reward_tokens)],
    )
    return TransactionRequest(
        to=to_checksum_address(router),
        data="0x" + data.hex(),
        description="claimFromClanker",
    )


def build_direct_claim_transaction(distributor: str, fee_owner: str, token: str) -> TransactionRequest:
    """Distributor ``claim(feeOwner, token)`` without going through the router."""
    return TransactionRequest(
        to=to_checksum_address(distributor),
        data="0x" + encode_distributor_claim_call(fee_owner, token).hex(),
        description="claim",
    )


def build_batch_claim_transaction(
    multicall: str,
    distributor: str,
    fee_owner: str,
    tokens: Sequence[str],
    settlement_token: str,
) -> TransactionRequest:
    """
    Claim several assets straight from the distributor in one transaction.

    A list holding only the settlement asset is sent as a plain distributor
    call; anything else goes through ``aggregate3`` with ``allowFailure``
    disabled, so one failing claim reverts the batch.
    """
    if not tokens:
        raise ValueError("tokens must not be empty")
    if len(tokens) == 1 and tokens[0].lower() == settlement_token.lower():
        return build_direct_claim_transaction(distributor, fee_owner, settlement_token)

    calls = [(distributor, False, encode_distributor_claim_call(fee_owner, token)) for token in tokens]
    return TransactionRequest(
        to=to_checksum_address(multicall),
        data="0x" + encode_aggregate3(calls).hex(),
        description="aggregate3",
    )


def known_functions() -> Dict[bytes, Tuple[str, List[str], List[str]]]:
    """Selector -> (function name, input types, output types) for every function on the claim path."""
    table: Dict[bytes, Tuple[str, List[str], List[str]]] = {}
    for abi in (get_erc20_abi(), get_fee_locker_abi(), get_multicall3_abi(), get_claim_router_abi()):
        for entry in abi:
            if entry.get("type") != "function":
                continue
            table[function_selector(entry)] = (
                entry["name"],
                [abi_type(p) for p in entry["inputs"]],
                [abi_type(p) for p in entry["outputs"]],
            )
    return table
