"""
Client side of the claim flow.

Wallet session, claim orchestration, the local transaction ledger, and the
HTTP clients for token discovery and the claim read API.
"""

from .orchestrator import ClaimOrchestrator, ClaimFlowState, FlowGuard, FlowKind
from .session import ClaimSession
from .discovery import TokenDiscoveryClient
from .ledger import TransactionLedger, MemoryStore, JsonFileStore
from .http_client import ClaimApiClient

__all__ = [
    "ClaimOrchestrator",
    "ClaimFlowState",
    "FlowGuard",
    "FlowKind",
    "ClaimSession",
    "TokenDiscoveryClient",
    "TransactionLedger",
    "MemoryStore",
    "JsonFileStore",
    "ClaimApiClient",
]
