"""
Claim Router, Fee Locker and Multicall3 ABI Module

ABI definitions for the contracts on the claim path:

    - Fee locker (upstream distributor): availableFees / claim
    - Multicall3: aggregate3 for batched reads and batched direct claims
    - Claim router: claimFromClanker plus its owner-gated admin surface

Usage:
    from ROUTER_ABI import get_claim_router_abi

    router = web3.eth.contract(address=router_address, abi=get_claim_router_abi())
    bps = await router.functions.claimTaxBps().call()
"""

from typing import Dict, Any, List


def get_fee_locker_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the upstream fee locker.

    ``claim`` returns nothing and pays ``feeOwner`` directly, which is why the
    router measures balance deltas instead of trusting a return value.
    """
    return [
        {
            "name": "availableFees",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "feeOwner", "type": "address"},
                {"name": "token", "type": "address"},
            ],
            "outputs": [{"name": "", "type": "uint256"}],
        },
        {
            "name": "claim",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "feeOwner", "type": "address"},
                {"name": "token", "type": "address"},
            ],
            "outputs": [],
        },
    ]


def get_multicall3_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for Multicall3 `aggregate3((address,bool,bytes)[])`.

    Returns:
        List[Dict[str, Any]]: ABI with (success, returnData) result tuples.
    """
    return [
        {
            "name": "aggregate3",
            "type": "function",
            "stateMutability": "payable",
            "inputs": [
                {
                    "name": "calls",
                    "type": "tuple[]",
                    "components": [
                        {"name": "target", "type": "address"},
                        {"name": "allowFailure", "type": "bool"},
                        {"name": "callData", "type": "bytes"},
                    ],
                }
            ],
            "outputs": [
                {
                    "name": "returnData",
                    "type": "tuple[]",
                    "components": [
                        {"name": "success", "type": "bool"},
                        {"name": "returnData", "type": "bytes"},
                    ],
                }
            ],
        }
    ]


def get_claim_router_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the claim router.

    Returns:
        List[Dict[str, Any]]: Entry point, admin functions, views and events.
    """
    return [
        {
            "name": "claimFromClanker",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "distributor", "type": "address"},
                {"name": "rewardTokens", "type": "address[]"},
            ],
            "outputs": [],
        },
        {
            "name": "setClaimTaxBps",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [{"name": "newBps", "type": "uint256"}],
            "outputs": [],
        },
        {
            "name": "setDistributor",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "distributor", "type": "address"},
                {"name": "allowed", "type": "bool"},
            ],
            "outputs": [],
        },
        {
            "name": "withdrawRebate",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "token", "type": "address"},
                {"name": "to", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [],
        },
        {
            "name": "pause",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [],
            "outputs": [],
        },
        {
            "name": "unpause",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [],
            "outputs": [],
        },
        {
            "name": "transferOwnership",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [{"name": "newOwner", "type": "address"}],
            "outputs": [],
        },
        {
            "name": "claimTaxBps",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "uint256"}],
        },
        {
            "name": "treasury",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "address"}],
        },
        {
            "name": "owner",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "address"}],
        },
        {
            "name": "paused",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "bool"}],
        },
        {
            "name": "allowedDistributors",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "", "type": "address"}],
            "outputs": [{"name": "", "type": "bool"}],
        },
        {
            "name": "Claimed",
            "type": "event",
            "anonymous": False,
            "inputs": [
                {"name": "user", "type": "address", "indexed": True},
                {"name": "distributor", "type": "address", "indexed": True},
                {"name": "token", "type": "address", "indexed": True},
                {"name": "claimed", "type": "uint256", "indexed": False},
                {"name": "tax", "type": "uint256", "indexed": False},
            ],
        },
        {
            "name": "TaxUpdated",
            "type": "event",
            "anonymous": False,
            "inputs": [
                {"name": "oldBps", "type": "uint256", "indexed": False},
                {"name": "newBps", "type": "uint256", "indexed": False},
            ],
        },
        {
            "name": "DistributorUpdated",
            "type": "event",
            "anonymous": False,
            "inputs": [
                {"name": "distributor", "type": "address", "indexed": True},
                {"name": "allowed", "type": "bool", "indexed": False},
            ],
        },
        {
            "name": "RebateWithdrawn",
            "type": "event",
            "anonymous": False,
            "inputs": [
                {"name": "token", "type": "address", "indexed": True},
                {"name": "to", "type": "address", "indexed": True},
                {"name": "amount", "type": "uint256", "indexed": False},
            ],
        },
        {
            "name": "Paused",
            "type": "event",
            "anonymous": False,
            "inputs": [{"name": "account", "type": "address", "indexed": False}],
        },
        {
            "name": "Unpaused",
            "type": "event",
            "anonymous": False,
            "inputs": [{"name": "account", "type": "address", "indexed": False}],
        },
        {
            "name": "OwnershipTransferred",
            "type": "event",
            "anonymous": False,
            "inputs": [
                {"name": "previousOwner", "type": "address", "indexed": True},
                {"name": "newOwner", "type": "address", "indexed": True},
            ],
        },
    ]
