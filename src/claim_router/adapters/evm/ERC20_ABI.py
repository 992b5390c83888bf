"""
ERC20 Smart Contract ABI Module

This module provides minimal ABI definitions for the ERC20 calls the claim flow
makes: metadata reads, balances, router allowances and approvals, plus the
Transfer event used to verify claims.

Usage:
    from ERC20_ABI import (
        get_balance_abi,
        get_allowance_abi,
        get_approve_abi,
    )

    # Query balance
    balance_abi = get_balance_abi()

    # Approve the router
    approve_abi = get_approve_abi()
"""

from typing import Dict, Any, List


def get_balance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for querying a token balance.

    Returns:
        List[Dict[str, Any]]: ABI for balanceOf function

    Example:
        abi = get_balance_abi()
        # Use with web3.py: web3.eth.contract(address=token_address, abi=abi)
        # Call: contract.functions.balanceOf(address).call()
    """
    return [
        {
            "name": "balanceOf",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "account", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_allowance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `allowance(owner, spender)`.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 `allowance` function.

    Example:
        abi = get_allowance_abi()
        contract = web3.eth.contract(address=token_address, abi=abi)
        allowance = await contract.functions.allowance(owner, router).call()
    """
    return [
        {
            "name": "allowance",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
            ],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_approve_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `approve(spender, amount)`.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 `approve` function.
    """
    return [
        {
            "name": "approve",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "spender", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_transfer_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `transfer` / `transferFrom`.

    Returns:
        List[Dict[str, Any]]: ABI for both transfer functions.
    """
    return [
        {
            "name": "transfer",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "to", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        },
        {
            "name": "transferFrom",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "from", "type": "address"},
                {"name": "to", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        },
    ]


def get_metadata_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for token metadata reads (`symbol`, `decimals`).

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 metadata functions.
    """
    return [
        {
            "name": "symbol",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "string"}],
        },
        {
            "name": "decimals",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "uint8"}],
        },
    ]


def get_transfer_event_abi() -> Dict[str, Any]:
    """
    Get ABI for the ERC20 `Transfer` event.

    Its topic0 is ``keccak256("Transfer(address,address,uint256)")``; `from`
    and `to` are indexed, so a standard Transfer log carries exactly three
    topics and the amount in `data`.
    """
    return {
        "name": "Transfer",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    }


def get_approval_event_abi() -> Dict[str, Any]:
    """Get ABI for the ERC20 `Approval` event."""
    return {
        "name": "Approval",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "owner", "type": "address", "indexed": True},
            {"name": "spender", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    }


def get_erc20_abi() -> List[Dict[str, Any]]:
    """Full ERC20 ABI used by the claim flow."""
    return (
        get_balance_abi()
        + get_allowance_abi()
        + get_approve_abi()
        + get_transfer_abi()
        + get_metadata_abi()
        + [get_transfer_event_abi(), get_approval_event_abi()]
    )
