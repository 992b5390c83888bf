"""
On-chain reads and receipt verification for the claim flow.
"""

import logging
from typing import Any, Dict, Iterable, Sequence

from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

from .constants import TRANSFER_EVENT_TOPIC
from .ERC20_ABI import get_allowance_abi
from ...engine.exceptions import ClaimVerificationError
from ...schemas.transactions import EVMTransactionConfirmation, hexify

logger = logging.getLogger(__name__)


async def query_erc20_allowance(w3: AsyncWeb3, token_addr: str, owner: str, spender: str) -> int:
    """
    Retrieves the amount of tokens that an owner allowed a spender to withdraw.

    This function calls the 'allowance(address,address)' constant method of an ERC20
    smart contract. It performs checksum address conversion and handles potential
    exceptions during the RPC call.

    Args:
        w3 (AsyncWeb3): The Web3 instance connected to the target blockchain.
        token_addr (str): The contract address of the ERC20 token.
        owner (str): The address of the token holder.
        spender (str): The address authorized to spend the tokens.

    Returns:
        int: The remaining allowance amount in the token's base units (e.g., wei).

    Raises:
        ValueError: If any provided address is not a valid hex address.
        Web3Exception: If the contract call fails or the node returns an error.
    """
    checksum_token = w3.to_checksum_address(token_addr)
    checksum_owner = w3.to_checksum_address(owner)
    checksum_spender = w3.to_checksum_address(spender)

    contract = w3.eth.contract(address=checksum_token, abi=get_allowance_abi())
    try:
        allowance = await contract.functions.allowance(checksum_owner, checksum_spender).call()
        return int(allowance)
    except Web3Exception as e:
        raise Web3Exception(
            f"Failed to query allowance for token {token_addr}. "
            f"Owner: {owner}, Spender: {spender}. Error: {e}"
        ) from e


def _recipient_from_topic(topic: str) -> str:
    return "0x" + topic[-40:]


def sum_transfers_to(
    logs: Iterable[Dict[str, Any]],
    token_addresses: Sequence[str],
    recipient: str,
) -> int:
    """
    Sum ERC20 Transfer amounts paid to ``recipient`` by ``token_addresses``.

    A log qualifies only when it was emitted by one of the tokens, its topic0
    is the Transfer signature, it has exactly three topics, its data is not
    empty, and its recipient topic equals ``recipient``.
    """
    tokens = {address.lower() for address in token_addresses}
    wallet = recipient.lower()
    total = 0
    for log in logs:
        if hexify(log.get("address", "")) not in tokens:
            continue
        topics = [hexify(topic) for topic in log.get("topics", [])]
        if len(topics) != 3 or topics[0] != TRANSFER_EVENT_TOPIC:
            continue
        data = hexify(log.get("data") or "0x")
        if data == "0x":
            continue
        if _recipient_from_topic(topics[2]) != wallet:
            continue
        total += int(data, 16)
    return total


def verify_claim_transfers(
    confirmation: EVMTransactionConfirmation,
    token_addresses: Sequence[str],
    recipient: str,
) -> int:
    """
    Confirm a claim receipt actually paid the claiming wallet.

    Args:
        confirmation: Receipt of the claim transaction.
        token_addresses: Tokens whose Transfer logs count.
        recipient: Claiming wallet.

    Returns:
        int: Total amount transferred to ``recipient``.

    Raises:
        ClaimVerificationError: If the receipt did not succeed or no positive
            qualifying transfer was found.
    """
    if not confirmation.is_success():
        raise ClaimVerificationError(
            f"Claim transaction failed: {confirmation.error_message or confirmation.status.value}",
            tx_hash=confirmation.tx_hash,
        )

    total = sum_transfers_to(confirmation.logs or [], token_addresses, recipient)
    logger.debug("Claim %s transferred %s to %s", confirmation.tx_hash, total, recipient)
    if total <= 0:
        raise ClaimVerificationError(
            "Claim transaction succeeded but no tokens were transferred to your wallet",
            tx_hash=confirmation.tx_hash,
        )
    return total
