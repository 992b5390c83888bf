"""
Transaction schema models.

Transaction requests handed to wallet signers, normalized receipts, and
token metadata.
"""

from typing import Any, Dict, List, Literal, Mapping, Optional

from eth_utils import to_hex
from pydantic import Field

from .bases import BaseTransactionConfirmation, CanonicalModel, TransactionStatus


def hexify(value: Any) -> str:
    """Lowercase 0x-hex for bytes, HexBytes, ints and hex strings."""
    if isinstance(value, (bytes, bytearray)):
        return to_hex(bytes(value)).lower()
    if isinstance(value, int):
        return to_hex(value)
    text = str(value).lower()
    return text if text.startswith("0x") else "0x" + text


class TransactionRequest(CanonicalModel):
    """
    Unsigned transaction handed to a wallet signer.

    Attributes:
        to: Target contract address
        data: 0x-prefixed calldata
        value: Native value in wei (always 0 on the claim path)
        description: Short label used for status messages and logs
    """

    to: str
    data: str
    value: int = Field(default=0, ge=0)
    description: Optional[str] = None

    def to_rpc_params(self, sender: str) -> Dict[str, Any]:
        """``eth_sendTransaction`` parameter object."""
        return {"from": sender, "to": self.to, "data": self.data, "value": hex(self.value)}


class TokenMetadata(CanonicalModel):
    symbol: str
    decimals: int = Field(..., ge=0)


class EVMTransactionConfirmation(BaseTransactionConfirmation):
    """
    EVM-Specific Transaction Confirmation.

    Built from a web3 receipt (``TxReceipt`` / ``AttributeDict``) or from a
    local chain receipt of the same shape. Logs are normalized to plain dicts
    with lowercase hex ``address``, ``topics`` and ``data``.

    Attributes:
        tx_hash: Transaction hash (0x-prefixed hex string)
        block_number: Block number containing transaction
        gas_used: Actual gas consumed by transaction
        from_address: Transaction sender address
        to_address: Transaction receiver/contract address
    """

    confirmation_type: Literal["evm"] = Field(default="evm", description="Confirmation type identifier")
    tx_hash: str = Field(..., description="Transaction hash (0x-prefixed hex string on EVM)")
    block_number: Optional[int] = Field(None, ge=0, description="Block number containing transaction")
    gas_used: Optional[int] = Field(None, ge=0, description="Actual gas consumed by transaction")
    from_address: Optional[str] = Field(None, description="Transaction sender address")
    to_address: Optional[str] = Field(None, description="Transaction receiver/contract address")

    @classmethod
    def from_receipt(cls, receipt: Mapping[str, Any], tx_hash: Optional[str] = None) -> "EVMTransactionConfirmation":
        logs: List[Dict[str, Any]] = []
        for log in receipt.get("logs") or []:
            logs.append({
                "address": hexify(log["address"]),
                "topics": [hexify(topic) for topic in log.get("topics", [])],
                "data": hexify(log.get("data") or b""),
            })

        succeeded = receipt.get("status") == 1
        return cls(
            status=TransactionStatus.SUCCESS if succeeded else TransactionStatus.FAILED,
            tx_hash=tx_hash or hexify(receipt["transactionHash"]),
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            from_address=receipt.get("from"),
            to_address=receipt.get("to"),
            logs=logs,
            confirmations=1 if succeeded else 0,
            error_message=None if succeeded else (receipt.get("revertReason") or "Transaction reverted on-chain"),
        )
