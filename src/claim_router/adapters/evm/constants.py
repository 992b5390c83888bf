"""
EVM Chain Configuration Management

Provides the fixed Base mainnet deployment of the claim path (fee locker,
settlement asset, router, Multicall3), environment-aware settings, and the
amount conversion / display helpers shared by the read path and the
orchestrator.
"""

import os
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Dict, Optional, Any, Literal

from pydantic import BaseModel, Field
import dotenv

dotenv.load_dotenv()


# ==================== Deployment ====================

BASE_CHAIN_ID = 8453
BASE_CHAIN_ID_HEX = "0x2105"
BASE_PUBLIC_RPC_URL = "https://mainnet.base.org"

CLANKER_FEE_LOCKER_ADDRESS = "0xF3622742b1E446D92e45E22923Ef11C2fcD55D68"
WETH_ADDRESS = "0x4200000000000000000000000000000000000006"
MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"
CLAIM_ROUTER_ADDRESS = "0x410aC2f828977695aCB4802cE6Af46df577eB934"
CLAIM_TOKEN_ADDRESS = "0xdaffeb15f08581e6ca1e20a1e31e302a07e69b07"
TREASURY_ADDRESS = "0x0Ad03C988D10D7e3A9FA1aC90c2cFAB6974Ef9a3"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

CLANKER_API_BASE = "https://clanker.world/api"

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

MAX_UINT256 = 2**256 - 1
MAX_TAX_BPS = 500
DEFAULT_TAX_BPS = 300
BPS_DENOMINATOR = 10_000

MULTICALL_BATCH_SIZE = 500

BASE_CHAIN_PARAMS: Dict[str, Any] = {
    "chainId": BASE_CHAIN_ID_HEX,
    "chainName": "Base",
    "nativeCurrency": {"name": "Ether", "symbol": "ETH", "decimals": 18},
    "rpcUrls": [BASE_PUBLIC_RPC_URL],
    "blockExplorerUrls": ["https://basescan.org"],
}


# ==================== Environment ====================

def get_private_key_from_env() -> Optional[str]:
    """
    Load the claiming wallet's private key from environment variables.

    Only used by the headless LocalAccountWallet; frame and browser wallets
    sign on the user's side.

    Environment Variable:
        - EVM_PRIVATE_KEY: 0x-prefixed hex private key

    Returns:
        str: Private key from environment, or None if not configured
    """
    return os.getenv("EVM_PRIVATE_KEY")


def get_rpc_url_from_env() -> str:
    """
    Load the Base RPC endpoint from environment variables.

    Environment Variable:
        - CLAIM_RPC_URL: HTTP JSON-RPC endpoint (defaults to the public Base node)
    """
    return os.getenv("CLAIM_RPC_URL") or BASE_PUBLIC_RPC_URL


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be numeric, got {raw!r}") from e


class ClaimSettings(BaseModel):
    """
    Runtime configuration of the claim path.

    Every field has a Base mainnet default; ``from_env`` overlays the
    ``CLAIM_*`` environment variables.
    """

    rpc_url: str = BASE_PUBLIC_RPC_URL
    chain_id: int = BASE_CHAIN_ID
    router_address: str = CLAIM_ROUTER_ADDRESS
    distributor_address: str = CLANKER_FEE_LOCKER_ADDRESS
    settlement_token: str = WETH_ADDRESS
    settlement_symbol: str = "WETH"
    settlement_decimals: int = 18
    multicall_address: str = MULTICALL3_ADDRESS
    claim_token_address: str = CLAIM_TOKEN_ADDRESS
    discovery_base_url: str = CLANKER_API_BASE

    request_timeout: float = Field(default=30.0, gt=0)
    cache_ttl: float = Field(default=60.0, ge=0, description="Read-through cache TTL (seconds)")
    confirmation_timeout: float = Field(default=120.0, gt=0, description="Receipt wait bound (seconds)")
    receipt_poll_latency: float = Field(default=1.0, gt=0)
    settle_attempts: int = Field(default=6, ge=1)
    settle_interval: float = Field(default=2.5, ge=0)
    multicall_batch_size: int = Field(default=MULTICALL_BATCH_SIZE, ge=1)

    approval_policy: Literal["max", "exact"] = "max"
    direct_settlement_claim: bool = False

    @classmethod
    def from_env(cls) -> "ClaimSettings":
        """Build settings from ``CLAIM_*`` environment variables."""
        overrides: Dict[str, Any] = {"rpc_url": get_rpc_url_from_env()}
        for field, env in (
            ("router_address", "CLAIM_ROUTER_ADDRESS"),
            ("distributor_address", "CLAIM_DISTRIBUTOR_ADDRESS"),
            ("settlement_token", "CLAIM_SETTLEMENT_TOKEN"),
            ("multicall_address", "CLAIM_MULTICALL_ADDRESS"),
            ("claim_token_address", "CLAIM_TOKEN_ADDRESS"),
            ("discovery_base_url", "CLAIM_DISCOVERY_URL"),
            ("approval_policy", "CLAIM_APPROVAL_POLICY"),
        ):
            value = os.getenv(env)
            if value:
                overrides[field] = value
        overrides["cache_ttl"] = _env_float("CLAIM_CACHE_TTL", 60.0)
        overrides["confirmation_timeout"] = _env_float("CLAIM_CONFIRMATION_TIMEOUT", 120.0)
        overrides["settle_interval"] = _env_float("CLAIM_SETTLE_INTERVAL", 2.5)
        overrides["settle_attempts"] = int(_env_float("CLAIM_SETTLE_ATTEMPTS", 6))
        overrides["direct_settlement_claim"] = os.getenv("CLAIM_DIRECT_SETTLEMENT", "").lower() in ("1", "true", "yes")
        return cls(**overrides)


# ==================== Amounts ====================

def amount_to_value(*, amount: float | int | str | Decimal, decimals: int) -> int:
    """Convert a human-readable token `amount` into smallest-unit integer `value`.

    Args:
        amount: Human-readable amount (e.g. 1.5 for WETH). Accepts float/int/str/Decimal.
        decimals: Token decimals (e.g. 18 for WETH).

    Returns:
        int: Smallest-unit integer value.

    Raises:
        ValueError: If inputs are invalid or the amount cannot be represented in smallest units.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        # str() avoids binary-float expansion (0.1 -> 0.1000000000000000055...)
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = dec_amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {amount!r} is not representable with decimals={decimals} "
            f"(would create fractional smallest units)"
        )

    return int(scaled)


def value_to_amount(*, value: int | str | Decimal, decimals: int) -> Decimal:
    """Convert a smallest-unit integer `value` into an exact Decimal `amount`.

    Args:
        value: Smallest-unit integer value (e.g. 1500000000000000000 for 1.5 WETH).
        decimals: Token decimals.

    Returns:
        Decimal: Exact human-readable amount.

    Raises:
        ValueError: If inputs are invalid.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_value = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid value: {value!r}") from e

    if dec_value < 0:
        raise ValueError("value must be non-negative")

    if dec_value != dec_value.to_integral_value():
        raise ValueError("value must be an integer in smallest units")

    with localcontext() as ctx:
        ctx.prec = 100
        return dec_value.scaleb(-decimals)


def format_token_amount(value: int | str, decimals: int) -> str:
    """
    Render a raw token amount for display.

    Rules, applied to the exact decimal amount:
        - zero renders as ``"0"``
        - below 0.0001: scientific notation, 4 decimals (``"1.2346e-5"``)
        - below 1: 6 fixed decimals (``"0.500000"``)
        - below 1000: 4 fixed decimals (``"1.5000"``)
        - otherwise: comma grouping, at most 2 decimals (``"1,234.5"``)

    Args:
        value: Raw amount in base units.
        decimals: Token decimals.

    Returns:
        str: Display string.
    """
    amount = value_to_amount(value=int(value), decimals=decimals)
    if amount == 0:
        return "0"

    with localcontext() as ctx:
        ctx.prec = 100
        ctx.rounding = ROUND_HALF_UP
        if amount < Decimal("0.0001"):
            return format(amount, ".4e")
        if amount < 1:
            return format(amount.quantize(Decimal("0.000001")), "f")
        if amount < 1000:
            return format(amount.quantize(Decimal("0.0001")), "f")

        grouped = format(amount.quantize(Decimal("0.01")), ",f")
        if "." in grouped:
            grouped = grouped.rstrip("0").rstrip(".")
        return grouped
