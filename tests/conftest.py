"""
Shared fixtures: a local Base claim path with a second reward token, and a
discovery stub that reports the tokens a wallet deployed.
"""

from typing import List

import pytest

from claim_router.adapters.evm.constants import ClaimSettings
from claim_router.clients.discovery import icon_color
from claim_router.contracts import deploy_base_fixture, local_address
from claim_router.schemas.https import Token

OWNER = local_address("owner")
USER = local_address("user")


class FakeDiscovery:
    """Stands in for TokenDiscoveryClient; counts lookups."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.calls = 0

    async def fetch_tokens(self, wallet: str) -> List[Token]:
        self.calls += 1
        return list(self.tokens)

    async def aclose(self) -> None:
        pass


def make_token(address: str, symbol: str) -> Token:
    return Token(
        id=address,
        name=f"{symbol} token",
        symbol=symbol,
        contract_address=address,
        created_at="2025-01-01T00:00:00Z",
        icon_color=icon_color(address),
    )


@pytest.fixture
def settings():
    """Mainnet defaults with settling that does not sleep."""
    return ClaimSettings(settle_interval=0, settle_attempts=2)


@pytest.fixture
def deployment(settings):
    return deploy_base_fixture(OWNER, settings=settings)


@pytest.fixture
def degen(deployment):
    return deployment.add_token("DEGEN", 18)


@pytest.fixture
def reader(deployment):
    return deployment.reader()


@pytest.fixture
def discovery(degen):
    return FakeDiscovery([make_token(degen.address, "DEGEN")])
