"""
EVM Adapter Test Suite

Tests for EVMAdapter reads against a mocked AsyncWeb3:
- availableFees single and batched reads (multicall chunking, failures as zero)
- allowance gate, balances and token metadata
- receipt waiting and timeout mapping

Usage:
    pytest tests/test_adapter/test_evm_adapter.py -v
"""

from unittest.mock import patch

import pytest
from web3.exceptions import TimeExhausted, Web3Exception

from test_mocks import (
    MOCK_OTHER_ADDRESS,
    MOCK_OWNER_ADDRESS,
    MOCK_TOKEN_ADDRESS,
    MOCK_TX_HASH,
    ONE_WETH,
    WETH_ADDRESS,
    MockWeb3Provider,
    aggregate_results,
    create_mock_receipt,
    create_transfer_log,
)

from claim_router.adapters.evm.adapter import EVMAdapter
from claim_router.adapters.evm.constants import ClaimSettings
from claim_router.engine.exceptions import ConfirmationTimeoutError, UpstreamReadError
from claim_router.schemas.bases import TransactionStatus


# ========================================================================
# Test Fixtures
# ========================================================================

@pytest.fixture
def settings():
    return ClaimSettings(multicall_batch_size=2)


@pytest.fixture
def evm_adapter(settings):
    """Provide an EVMAdapter whose web3 instance is replaced per test."""
    return EVMAdapter(settings)


def tokens(count):
    return [f"0x{index + 1:040x}" for index in range(count)]


# ========================================================================
# Test Classes
# ========================================================================

class TestEVMAdapterInitialization:
    """Test EVMAdapter construction."""

    def test_settlement_metadata_is_preloaded(self, evm_adapter):
        assert evm_adapter.settlement_token == WETH_ADDRESS

    @pytest.mark.asyncio
    async def test_settlement_metadata_needs_no_read(self, evm_adapter):
        mock_web3 = MockWeb3Provider(mock_symbol="WRONG")
        with patch.object(evm_adapter, "_get_web3_instance", return_value=mock_web3):
            metadata = await evm_adapter.token_metadata(WETH_ADDRESS.lower())

        assert metadata.symbol == "WETH"
        assert metadata.decimals == 18
        mock_web3.eth.contract.assert_not_called()

    def test_web3_instance_is_built_once(self, evm_adapter):
        first = evm_adapter._get_web3_instance()
        assert evm_adapter._get_web3_instance() is first


class TestAvailableFees:
    """Test distributor reads."""

    @pytest.mark.asyncio
    async def test_direct_read(self, settings):
        adapter = EVMAdapter(settings, web3=MockWeb3Provider(mock_fees=ONE_WETH))
        assert await adapter.available_fees(MOCK_OWNER_ADDRESS, WETH_ADDRESS) == ONE_WETH

    @pytest.mark.asyncio
    async def test_direct_read_failure_raises_upstream_error(self, settings):
        adapter = EVMAdapter(settings, web3=MockWeb3Provider(mock_fees=Web3Exception("rpc down")))
        with pytest.raises(UpstreamReadError, match="rpc down"):
            await adapter.available_fees(MOCK_OWNER_ADDRESS, WETH_ADDRESS)

    @pytest.mark.asyncio
    async def test_batch_reads_failed_entries_as_zero(self, settings):
        addresses = tokens(2)
        mock_web3 = MockWeb3Provider(mock_aggregate=aggregate_results([7, None]))
        adapter = EVMAdapter(settings, web3=mock_web3)

        result = await adapter.available_fees_batch(MOCK_OWNER_ADDRESS, addresses)

        assert result == {addresses[0]: 7, addresses[1]: 0}

    @pytest.mark.asyncio
    async def test_batch_short_return_data_reads_as_zero(self, settings):
        addresses = tokens(1)
        mock_web3 = MockWeb3Provider(mock_aggregate=[(True, b"\x01")])
        adapter = EVMAdapter(settings, web3=mock_web3)

        assert await adapter.available_fees_batch(MOCK_OWNER_ADDRESS, addresses) == {addresses[0]: 0}

    @pytest.mark.asyncio
    async def test_batch_is_chunked(self, settings):
        addresses = tokens(5)
        mock_web3 = MockWeb3Provider(mock_aggregate=aggregate_results([1, 1]))
        adapter = EVMAdapter(settings, web3=mock_web3)

        await adapter.available_fees_batch(MOCK_OWNER_ADDRESS, addresses)

        # 5 tokens at a batch size of 2
        assert mock_web3.contract.functions.aggregate3.call_count == 3

    @pytest.mark.asyncio
    async def test_failed_batch_reads_as_zero(self, settings):
        addresses = tokens(2)
        mock_web3 = MockWeb3Provider(mock_aggregate=Web3Exception("multicall reverted"))
        adapter = EVMAdapter(settings, web3=mock_web3)

        assert await adapter.available_fees_batch(MOCK_OWNER_ADDRESS, addresses) == {a: 0 for a in addresses}

    @pytest.mark.asyncio
    async def test_empty_batch_makes_no_call(self, settings):
        mock_web3 = MockWeb3Provider()
        adapter = EVMAdapter(settings, web3=mock_web3)

        assert await adapter.available_fees_batch(MOCK_OWNER_ADDRESS, []) == {}
        mock_web3.eth.contract.assert_not_called()


class TestAllowanceGate:
    """Test router allowance checks."""

    @pytest.mark.asyncio
    async def test_exact_allowance_needs_no_approval(self, evm_adapter, settings):
        with patch.object(evm_adapter, "_get_web3_instance", return_value=MockWeb3Provider(mock_allowance=100)):
            status = await evm_adapter.check_allowance(
                MOCK_OWNER_ADDRESS, settings.router_address, MOCK_TOKEN_ADDRESS, 100
            )
        assert status.allowance == "100"
        assert status.needs_approval is False

    @pytest.mark.asyncio
    async def test_allowance_one_below_needs_approval(self, evm_adapter, settings):
        with patch.object(evm_adapter, "_get_web3_instance", return_value=MockWeb3Provider(mock_allowance=99)):
            status = await evm_adapter.check_allowance(
                MOCK_OWNER_ADDRESS, settings.router_address, MOCK_TOKEN_ADDRESS, 100
            )
        assert status.needs_approval is True

    @pytest.mark.asyncio
    async def test_read_failure_needs_approval(self, evm_adapter, settings):
        failing = MockWeb3Provider(mock_allowance=Web3Exception("execution reverted"))
        with patch.object(evm_adapter, "_get_web3_instance", return_value=failing):
            status = await evm_adapter.check_allowance(
                MOCK_OWNER_ADDRESS, settings.router_address, MOCK_TOKEN_ADDRESS, 1
            )
        assert status.allowance == "0"
        assert status.needs_approval is True


class TestTokenReads:
    """Test balances and metadata."""

    @pytest.mark.asyncio
    async def test_balance_of(self, settings):
        adapter = EVMAdapter(settings, web3=MockWeb3Provider(mock_balance=42))
        assert await adapter.balance_of(MOCK_TOKEN_ADDRESS, MOCK_OWNER_ADDRESS) == 42

    @pytest.mark.asyncio
    async def test_metadata_is_cached(self, settings):
        mock_web3 = MockWeb3Provider(mock_symbol="DEGEN", mock_decimals=6)
        adapter = EVMAdapter(settings, web3=mock_web3)

        first = await adapter.token_metadata(MOCK_TOKEN_ADDRESS)
        second = await adapter.token_metadata(MOCK_TOKEN_ADDRESS.lower())

        assert (first.symbol, first.decimals) == ("DEGEN", 6)
        assert second == first
        assert mock_web3.contract.functions.symbol.call_count == 1

    @pytest.mark.asyncio
    async def test_metadata_failure_falls_back_and_retries(self, settings):
        mock_web3 = MockWeb3Provider(mock_symbol=Web3Exception("not a token"))
        adapter = EVMAdapter(settings, web3=mock_web3)

        metadata = await adapter.token_metadata(MOCK_TOKEN_ADDRESS)
        await adapter.token_metadata(MOCK_TOKEN_ADDRESS)

        assert metadata.symbol == MOCK_TOKEN_ADDRESS[:8]
        assert metadata.decimals == 18
        assert mock_web3.contract.functions.symbol.call_count == 2

    @pytest.mark.asyncio
    async def test_router_tax_bps(self, settings):
        adapter = EVMAdapter(settings, web3=MockWeb3Provider(mock_tax_bps=450))
        assert await adapter.router_tax_bps() == 450


class TestReceipts:
    """Test receipt waiting."""

    @pytest.mark.asyncio
    async def test_receipt_is_normalized(self, settings):
        log = create_transfer_log(WETH_ADDRESS, MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS, ONE_WETH)
        receipt = create_mock_receipt(logs=[log])
        adapter = EVMAdapter(settings, web3=MockWeb3Provider(receipt=receipt))

        confirmation = await adapter.wait_for_receipt(MOCK_TX_HASH, timeout=5)

        assert confirmation.status == TransactionStatus.SUCCESS
        assert confirmation.tx_hash == MOCK_TX_HASH
        assert confirmation.logs[0]["address"] == WETH_ADDRESS.lower()

    @pytest.mark.asyncio
    async def test_reverted_receipt(self, settings):
        adapter = EVMAdapter(settings, web3=MockWeb3Provider(receipt=create_mock_receipt(status=0)))

        confirmation = await adapter.wait_for_receipt(MOCK_TX_HASH, timeout=5)

        assert confirmation.status == TransactionStatus.FAILED
        assert not confirmation.is_success()

    @pytest.mark.asyncio
    async def test_timeout_maps_to_confirmation_timeout(self, settings):
        adapter = EVMAdapter(settings, web3=MockWeb3Provider(receipt_error=TimeExhausted("not mined")))

        with pytest.raises(ConfirmationTimeoutError) as exc_info:
            await adapter.wait_for_receipt(MOCK_TX_HASH, timeout=5)

        assert exc_info.value.tx_hash == MOCK_TX_HASH
