"""
Receipt verification and allowance gate tests.
"""

import pytest

from test_mocks import (
    MOCK_OTHER_ADDRESS,
    MOCK_OWNER_ADDRESS,
    MOCK_TOKEN_ADDRESS,
    MOCK_TX_HASH,
    ONE_WETH,
    WETH_ADDRESS,
    create_mock_receipt,
    create_transfer_log,
)

from claim_router.adapters.bases import needs_approval
from claim_router.adapters.evm.verifies import sum_transfers_to, verify_claim_transfers
from claim_router.engine.exceptions import ClaimVerificationError
from claim_router.schemas.transactions import EVMTransactionConfirmation


def confirmation(logs, status=1):
    return EVMTransactionConfirmation.from_receipt(create_mock_receipt(status=status, logs=logs))


class TestNeedsApproval:

    def test_zero_allowance_without_amount(self):
        assert needs_approval(0) is True

    def test_positive_allowance_without_amount(self):
        assert needs_approval(1) is False

    def test_allowance_equal_to_amount(self):
        assert needs_approval(500, 500) is False

    def test_allowance_one_below_amount(self):
        assert needs_approval(499, 500) is True

    def test_zero_amount_never_needs_approval(self):
        assert needs_approval(0, 0) is False


class TestSumTransfers:

    def test_counts_only_transfers_to_recipient(self):
        logs = [
            create_transfer_log(WETH_ADDRESS, MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS, ONE_WETH),
            create_transfer_log(WETH_ADDRESS, MOCK_OWNER_ADDRESS, MOCK_OTHER_ADDRESS, ONE_WETH // 10),
        ]
        assert sum_transfers_to(logs, [WETH_ADDRESS], MOCK_OWNER_ADDRESS) == ONE_WETH

    def test_ignores_other_tokens(self):
        logs = [create_transfer_log(MOCK_TOKEN_ADDRESS, MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS, 5)]
        assert sum_transfers_to(logs, [WETH_ADDRESS], MOCK_OWNER_ADDRESS) == 0

    def test_requires_exactly_three_topics(self):
        log = create_transfer_log(WETH_ADDRESS, MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS, 5)
        log["topics"] = log["topics"] + ["0x" + "00" * 32]
        assert sum_transfers_to([log], [WETH_ADDRESS], MOCK_OWNER_ADDRESS) == 0

    def test_ignores_empty_data(self):
        log = create_transfer_log(WETH_ADDRESS, MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS, 5)
        log["data"] = "0x"
        assert sum_transfers_to([log], [WETH_ADDRESS], MOCK_OWNER_ADDRESS) == 0

    def test_address_case_is_ignored(self):
        logs = [create_transfer_log(WETH_ADDRESS.lower(), MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS.lower(), 9)]
        assert sum_transfers_to(logs, [WETH_ADDRESS], MOCK_OWNER_ADDRESS) == 9


class TestVerifyClaimTransfers:

    def test_positive_transfer_passes(self):
        logs = [create_transfer_log(WETH_ADDRESS, MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS, ONE_WETH)]
        assert verify_claim_transfers(confirmation(logs), [WETH_ADDRESS], MOCK_OWNER_ADDRESS) == ONE_WETH

    def test_no_transfer_fails(self):
        with pytest.raises(ClaimVerificationError, match="no tokens were transferred") as exc_info:
            verify_claim_transfers(confirmation([]), [WETH_ADDRESS], MOCK_OWNER_ADDRESS)
        assert exc_info.value.tx_hash == MOCK_TX_HASH

    def test_zero_amount_transfer_fails(self):
        logs = [create_transfer_log(WETH_ADDRESS, MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS, 0)]
        with pytest.raises(ClaimVerificationError):
            verify_claim_transfers(confirmation(logs), [WETH_ADDRESS], MOCK_OWNER_ADDRESS)

    def test_failed_receipt_fails(self):
        logs = [create_transfer_log(WETH_ADDRESS, MOCK_OTHER_ADDRESS, MOCK_OWNER_ADDRESS, ONE_WETH)]
        with pytest.raises(ClaimVerificationError, match="Claim transaction failed"):
            verify_claim_transfers(confirmation(logs, status=0), [WETH_ADDRESS], MOCK_OWNER_ADDRESS)
