"""
Transaction ledger tests.
"""

import json
from unittest.mock import patch

import pytest

from claim_router.clients.ledger import LEDGER_KEY, JsonFileStore, MemoryStore, TransactionLedger
from claim_router.schemas.claims import LedgerEntry
from claim_router.schemas.https import RewardAsset, TotalClaimable


def claimed(*symbols):
    rewards = [
        RewardAsset(
            address=f"0x{index + 1:040x}",
            symbol=symbol,
            decimals=18,
            amount="1000",
            formatted_amount="1.0000e-15",
        )
        for index, symbol in enumerate(symbols)
    ]
    return TotalClaimable(rewards=rewards, token_addresses=[reward.address for reward in rewards])


class TestLedgerEntry:

    def test_single_and_batch(self):
        assert LedgerEntry.from_claim(claimed("WETH"), "0x01").type == "single"
        assert LedgerEntry.from_claim(claimed("WETH", "DEGEN"), "0x02").type == "batch"

    def test_payload_fields(self):
        entry = LedgerEntry.from_claim(claimed("WETH", "DEGEN"), "0xabc")
        payload = entry.to_payload()

        assert payload["txHash"] == "0xabc"
        assert payload["tokensClaimed"] == ["WETH", "DEGEN"]
        assert payload["poolAddresses"] == [reward.address for reward in entry.rewards]
        assert payload["timestamp"].endswith("Z")


class TestTransactionLedger:

    def test_recent_is_newest_first(self):
        ledger = TransactionLedger()
        for index in range(3):
            ledger.append(LedgerEntry.from_claim(claimed("WETH"), f"0x{index}"))

        assert [entry.tx_hash for entry in ledger.recent()] == ["0x2", "0x1", "0x0"]
        assert [entry.tx_hash for entry in ledger.recent(limit=1)] == ["0x2"]
        assert [entry.tx_hash for entry in ledger.entries()] == ["0x0", "0x1", "0x2"]
        assert len(ledger) == 3

    def test_append_rewrites_whole_history(self):
        store = MemoryStore()
        ledger = TransactionLedger(store)
        ledger.append(LedgerEntry.from_claim(claimed("WETH"), "0x1"))
        ledger.append(LedgerEntry.from_claim(claimed("DEGEN"), "0x2"))

        stored = json.loads(store.get(LEDGER_KEY))

        assert [item["txHash"] for item in stored] == ["0x1", "0x2"]

    def test_loads_existing_history(self):
        store = MemoryStore()
        TransactionLedger(store).append(LedgerEntry.from_claim(claimed("WETH", "DEGEN"), "0x1"))

        reloaded = TransactionLedger(store)

        (entry,) = reloaded.entries()
        assert entry.type == "batch"
        assert entry.rewards[1].symbol == "DEGEN"

    def test_corrupt_history_starts_empty(self):
        store = MemoryStore({LEDGER_KEY: "[{\"not\": \"an entry\"}]"})
        assert TransactionLedger(store).entries() == []

        store = MemoryStore({LEDGER_KEY: "not json"})
        assert TransactionLedger(store).entries() == []


class TestJsonFileStore:

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "state" / "ledger.json"
        TransactionLedger(JsonFileStore(path)).append(LedgerEntry.from_claim(claimed("WETH"), "0x1"))

        reloaded = TransactionLedger(JsonFileStore(path))

        assert [entry.tx_hash for entry in reloaded.entries()] == ["0x1"]
        assert list(path.parent.glob("*.tmp")) == []

    def test_keeps_other_keys(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set("other", "value")
        store.set(LEDGER_KEY, "[]")

        assert store.get("other") == "value"
        assert store.get(LEDGER_KEY) == "[]"

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{truncated", encoding="utf-8")

        assert JsonFileStore(path).get(LEDGER_KEY) is None

    def test_failed_write_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / "store.json"
        store = JsonFileStore(path)
        store.set("other", "value")

        with patch("claim_router.clients.ledger.json.dump", side_effect=TypeError("not serializable")):
            with pytest.raises(TypeError):
                store.set(LEDGER_KEY, "[]")

        assert list(tmp_path.glob("*.tmp")) == []
        assert store.get("other") == "value"
        assert store.get(LEDGER_KEY) is None
