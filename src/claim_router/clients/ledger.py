"""
Local transaction history.

The ledger lives under one named key of a key/value store as a JSON array
of ``LedgerEntry`` payloads. It is read once when the ledger is created and
rewritten in full on every append.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from ..schemas.claims import LedgerEntry

logger = logging.getLogger(__name__)

LEDGER_KEY = "claim-transaction-history"

_entries_adapter = TypeAdapter(List[LedgerEntry])


class KeyValueStore(ABC):
    """Named-key string storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore(KeyValueStore):
    """
    Store backed by one JSON object file (``{key: value}``).

    Writes go to a temporary file in the same directory and replace the
    original, so a crash never leaves a truncated file behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise


class TransactionLedger:
    """
    Append-only claim history.

    Args:
        store: Persistence backend.
        key: Store key holding the JSON array.
    """

    def __init__(self, store: Optional[KeyValueStore] = None, key: str = LEDGER_KEY):
        self.store = store or MemoryStore()
        self.key = key
        self._entries: List[LedgerEntry] = self._load()

    def _load(self) -> List[LedgerEntry]:
        raw = self.store.get(self.key)
        if not raw:
            return []
        try:
            return _entries_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable transaction history under %r: %s", self.key, e)
            return []

    def append(self, entry: LedgerEntry) -> None:
        self._entries.append(entry)
        payload = [item.to_payload() for item in self._entries]
        self.store.set(self.key, json.dumps(payload, ensure_ascii=False))
        logger.info("Recorded %s claim %s (%d entries)", entry.type, entry.tx_hash, len(self._entries))

    def entries(self) -> List[LedgerEntry]:
        """Entries in append order."""
        return list(self._entries)

    def recent(self, limit: Optional[int] = None) -> List[LedgerEntry]:
        """Entries newest first."""
        ordered = list(reversed(self._entries))
        return ordered if limit is None else ordered[:limit]

    def __len__(self) -> int:
        return len(self._entries)
