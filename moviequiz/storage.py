"""
Persistent key-value storage used by the statistics service.
"""
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, Optional


class KeyValueStorage(ABC):
    """Minimal get/set interface over durable storage."""

    def __init__(self):
        self._values: Dict[str, Any] = {}
        self._lock = threading.RLock()
        self._transaction_depth = 0

    def get_int(self, key: str) -> int:
        """Return the integer stored under key, or 0 when absent."""
        with self._lock:
            value = self._values.get(key)
        if value is None:
            return 0
        return int(value)

    def set_int(self, key: str, value: int) -> None:
        with self._lock:
            self._values[key] = int(value)
            self._maybe_flush()

    def get_date(self, key: str) -> Optional[datetime]:
        """Return the timestamp stored under key, or None when absent."""
        with self._lock:
            value = self._values.get(key)
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        return datetime.fromisoformat(value)

    def set_date(self, key: str, value: datetime) -> None:
        with self._lock:
            self._values[key] = value.isoformat()
            self._maybe_flush()

    @contextmanager
    def transaction(self) -> Iterator["KeyValueStorage"]:
        """
        Group several writes into one durable update.

        Writes made inside the block are flushed once when the outermost
        block exits. If the block raises, the values are restored to what
        they were on entry and nothing is flushed.
        """
        with self._lock:
            snapshot = dict(self._values) if self._transaction_depth == 0 else None
            self._transaction_depth += 1
            try:
                yield self
            except BaseException:
                self._transaction_depth -= 1
                if snapshot is not None:
                    self._values = snapshot
                raise
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                self._flush()

    def _maybe_flush(self) -> None:
        if self._transaction_depth == 0:
            self._flush()

    @abstractmethod
    def _flush(self) -> None:
        """Persist the current values."""


class InMemoryStorage(KeyValueStorage):
    """Process-local storage, mainly for tests."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        super().__init__()
        if initial:
            self._values.update(initial)
        self.flush_count = 0

    def _flush(self) -> None:
        self.flush_count += 1

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._values)


class JsonFileStorage(KeyValueStorage):
    """Storage persisted to a single JSON file."""

    def __init__(self, path: str):
        """
        Initialize storage backed by a JSON file.

        Args:
            path: Location of the JSON file; created on first write
        """
        super().__init__()
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)
        self._values = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            self.logger.info(f"Statistics file {self.path} not found, starting empty")
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {self.path}: {e}")
            return {}
        except OSError as e:
            self.logger.error(f"Failed to read statistics file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.error(f"Statistics file {self.path} must contain a JSON object")
            return {}
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a sibling temp file so a crash never leaves a half-written file
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._values, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            self.logger.error(f"Failed to write statistics file {self.path}: {e}")
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

        self.logger.debug(f"Flushed {len(self._values)} keys to {self.path}")
