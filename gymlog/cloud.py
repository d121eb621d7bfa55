"""Cloud key-value mirror used to share the payload between devices.

The real service is a small synchronised namespace with a per-value size
limit.  :class:`KeyValueStore` describes the calls the store relies on;
:class:`InMemoryKeyValueStore` serves tests and offline use while
:class:`FileKeyValueStore` keeps the namespace in a JSON file, for example
inside a folder synchronised by the platform.  Writes go through a temporary
file followed by an atomic rename to avoid partial files.
"""

from __future__ import annotations

import base64
import json
import logging
import os
from pathlib import Path

# Largest value accepted for a single key, matching the hosted service limit.
MAX_VALUE_BYTES = 1024 * 1024


class QuotaExceededError(ValueError):
    """Raised when a value is larger than :data:`MAX_VALUE_BYTES`."""


class KeyValueStore:
    """Interface of the cloud namespace."""

    max_value_bytes = MAX_VALUE_BYTES

    def get_data(self, key: str) -> bytes | None:
        raise NotImplementedError

    def set_data(self, key: str, value: bytes) -> None:
        raise NotImplementedError

    def synchronize(self) -> bool:
        """Flush local changes and pull remote ones.

        Returns ``True`` when the namespace is in a consistent state.
        """
        return True

    def _check_size(self, key: str, value: bytes) -> None:
        if len(value) > self.max_value_bytes:
            raise QuotaExceededError(
                f"value for '{key}' is {len(value)} bytes, limit is {self.max_value_bytes}"
            )


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self) -> None:
        self._values: dict[str, bytes] = {}

    def get_data(self, key: str) -> bytes | None:
        return self._values.get(key)

    def set_data(self, key: str, value: bytes) -> None:
        self._check_size(key, value)
        self._values[key] = bytes(value)


class FileKeyValueStore(KeyValueStore):
    """Namespace persisted as ``{key: base64 blob}`` in a JSON file.

    Values are cached in memory; :meth:`synchronize` writes pending changes
    and then reloads the file so edits made by another device show up.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._values: dict[str, bytes] = {}
        self._dirty = False
        self._read()

    def _read(self) -> None:
        if not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self._values = {k: base64.b64decode(v) for k, v in raw.items()}
        except (OSError, ValueError, TypeError, AttributeError):
            logging.exception("Cloud namespace unreadable: %s", self.path)

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        encoded = {k: base64.b64encode(v).decode("ascii") for k, v in self._values.items()}
        tmp.write_text(json.dumps(encoded), encoding="utf-8")
        os.replace(tmp, self.path)

    def get_data(self, key: str) -> bytes | None:
        return self._values.get(key)

    def set_data(self, key: str, value: bytes) -> None:
        self._check_size(key, value)
        self._values[key] = bytes(value)
        self._dirty = True

    def synchronize(self) -> bool:
        if self._dirty:
            try:
                self._write()
            except OSError:
                logging.exception("Cloud namespace write failed: %s", self.path)
                return False
            self._dirty = False
        self._read()
        return True
