"""
Durable key-value persistence for local stores.

Keys follow `<namespace>_<user_id>`; each key holds one whole partition
(a user's sale list or encoded draft cache) and is always rewritten in full.

Two backends:
- InMemoryKeyValueStore: process-local, used by tests and ephemeral sessions.
- FileKeyValueStore: one file per key under a root directory; writes go to a
  temp file first and are moved into place atomically.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Protocol
from urllib.parse import quote, unquote

SALES_NAMESPACE: str = "sales"
DRAFTS_NAMESPACE: str = "drafts"
USERS_CACHE_KEY: str = "users_cache"

_FILE_SUFFIX = ".dat"


def partition_key(namespace: str, user_id: str) -> str:
    if not user_id:
        raise ValueError("user_id must not be empty")
    return f"{namespace}_{user_id}"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self, prefix: str = "") -> List[str]: ...


class InMemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class FileKeyValueStore:
    """File-backed store rooted at `root` (created on first use)."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / (quote(key, safe="") + _FILE_SUFFIX)

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self, prefix: str = "") -> List[str]:
        if not self.root.exists():
            return []
        found = []
        for path in self.root.glob(f"*{_FILE_SUFFIX}"):
            key = unquote(path.name[: -len(_FILE_SUFFIX)])
            if key.startswith(prefix):
                found.append(key)
        return sorted(found)


__all__ = [
    "SALES_NAMESPACE",
    "DRAFTS_NAMESPACE",
    "USERS_CACHE_KEY",
    "partition_key",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "FileKeyValueStore",
]
