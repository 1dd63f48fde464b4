"""
Remote profile directory with a local fallback.

Profiles are read from the remote `perfis` table under a timeout. Every
successful load is cached locally under `users_cache`; when the remote is
slow or unreachable the cached list is served instead.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from domain.errors import RemoteUnavailable
from domain.user import Actor
from repositories.kv_store import USERS_CACHE_KEY, KeyValueStore
from repositories.remote_mapper import PROFILES_TABLE, from_profile_row
from repositories.remote_repository import ConnectionStatus, RemoteStore
from services.remote_calls import call_remote

logger = logging.getLogger(__name__)


def _to_actors(rows: List[Dict[str, Any]]) -> List[Actor]:
    actors: List[Actor] = []
    for row in rows:
        try:
            actors.append(from_profile_row(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed profile row", extra={"profile_id": row.get("id"), "error": str(exc)})
    return actors


class ProfileDirectory:
    def __init__(
        self,
        remote: RemoteStore,
        cache: KeyValueStore,
        *,
        timeout: float = 5.0,
        probe_timeout: float = 3.0,
    ) -> None:
        self._remote = remote
        self._cache = cache
        self._timeout = timeout
        self._probe_timeout = probe_timeout

    def cached(self) -> List[Actor]:
        raw = self._cache.get(USERS_CACHE_KEY)
        if raw is None:
            return []
        try:
            rows = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            logger.warning("Profile cache unreadable", extra={"error": str(exc)})
            return []
        if not isinstance(rows, list):
            return []
        return _to_actors([r for r in rows if isinstance(r, dict)])

    async def load(self) -> List[Actor]:
        """Fetch profiles remotely; fall back to the local cache on failure."""

        try:
            rows = await call_remote(
                self._remote.select(PROFILES_TABLE, order="nome"),
                timeout=self._timeout,
                operation="load profiles",
            )
        except RemoteUnavailable:
            logger.warning("Profile directory unavailable; serving cached profiles")
            return self.cached()

        self._cache.set(USERS_CACHE_KEY, json.dumps(rows, default=str).encode("utf-8"))
        return _to_actors(rows)

    async def probe(self) -> ConnectionStatus:
        """Connectivity check with its own, shorter deadline."""

        try:
            return await call_remote(
                self._remote.probe(),
                timeout=self._probe_timeout,
                operation="connectivity probe",
            )
        except RemoteUnavailable as exc:
            return ConnectionStatus(is_connected=False, error=str(exc))


__all__ = ["ProfileDirectory"]
