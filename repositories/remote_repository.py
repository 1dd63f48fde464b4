"""
Remote record store.

A generic row capability (upsert/select/delete by table and filter), a
connectivity probe and blob upload. The engine only depends on the
RemoteStore protocol; SupabaseRemoteStore is the production implementation.

Timeouts are not applied here. Callers wrap every call with
services.remote_calls.call_remote so a slow remote degrades to local-only mode.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol

from repositories.client import get_supabase

logger = logging.getLogger(__name__)

# Table used by the connectivity probe.
_PROBE_TABLE: str = "clientes"


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    is_connected: bool
    error: Optional[str] = None


class RemoteStore(Protocol):
    async def upsert(
        self, table: str, row: Mapping[str, Any], *, on_conflict: Optional[str] = None
    ) -> Dict[str, Any]: ...

    async def select(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]: ...

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> None: ...

    async def probe(self) -> ConnectionStatus: ...

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str: ...


def _raise_for_error(response: Any, action: str) -> None:
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")


class SupabaseRemoteStore:
    """RemoteStore backed by supabase-py's async client."""

    def __init__(self, client_factory: Callable[[], Awaitable[Any]] = get_supabase) -> None:
        self._client_factory = client_factory

    async def upsert(
        self, table: str, row: Mapping[str, Any], *, on_conflict: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Insert or update a single row and return the stored representation.

        Args:
            table: Remote table name
            row: Column values
            on_conflict: Natural-key column(s) used to detect an existing row
        """

        client = await self._client_factory()
        query = client.table(table)
        if on_conflict:
            query = query.upsert(dict(row), on_conflict=on_conflict)
        else:
            query = query.upsert(dict(row))
        response = await query.execute()
        _raise_for_error(response, f"upsert into {table}")

        rows = getattr(response, "data", None) or []
        if not rows:
            raise RuntimeError(f"Upsert into {table} returned no row")
        return rows[0]

    async def select(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        client = await self._client_factory()
        query = client.table(table).select("*")
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        if order:
            query = query.order(order)
        if limit is not None:
            query = query.limit(limit)
        response = await query.execute()
        _raise_for_error(response, f"select from {table}")
        return list(getattr(response, "data", None) or [])

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> None:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        client = await self._client_factory()
        query = client.table(table).delete()
        for column, value in filters.items():
            query = query.eq(column, value)
        response = await query.execute()
        _raise_for_error(response, f"delete from {table}")

    async def probe(self) -> ConnectionStatus:
        """Cheap one-row read; any failure is reported, never raised."""

        try:
            await self.select(_PROBE_TABLE, limit=1)
        except Exception as exc:
            logger.error("Remote connectivity probe failed", extra={"error": str(exc)})
            return ConnectionStatus(is_connected=False, error=str(exc) or "Erro desconhecido")
        return ConnectionStatus(is_connected=True)

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        client = await self._client_factory()
        storage = client.storage.from_(bucket)
        await storage.upload(path, data, {"content-type": content_type})

        public_url = storage.get_public_url(path)
        if inspect.isawaitable(public_url):
            public_url = await public_url
        return str(public_url)


__all__ = ["ConnectionStatus", "RemoteStore", "SupabaseRemoteStore"]
