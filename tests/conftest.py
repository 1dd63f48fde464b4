"""
Pytest configuration and shared fixtures.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules.
"""

import asyncio
import sys
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import pytest

# Add the project directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.sale import CustomerData  # noqa: E402
from domain.user import Actor, UserRole  # noqa: E402
from repositories.kv_store import InMemoryKeyValueStore  # noqa: E402
from repositories.remote_repository import ConnectionStatus  # noqa: E402


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose set() raises OSError for keys starting with fail_prefix."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_prefix: Optional[str] = None
        self.failed_sets = 0

    def set(self, key: str, value: bytes) -> None:
        if self.fail_prefix is not None and key.startswith(self.fail_prefix):
            self.failed_sets += 1
            raise OSError("disk full")
        super().set(key, value)


class FakeRemoteStore:
    """
    In-memory RemoteStore.

    fail_on(table, row) -> True makes that upsert raise; delay makes every
    call sleep first (for timeout tests); connected=False fails probes and reads.
    """

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[Any, Dict[str, Any]]] = defaultdict(dict)
        self.upserts: List[Tuple[str, Dict[str, Any]]] = []
        self.uploads: Dict[Tuple[str, str], bytes] = {}
        self.fail_on: Optional[Callable[[str, Mapping[str, Any]], bool]] = None
        self.delay: float = 0.0
        self.connected: bool = True

    async def _maybe_wait(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)

    async def upsert(self, table, row, *, on_conflict=None):
        await self._maybe_wait()
        self.upserts.append((table, dict(row)))
        if self.fail_on is not None and self.fail_on(table, row):
            raise RuntimeError(f"simulated failure writing {table}")

        rows = self.tables[table]
        key = row.get(on_conflict or "id")
        stored = {**rows.get(key, {}), **row}
        stored.setdefault("id", f"{table}-{len(rows) + 1}")
        rows[key] = stored
        return dict(stored)

    async def select(self, table, *, filters=None, order=None, limit=None):
        await self._maybe_wait()
        if not self.connected:
            raise RuntimeError("offline")
        found = [
            dict(r) for r in self.tables[table].values()
            if all(r.get(k) == v for k, v in (filters or {}).items())
        ]
        if order:
            found.sort(key=lambda r: str(r.get(order, "")))
        return found if limit is None else found[:limit]

    async def delete(self, table, *, filters):
        await self._maybe_wait()
        rows = self.tables[table]
        for key in [k for k, r in rows.items() if all(r.get(c) == v for c, v in filters.items())]:
            del rows[key]

    async def probe(self):
        await self._maybe_wait()
        if not self.connected:
            return ConnectionStatus(is_connected=False, error="offline")
        return ConnectionStatus(is_connected=True)

    async def upload(self, bucket, path, data, content_type):
        await self._maybe_wait()
        self.uploads[(bucket, path)] = data
        return f"https://storage.test/{bucket}/{path}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def flaky_store() -> FlakyKeyValueStore:
    return FlakyKeyValueStore()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def seller() -> Actor:
    return Actor(user_id="seller-1", name="João Vendedor", role=UserRole.SELLER)


@pytest.fixture
def other_seller() -> Actor:
    return Actor(user_id="seller-2", name="Carla Vendedora", role=UserRole.SELLER)


@pytest.fixture
def manager() -> Actor:
    return Actor(user_id="manager-1", name="Marta Gestora", role=UserRole.MANAGER)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="admin-1", name="Admin", role=UserRole.ADMIN)


@pytest.fixture
def valid_customer() -> CustomerData:
    return CustomerData(
        nome="Maria da Silva",
        cpf="529.982.247-25",
        data_nascimento="1980-05-17",
        nome_mae="Ana da Silva",
        contato="(11) 99999-0000",
        email="Maria@Example.com",
        rua="Praça da Sé",
        numero="100",
        bairro="Sé",
        cidade="São Paulo",
        estado="SP",
        cep="01001-000",
        plano="Plano Família",
        vencimento_dia=10,
        audio_url="https://storage.test/documentos/vendas/seller-1/consent.webm",
    )
