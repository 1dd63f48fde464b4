"""
Synchronizer: pushes local sale records to the remote store.

Per record, two upserts run in order:
1. the customer projection into `clientes`, keyed by email
2. the sale projection into `vendas`, referencing the returned customer id

Each record is pushed under its own timeout. A failing record is logged and
counted; the batch always continues. Failed records are picked up again by the
next scheduled run, never retried immediately. A record that fails
`max_attempts` runs in a row is parked and reported as skipped until reset().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from domain.errors import RemoteUnavailable
from domain.sale import Sale
from domain.time import to_iso_utc
from repositories.remote_mapper import (
    CUSTOMER_NATURAL_KEY,
    CUSTOMERS_TABLE,
    SALES_TABLE,
    to_customer_row,
    to_sale_row,
)
from repositories.remote_repository import RemoteStore
from services.remote_calls import call_remote

logger = logging.getLogger(__name__)

DEFAULT_MAX_SYNC_ATTEMPTS: int = 5


@dataclass(frozen=True, slots=True)
class SyncReport:
    """
    Outcome of one synchronization run.

    succeeded: records pushed in full
    failed: records whose push raised or timed out this run
    skipped: parked records not attempted this run
    errors: (sale_id, message) for every failure
    """

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed


class Synchronizer:
    def __init__(
        self,
        remote: RemoteStore,
        *,
        item_timeout: float = 5.0,
        max_attempts: int = DEFAULT_MAX_SYNC_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._remote = remote
        self._item_timeout = item_timeout
        self._max_attempts = max_attempts
        self._consecutive_failures: Dict[Tuple[str, str], int] = {}

    def failure_count(self, sale: Sale) -> int:
        return self._consecutive_failures.get((sale.seller_id, sale.id), 0)

    def is_parked(self, sale: Sale) -> bool:
        return self.failure_count(sale) >= self._max_attempts

    async def _push_one(self, sale: Sale) -> None:
        registered_at = to_iso_utc(sale.created_at, name="created_at") if sale.created_at else None
        customer = await self._remote.upsert(
            CUSTOMERS_TABLE,
            to_customer_row(sale.customer_data, registered_at=registered_at),
            on_conflict=CUSTOMER_NATURAL_KEY,
        )
        customer_id = customer.get("id")
        if customer_id is None:
            raise RuntimeError(f"Customer upsert for sale {sale.id} returned no id")

        await self._remote.upsert(SALES_TABLE, to_sale_row(sale, customer_id), on_conflict="id")

    async def push(self, sales: Iterable[Sale]) -> SyncReport:
        """
        Push every submitted sale in `sales`, one at a time.

        Drafts are ignored. Never raises for per-record failures.
        """

        succeeded = failed = skipped = 0
        errors: List[Tuple[str, str]] = []

        for sale in sales:
            if sale.is_draft:
                continue
            key = (sale.seller_id, sale.id)
            if self.is_parked(sale):
                skipped += 1
                continue

            try:
                await call_remote(
                    self._push_one(sale),
                    timeout=self._item_timeout,
                    operation=f"sync sale {sale.id}",
                )
            except RemoteUnavailable as exc:
                failed += 1
                attempts = self._consecutive_failures.get(key, 0) + 1
                self._consecutive_failures[key] = attempts
                errors.append((sale.id, str(exc)))
                logger.warning(
                    "Sale sync failed",
                    extra={"sale_id": sale.id, "seller_id": sale.seller_id, "attempts": attempts},
                )
                if attempts >= self._max_attempts:
                    logger.error(
                        "Sale sync parked after repeated failures",
                        extra={"sale_id": sale.id, "seller_id": sale.seller_id, "attempts": attempts},
                    )
            else:
                succeeded += 1
                self._consecutive_failures.pop(key, None)

        report = SyncReport(succeeded=succeeded, failed=failed, skipped=skipped, errors=errors)
        logger.info(
            "Sync run complete",
            extra={"succeeded": succeeded, "failed": failed, "skipped": skipped},
        )
        return report

    def reset(self) -> None:
        self._consecutive_failures.clear()


__all__ = ["DEFAULT_MAX_SYNC_ATTEMPTS", "SyncReport", "Synchronizer"]
