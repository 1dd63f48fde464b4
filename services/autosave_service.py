"""
Debounced draft autosave.

Each edit replaces the pending snapshot and restarts a quiet-period timer; the
draft is written once the form has been left alone for AUTOSAVE_QUIET_SECONDS.
Rapid edits therefore coalesce into a single write of the latest snapshot.

Editing a sale that was already submitted never autosaves: those changes only
reach storage through an explicit resubmission.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from domain.errors import SalesWorkflowError
from domain.sale import CustomerData, is_temporary_id
from services.draft_service import DraftStore

logger = logging.getLogger(__name__)

AUTOSAVE_QUIET_SECONDS: float = 2.0


class DraftAutosaver:
    def __init__(
        self,
        drafts: DraftStore,
        *,
        draft_id: Optional[str] = None,
        quiet_seconds: float = AUTOSAVE_QUIET_SECONDS,
    ) -> None:
        self._drafts = drafts
        self._draft_id = draft_id
        self._quiet_seconds = quiet_seconds
        self._pending: Optional[CustomerData] = None
        self._task: Optional[asyncio.Task] = None
        self.writes = 0
        self.failed_writes = 0

    @property
    def draft_id(self) -> Optional[str]:
        """Id of the draft being edited; set after the first successful write."""

        return self._draft_id

    @property
    def enabled(self) -> bool:
        return self._draft_id is None or is_temporary_id(self._draft_id)

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def edit(self, customer_data: CustomerData) -> None:
        """Record the latest form snapshot and restart the quiet-period timer."""

        if not self.enabled:
            return

        self._pending = customer_data
        self._cancel_timer()
        self._task = asyncio.get_running_loop().create_task(self._save_after_quiet_period())

    async def _save_after_quiet_period(self) -> None:
        await asyncio.sleep(self._quiet_seconds)
        self._write()

    def _write(self) -> None:
        snapshot = self._pending
        if snapshot is None:
            return

        try:
            draft = self._drafts.save_draft(snapshot, draft_id=self._draft_id)
        except (OSError, SalesWorkflowError) as exc:
            # Snapshot stays pending; the next edit or flush() retries it.
            self.failed_writes += 1
            logger.error(
                "Autosave failed",
                extra={"draft_id": self._draft_id, "failed_writes": self.failed_writes, "error": str(exc)},
            )
            return

        self._pending = None
        if draft is None:
            return
        self._draft_id = draft.id
        self.writes += 1
        logger.debug("Autosaved draft", extra={"draft_id": draft.id, "writes": self.writes})

    async def flush(self) -> None:
        """Write the pending snapshot now instead of waiting for the timer."""

        self._cancel_timer()
        self._write()

    def cancel(self) -> None:
        """Drop the pending snapshot without writing it."""

        self._cancel_timer()
        self._pending = None

    def _cancel_timer(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


__all__ = ["AUTOSAVE_QUIET_SECONDS", "DraftAutosaver"]
