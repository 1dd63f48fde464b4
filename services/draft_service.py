"""
Draft store for one user.

Drafts are unvalidated, partially filled enrollment forms kept in the user's
obfuscated draft cache. Rules enforced here:
- A draft exists only once `nome` or `cpf` holds text.
- A draft expires 24 hours after it was first created. Saving again does not
  extend the deadline.
- Expired drafts and drafts already promoted to a sale are hidden on read and
  dropped from storage on the next mutation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Set

from domain.errors import StoreCorruptedError, WorkflowGuardFailure
from domain.sale import (
    CustomerData,
    Sale,
    SaleStatus,
    StatusHistoryEntry,
    generate_draft_id,
    is_temporary_id,
)
from domain.time import utc_now
from domain.user import Actor
from repositories.draft_repository import DraftRepository
from repositories.sale_repository import SaleRepository

logger = logging.getLogger(__name__)

DRAFT_TTL: timedelta = timedelta(hours=24)


class DraftStore:
    def __init__(
        self,
        owner: Actor,
        drafts: DraftRepository,
        sales: SaleRepository,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._owner = owner
        self._drafts = drafts
        self._sales = sales
        self._clock = clock

    @property
    def owner(self) -> Actor:
        return self._owner

    def _promoted_ids(self) -> Set[str]:
        """Draft ids already carried by one of the owner's sales."""

        try:
            sales = self._sales.load(self._owner.user_id)
        except StoreCorruptedError as exc:
            logger.error(
                "Cannot check promoted drafts; sales partition unreadable",
                extra={"user_id": self._owner.user_id, "error": str(exc)},
            )
            return set()
        return {s.origin_draft_id for s in sales if s.origin_draft_id}

    def _live(self, drafts: List[Sale], now: datetime) -> List[Sale]:
        promoted = self._promoted_ids()
        return [d for d in drafts if not d.is_expired(now) and d.id not in promoted]

    def list_drafts(self) -> List[Sale]:
        """
        Unexpired, unpromoted drafts in stored order (newest first).

        Storage is not rewritten by reads.
        """

        return self._live(self._drafts.load_all(self._owner.user_id), self._clock())

    def get(self, draft_id: str) -> Optional[Sale]:
        for draft in self.list_drafts():
            if draft.id == draft_id:
                return draft
        return None

    def save_draft(self, customer_data: CustomerData, draft_id: Optional[str] = None) -> Optional[Sale]:
        """
        Create or update a draft.

        Returns:
            The stored draft, or None when the form has no identity yet
            (nothing is written in that case).

        Raises:
            WorkflowGuardFailure: draft_id names a submitted sale rather than a draft.
        """

        if draft_id is not None and not is_temporary_id(draft_id):
            raise WorkflowGuardFailure(
                f"Venda #{draft_id} já foi enviada e não pode ser salva como rascunho.",
                code="not_a_draft",
            )
        if not customer_data.has_identity():
            logger.debug("Draft not saved; no identity yet", extra={"user_id": self._owner.user_id})
            return None

        now = self._clock()
        current = self._live(self._drafts.load_all(self._owner.user_id), now)
        previous = next((d for d in current if d.id == draft_id), None) if draft_id else None

        draft = Sale(
            id=previous.id if previous else generate_draft_id(),
            seller_id=self._owner.user_id,
            seller_name=self._owner.name,
            customer_data=customer_data,
            status=SaleStatus.DRAFT,
            status_history=(
                StatusHistoryEntry(status=SaleStatus.DRAFT, updated_by=self._owner.name, updated_at=now),
            ),
            expires_at=previous.expires_at if previous else now + DRAFT_TTL,
        )

        if previous is not None:
            updated = [draft if d.id == draft.id else d for d in current]
        else:
            updated = [draft, *current]
        self._drafts.save_all(self._owner.user_id, updated)

        logger.debug(
            "Draft saved",
            extra={"user_id": self._owner.user_id, "draft_id": draft.id, "created": previous is None},
        )
        return draft

    def delete_draft(self, draft_id: str) -> bool:
        """
        Remove a draft; returns False when no unexpired draft has that id.

        A draft already carried by a sale is still removed from storage, which
        is how promotion clears it. Stale drafts are pruned in the same write.
        """

        now = self._clock()
        stored = self._drafts.load_all(self._owner.user_id)
        if not any(d.id == draft_id and not d.is_expired(now) for d in stored):
            return False

        remaining = [d for d in self._live(stored, now) if d.id != draft_id]
        self._drafts.save_all(self._owner.user_id, remaining)
        logger.info("Draft deleted", extra={"user_id": self._owner.user_id, "draft_id": draft_id})
        return True

    def purge_stale(self) -> int:
        """
        Drop expired and already-promoted drafts from storage.

        Returns:
            Number of drafts removed (0 means storage was left untouched).
        """

        stored = self._drafts.load_all(self._owner.user_id)
        live = self._live(stored, self._clock())
        removed = len(stored) - len(live)
        if removed:
            self._drafts.save_all(self._owner.user_id, live)
            logger.info(
                "Purged stale drafts",
                extra={"user_id": self._owner.user_id, "removed": removed},
            )
        return removed


__all__ = ["DRAFT_TTL", "DraftStore"]
