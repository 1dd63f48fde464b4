"""
Workflow service: persists seller submissions and manager decisions.

Handles:
- Draft promotion (the sale record is written first, the draft removed second)
- Resubmission of returned sales by their owner
- Manager transitions on any seller's sale

Every mutation reads the owning seller's full partition, applies a pure
transition from domain/workflow.py and writes the full partition back. A
rejected transition raises before anything is written.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Set

from domain.errors import AmbiguousSaleError, SaleNotFoundError, WorkflowGuardFailure
from domain.sale import CustomerData, Sale, SaleStatus, generate_sale_id, is_temporary_id
from domain.time import utc_now
from domain.user import Actor, RolePermissionsMap
from domain.workflow import apply_transition, submit
from repositories.sale_repository import SaleRepository
from services.draft_service import DraftStore

logger = logging.getLogger(__name__)


class WorkflowEngine:
    def __init__(
        self,
        sales: SaleRepository,
        *,
        permissions: Optional[RolePermissionsMap] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._sales = sales
        self._permissions = permissions
        self._clock = clock

    def _new_sale_id(self, taken: Set[str]) -> str:
        sale_id = generate_sale_id()
        while sale_id in taken:
            sale_id = generate_sale_id()
        return sale_id

    def submit_sale(
        self,
        actor: Actor,
        drafts: DraftStore,
        customer_data: CustomerData,
        *,
        sale_id: Optional[str] = None,
    ) -> Sale:
        """
        Submit a form for review.

        Args:
            actor: Submitting seller (becomes the owner of a new sale)
            drafts: The actor's draft store
            customer_data: Full form snapshot
            sale_id: None for a fresh form, a draft id to promote that draft,
                or an existing sale id to resubmit it

        Returns:
            The stored IN_PROGRESS sale

        Raises:
            ValidationFailure: one or more fields fail validation
            SaleNotFoundError: sale_id names no sale of this seller
            WorkflowGuardFailure / ImmutableSaleError: resubmission not allowed
        """

        now = self._clock()
        own_sales = self._sales.load(actor.user_id)

        existing: Optional[Sale] = None
        origin_draft_id: Optional[str] = None
        if sale_id is not None and not is_temporary_id(sale_id):
            existing = next((s for s in own_sales if s.id == sale_id), None)
            if existing is None:
                raise SaleNotFoundError(f"Venda #{sale_id} não encontrada.")
            final_id = sale_id
        else:
            if sale_id is not None and any(s.origin_draft_id == sale_id for s in own_sales):
                raise WorkflowGuardFailure(
                    f"Rascunho {sale_id} já foi enviado.", code="already_submitted"
                )
            origin_draft_id = sale_id
            final_id = self._new_sale_id({s.id for s in own_sales})

        sale = submit(
            customer_data,
            actor,
            sale_id=final_id,
            now=now,
            existing=existing,
            origin_draft_id=origin_draft_id,
        )
        self._sales.upsert(sale)

        if origin_draft_id is not None:
            try:
                drafts.delete_draft(origin_draft_id)
            except OSError as exc:
                # The draft stays hidden through origin_draft_id and is purged later.
                logger.warning(
                    "Promoted draft could not be removed",
                    extra={"draft_id": origin_draft_id, "sale_id": sale.id, "error": str(exc)},
                )

        logger.info(
            "Sale submitted",
            extra={
                "sale_id": sale.id,
                "seller_id": sale.seller_id,
                "resubmission": existing is not None,
                "origin_draft_id": origin_draft_id,
            },
        )
        return sale

    def locate(self, sale_id: str, seller_id: Optional[str] = None) -> Sale:
        """
        Find a submitted sale, scanning every partition unless seller_id is given.

        Raises:
            SaleNotFoundError: no partition holds the id
            AmbiguousSaleError: more than one seller holds the id
        """

        if seller_id is not None:
            sale = self._sales.get(seller_id, sale_id)
            if sale is None:
                raise SaleNotFoundError(f"Venda #{sale_id} não encontrada.")
            return sale

        matches = [s for s in self._sales.scan_all() if s.id == sale_id]
        if not matches:
            raise SaleNotFoundError(f"Venda #{sale_id} não encontrada.")
        if len({s.seller_id for s in matches}) > 1:
            owners = ", ".join(sorted({s.seller_id for s in matches}))
            raise AmbiguousSaleError(f"Venda #{sale_id} existe para mais de um vendedor: {owners}")
        return matches[0]

    def transition(
        self,
        actor: Actor,
        sale_id: str,
        target_status: SaleStatus,
        reason: Optional[str] = None,
        *,
        seller_id: Optional[str] = None,
    ) -> Sale:
        """
        Apply a manager decision and persist it in the owning seller's partition.

        The partition is re-read immediately before writing; only the target
        sale is replaced.
        """

        owner_id = self.locate(sale_id, seller_id).seller_id

        partition = self._sales.load(owner_id)
        current = next((s for s in partition if s.id == sale_id), None)
        if current is None:
            raise SaleNotFoundError(f"Venda #{sale_id} não encontrada.")

        updated = apply_transition(
            current,
            SaleStatus(target_status),
            actor,
            now=self._clock(),
            reason=reason,
            permissions=self._permissions,
        )
        self._sales.save_all(owner_id, [updated if s.id == sale_id else s for s in partition])

        logger.info(
            "Sale transitioned",
            extra={
                "sale_id": sale_id,
                "seller_id": owner_id,
                "from_status": current.status.value,
                "to_status": updated.status.value,
                "updated_by": actor.name,
            },
        )
        return updated


__all__ = ["WorkflowEngine"]
