"""
Domain: Sale lifecycle state machine (pure).

Allowed edges:

    DRAFT        --submit-->    IN_PROGRESS   form passes full validation
    IN_PROGRESS  --resubmit-->  IN_PROGRESS   owning seller, full validation
    IN_PROGRESS  --approve-->   ANALYZED      APPROVE_SALES
    ANALYZED     --finalize-->  FINISHED      APPROVE_SALES
    IN_PROGRESS  --finalize-->  FINISHED      APPROVE_SALES (direct finalize)
    ANALYZED     --return-->    IN_PROGRESS   APPROVE_SALES + reason (>= 5 chars trimmed)
    IN_PROGRESS  --return-->    IN_PROGRESS   same guard, only when not already returned

FINISHED is terminal. A return aimed at a finished sale is still checked for
its justification first, then rejected as immutable.

Every accepted transition returns a new Sale with exactly one history entry
appended. Rejections raise and leave the input untouched. No I/O here.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import ImmutableSaleError, WorkflowGuardFailure
from .sale import CustomerData, Sale, SaleStatus, StatusHistoryEntry
from .time import require_utc_timestamp
from .user import Actor, AppPermission, RolePermissionsMap
from .validation import require_valid

MIN_RETURN_REASON_LENGTH: int = 5


class TransitionEvent(str, Enum):
    SUBMIT = "submit"
    RESUBMIT = "resubmit"
    APPROVE = "approve"
    FINALIZE = "finalize"
    RETURN = "return"


_MANAGER_EDGES: Dict[Tuple[SaleStatus, SaleStatus], TransitionEvent] = {
    (SaleStatus.IN_PROGRESS, SaleStatus.ANALYZED): TransitionEvent.APPROVE,
    (SaleStatus.ANALYZED, SaleStatus.FINISHED): TransitionEvent.FINALIZE,
    (SaleStatus.IN_PROGRESS, SaleStatus.FINISHED): TransitionEvent.FINALIZE,
    (SaleStatus.ANALYZED, SaleStatus.IN_PROGRESS): TransitionEvent.RETURN,
    (SaleStatus.IN_PROGRESS, SaleStatus.IN_PROGRESS): TransitionEvent.RETURN,
}


def normalize_reason(reason: Optional[str]) -> str:
    """Trim a return justification, raising when it is absent or too short."""

    text = (reason or "").strip()
    if len(text) < MIN_RETURN_REASON_LENGTH:
        raise WorkflowGuardFailure(
            "É obrigatório informar uma justificativa detalhada para o retorno da venda.",
            code="reason_required",
        )
    return text


def resolve_event(current: SaleStatus, target: SaleStatus) -> TransitionEvent:
    """Map a manager-requested (current, target) pair to its event, or reject it."""

    event = _MANAGER_EDGES.get((current, target))
    if event is None:
        raise WorkflowGuardFailure(
            f"Transição de {current.value} para {target.value} não é permitida.",
            code="invalid_transition",
        )
    return event


def apply_transition(
    sale: Sale,
    target: SaleStatus,
    actor: Actor,
    *,
    now: datetime,
    reason: Optional[str] = None,
    permissions: Optional[RolePermissionsMap] = None,
) -> Sale:
    """
    Apply a manager decision (approve, finalize or return) to a submitted sale.

    Raises:
        WorkflowGuardFailure: missing capability, missing/short reason,
            unsupported edge, or a repeated return.
        ImmutableSaleError: the sale is already FINISHED.
    """

    require_utc_timestamp("now", now)

    if not actor.has_permission(AppPermission.APPROVE_SALES, permissions):
        raise WorkflowGuardFailure("Permissão insuficiente.", code="capability")

    if sale.is_finished:
        if target == SaleStatus.IN_PROGRESS:
            normalize_reason(reason)
        raise ImmutableSaleError(sale.id)

    event = resolve_event(sale.status, target)

    entry_reason: Optional[str] = None
    return_reason: Optional[str] = None
    if event == TransitionEvent.RETURN:
        entry_reason = normalize_reason(reason)
        if sale.status == SaleStatus.IN_PROGRESS and sale.return_reason:
            raise WorkflowGuardFailure(
                f"Venda #{sale.id} já foi devolvida e aguarda correção do vendedor.",
                code="already_returned",
            )
        return_reason = entry_reason

    entry = StatusHistoryEntry(
        status=target,
        updated_by=actor.name,
        updated_at=now,
        reason=entry_reason,
    )
    return replace(
        sale,
        status=target,
        status_history=sale.status_history + (entry,),
        return_reason=return_reason,
    )


def submit(
    customer_data: CustomerData,
    actor: Actor,
    *,
    sale_id: str,
    now: datetime,
    existing: Optional[Sale] = None,
    origin_draft_id: Optional[str] = None,
) -> Sale:
    """
    Build the IN_PROGRESS sale produced by a seller submission.

    A first submission (existing is None) stamps created_at. A resubmission
    keeps created_at and history, appends a new IN_PROGRESS entry and clears
    return_reason.

    Raises:
        ValidationFailure: the form has failing fields.
        ImmutableSaleError: resubmitting a finished sale.
        WorkflowGuardFailure: resubmitting someone else's sale, or a sale under analysis.
    """

    require_utc_timestamp("now", now)

    if existing is not None:
        if existing.is_finished:
            raise ImmutableSaleError(existing.id)
        if existing.seller_id != actor.user_id:
            raise WorkflowGuardFailure(
                f"Venda #{existing.id} pertence a outro vendedor.", code="ownership"
            )
        if existing.status != SaleStatus.IN_PROGRESS:
            raise WorkflowGuardFailure(
                f"Venda #{existing.id} está em análise e não pode ser reenviada.",
                code="invalid_transition",
            )
    require_valid(customer_data)

    entry = StatusHistoryEntry(status=SaleStatus.IN_PROGRESS, updated_by=actor.name, updated_at=now)
    if existing is not None:
        return replace(
            existing,
            seller_name=actor.name,
            customer_data=customer_data,
            status=SaleStatus.IN_PROGRESS,
            status_history=existing.status_history + (entry,),
            return_reason=None,
            expires_at=None,
        )

    return Sale(
        id=sale_id,
        seller_id=actor.user_id,
        seller_name=actor.name,
        customer_data=customer_data,
        status=SaleStatus.IN_PROGRESS,
        status_history=(entry,),
        created_at=now,
        expires_at=None,
        return_reason=None,
        origin_draft_id=origin_draft_id,
    )
