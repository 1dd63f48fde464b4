"""
Domain: Sale records and their status history.

Contract excerpts relevant here:
- A Sale is exclusively owned by one seller (seller_id); customer_data is never shared.
- status_history is append-only, never truncated or reordered. It is non-empty
  whenever status != DRAFT, and its last entry carries the current status.
- return_reason is set only by a manager return and cleared on resubmission.
- created_at is set once, at first submission. expires_at exists only on drafts.
- A FINISHED sale is immutable.

Entities are frozen; workflow operations return new instances. Persistence and
transition rules live elsewhere (repositories/, domain/workflow.py).
"""

from __future__ import annotations

import secrets
import string
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from .time import require_utc_timestamp

# Prefix used for draft ids until the draft is promoted to a sale record.
TEMP_ID_PREFIX: str = "TMP_"

_ID_ALPHABET = string.ascii_uppercase + string.digits


def _random_code(length: int) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_draft_id() -> str:
    return TEMP_ID_PREFIX + _random_code(5)


def generate_sale_id() -> str:
    return _random_code(9)


def is_temporary_id(sale_id: str) -> bool:
    return sale_id.startswith(TEMP_ID_PREFIX)


class SaleStatus(str, Enum):
    DRAFT = "RASCUNHO"
    IN_PROGRESS = "EM_ANDAMENTO"
    ANALYZED = "ANALISADA"
    FINISHED = "FINALIZADA"


# Statuses that count as "approved" when looking for regressions.
APPROVED_STATUSES = frozenset({SaleStatus.ANALYZED, SaleStatus.FINISHED})


@dataclass(frozen=True, slots=True)
class StatusHistoryEntry:
    """One audit record: who moved the sale into `status`, when, and why (returns only)."""

    status: SaleStatus
    updated_by: str
    updated_at: datetime
    reason: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("updated_at", self.updated_at)


@dataclass(frozen=True, slots=True)
class CustomerData:
    """
    Customer enrollment form captured by the seller.

    Field names follow the enrollment form (and the remote `clientes` table).
    Document and consent artifacts are stored as URLs produced by blob upload.
    """

    nome: str = ""
    cpf: str = ""
    data_nascimento: str = ""
    nome_mae: str = ""
    contato: str = ""
    email: str = ""
    rua: str = ""
    numero: str = ""
    complemento: str = ""
    bairro: str = ""
    cidade: str = ""
    estado: str = ""
    cep: str = ""
    plano: str = ""
    vencimento_dia: int = 10
    anotacoes: str = ""
    audio_url: str = ""
    foto_frente_url: str = ""
    foto_verso_url: str = ""
    foto_ctps_url: str = ""
    foto_comprovante_residencia_url: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CustomerData":
        """Build from a loose mapping; unknown keys are ignored, None becomes the default."""

        if not isinstance(data, Mapping):
            raise TypeError(f"customer data must be a mapping, got {type(data).__name__}")

        values: dict[str, Any] = {}
        for name in (f.name for f in fields(cls)):
            raw = data.get(name)
            if raw is None:
                continue
            if name == "vencimento_dia":
                try:
                    values[name] = int(raw)
                except (TypeError, ValueError):
                    continue
            else:
                values[name] = str(raw)
        return cls(**values)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_updates(self, **changes: Any) -> "CustomerData":
        return replace(self, **changes)

    def has_identity(self) -> bool:
        """True once either primary identity field (name or tax id) holds text."""

        return bool(self.nome.strip() or self.cpf.strip())


@dataclass(frozen=True, slots=True)
class Sale:
    """
    A customer enrollment moving through the approval pipeline.

    Drafts carry expires_at and no created_at; submitted sales carry created_at
    and no expires_at.
    """

    id: str
    seller_id: str
    seller_name: str
    customer_data: CustomerData
    status: SaleStatus
    status_history: Tuple[StatusHistoryEntry, ...] = field(default_factory=tuple)
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    return_reason: Optional[str] = None
    origin_draft_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.expires_at is not None:
            require_utc_timestamp("expires_at", self.expires_at)
        if self.status != SaleStatus.DRAFT:
            if not self.status_history:
                raise ValueError("status_history must not be empty for a submitted sale")
            if self.status_history[-1].status != self.status:
                raise ValueError("last status_history entry must match the current status")

    @property
    def is_draft(self) -> bool:
        return self.status == SaleStatus.DRAFT

    @property
    def is_finished(self) -> bool:
        return self.status == SaleStatus.FINISHED

    @property
    def is_returned(self) -> bool:
        """In progress because a manager sent it back for correction."""

        return self.status == SaleStatus.IN_PROGRESS and bool(self.return_reason)

    @property
    def current_entry(self) -> Optional[StatusHistoryEntry]:
        return self.status_history[-1] if self.status_history else None

    @property
    def has_been_approved(self) -> bool:
        return any(entry.status in APPROVED_STATUSES for entry in self.status_history)

    @property
    def is_regressed(self) -> bool:
        """Back in progress after having been analyzed or finished at some earlier point."""

        return self.status == SaleStatus.IN_PROGRESS and self.has_been_approved

    def is_expired(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        return self.expires_at is not None and now > self.expires_at
