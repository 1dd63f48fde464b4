"""
Remote projections.

Converts local records into the rows the remote store expects:
- `clientes`: normalized customer, natural key `email`
- `vendas`: sale, referencing the customer row id
- `perfis`: user profile directory
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from domain.sale import CustomerData, Sale
from domain.time import parse_utc_datetime, to_iso_utc
from domain.user import Actor, UserRole

CUSTOMERS_TABLE: str = "clientes"
SALES_TABLE: str = "vendas"
PROFILES_TABLE: str = "perfis"

CUSTOMER_NATURAL_KEY: str = "email"

_CUSTOMER_COLUMNS = (
    "nome",
    "email",
    "cpf",
    "data_nascimento",
    "nome_mae",
    "rua",
    "numero",
    "complemento",
    "bairro",
    "cidade",
    "estado",
    "cep",
    "plano",
    "vencimento_dia",
    "anotacoes",
    "foto_frente_url",
    "foto_verso_url",
    "foto_comprovante_residencia_url",
    "foto_ctps_url",
    "audio_url",
)


def to_customer_row(customer: CustomerData, *, registered_at: Optional[str] = None) -> Dict[str, Any]:
    row: Dict[str, Any] = {name: getattr(customer, name) for name in _CUSTOMER_COLUMNS}
    row["email"] = customer.email.strip().lower()
    row["telefone"] = customer.contato
    if registered_at:
        row["data_cadastro"] = registered_at
    return row


def to_sale_row(sale: Sale, customer_id: Any) -> Dict[str, Any]:
    history = [
        {
            "status": e.status.value,
            "updatedBy": e.updated_by,
            "updatedAt": to_iso_utc(e.updated_at, name="updated_at"),
            **({"reason": e.reason} if e.reason else {}),
        }
        for e in sale.status_history
    ]
    return {
        "id": sale.id,
        "cliente_id": customer_id,
        "seller_id": sale.seller_id,
        "seller_name": sale.seller_name,
        "status": sale.status.value,
        "status_history": history,
        "return_reason": sale.return_reason,
        "data_venda": to_iso_utc(sale.created_at, name="created_at") if sale.created_at else None,
    }


def from_profile_row(row: Mapping[str, Any]) -> Actor:
    created = row.get("created_at")
    return Actor(
        user_id=str(row["id"]),
        name=str(row.get("nome") or ""),
        role=UserRole(str(row.get("role") or UserRole.SELLER.value)),
        email=row.get("email"),
        confirmed=bool(row.get("confirmed", False)),
        created_at=parse_utc_datetime(created) if created else None,
    )


__all__ = [
    "CUSTOMERS_TABLE",
    "SALES_TABLE",
    "PROFILES_TABLE",
    "CUSTOMER_NATURAL_KEY",
    "to_customer_row",
    "to_sale_row",
    "from_profile_row",
]
