"""
Local record format for sales and drafts.

Sales are stored as camelCase JSON objects, the same shape the web client keeps
in its local storage:

    {"id", "sellerId", "sellerName", "customerData", "status",
     "statusHistory": [{"status", "updatedBy", "updatedAt", "reason"?}],
     "createdAt"?, "expiresAt"? (epoch ms), "returnReason"?, "originDraftId"?}
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from domain.sale import CustomerData, Sale, SaleStatus, StatusHistoryEntry
from domain.time import from_epoch_ms, parse_utc_datetime, to_epoch_ms, to_iso_utc


def _entry_to_record(entry: StatusHistoryEntry) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "status": entry.status.value,
        "updatedBy": entry.updated_by,
        "updatedAt": to_iso_utc(entry.updated_at, name="updated_at"),
    }
    if entry.reason is not None:
        record["reason"] = entry.reason
    return record


def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _record_to_entry(record: Mapping[str, Any]) -> StatusHistoryEntry:
    record = _require_mapping(record, "history entry")
    return StatusHistoryEntry(
        status=SaleStatus(str(record["status"])),
        updated_by=str(record.get("updatedBy") or ""),
        updated_at=parse_utc_datetime(record["updatedAt"]),
        reason=record.get("reason") or None,
    )


def sale_to_record(sale: Sale) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": sale.id,
        "sellerId": sale.seller_id,
        "sellerName": sale.seller_name,
        "customerData": sale.customer_data.as_dict(),
        "status": sale.status.value,
        "statusHistory": [_entry_to_record(e) for e in sale.status_history],
    }
    if sale.created_at is not None:
        record["createdAt"] = to_iso_utc(sale.created_at, name="created_at")
    if sale.expires_at is not None:
        record["expiresAt"] = to_epoch_ms(sale.expires_at)
    if sale.return_reason:
        record["returnReason"] = sale.return_reason
    if sale.origin_draft_id:
        record["originDraftId"] = sale.origin_draft_id
    return record


def record_to_sale(record: Mapping[str, Any]) -> Sale:
    """
    Convert a stored record into a Sale.

    Raises:
        KeyError, TypeError, ValueError: the record is malformed.
    """

    record = _require_mapping(record, "sale record")
    created_at = record.get("createdAt")
    expires_at = record.get("expiresAt")
    return Sale(
        id=str(record["id"]),
        seller_id=str(record["sellerId"]),
        seller_name=str(record.get("sellerName") or ""),
        customer_data=CustomerData.from_mapping(record.get("customerData") or {}),
        status=SaleStatus(str(record["status"])),
        status_history=tuple(_record_to_entry(e) for e in record.get("statusHistory") or ()),
        created_at=parse_utc_datetime(created_at) if created_at else None,
        expires_at=from_epoch_ms(expires_at) if expires_at is not None else None,
        return_reason=record.get("returnReason") or None,
        origin_draft_id=record.get("originDraftId") or None,
    )


__all__ = ["sale_to_record", "record_to_sale"]
