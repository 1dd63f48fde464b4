"""
Sale repository (local persistence).

Each seller owns one partition (`sales_<seller_id>`) holding the plaintext JSON
list of their submitted sales. Partitions are loaded in full and rewritten in
full on every mutation; there are no patch writes.

This module does not enforce workflow rules; it only reads and writes records.
Writers always target the partition named by Sale.seller_id, never the actor's.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from domain.errors import StoreCorruptedError
from domain.sale import Sale
from repositories.kv_store import SALES_NAMESPACE, KeyValueStore, partition_key
from repositories.records import record_to_sale, sale_to_record

logger = logging.getLogger(__name__)

_PARTITION_PREFIX: str = f"{SALES_NAMESPACE}_"


class SaleRepository:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self, seller_id: str) -> List[Sale]:
        """
        Load a seller's full partition.

        Returns:
            List[Sale] in stored order (possibly empty)

        Raises:
            StoreCorruptedError: the partition exists but cannot be parsed.
        """

        raw = self._store.get(partition_key(SALES_NAMESPACE, seller_id))
        if raw is None:
            return []
        try:
            payload = json.loads(raw.decode("utf-8"))
            if not isinstance(payload, list):
                raise TypeError("partition is not a list")
            return [record_to_sale(item) for item in payload]
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreCorruptedError(f"Sales partition for {seller_id} is unreadable: {exc}") from exc

    def save_all(self, seller_id: str, sales: List[Sale]) -> None:
        """Rewrite a seller's partition with exactly `sales`."""

        foreign = [s.id for s in sales if s.seller_id != seller_id]
        if foreign:
            raise ValueError(f"Sales {foreign} do not belong to partition {seller_id}")

        body = json.dumps([sale_to_record(s) for s in sales], ensure_ascii=False)
        self._store.set(partition_key(SALES_NAMESPACE, seller_id), body.encode("utf-8"))

    def get(self, seller_id: str, sale_id: str) -> Optional[Sale]:
        for sale in self.load(seller_id):
            if sale.id == sale_id:
                return sale
        return None

    def upsert(self, sale: Sale) -> Sale:
        """Replace the sale with the same id in its owner's partition, or prepend it."""

        sales = self.load(sale.seller_id)
        if any(s.id == sale.id for s in sales):
            updated = [sale if s.id == sale.id else s for s in sales]
        else:
            updated = [sale, *sales]
        self.save_all(sale.seller_id, updated)
        return sale

    def partitions(self) -> List[str]:
        """Seller ids that currently own a partition."""

        return [key[len(_PARTITION_PREFIX):] for key in self._store.keys(_PARTITION_PREFIX)]

    def scan_all(self) -> List[Sale]:
        """
        Concatenate every seller partition.

        Cost is O(number of partitions + total sales) per call: every partition
        is read and decoded. Unreadable partitions are logged and skipped so one
        corrupt seller cannot blank out the aggregate views.
        """

        all_sales: List[Sale] = []
        for seller_id in self.partitions():
            try:
                all_sales.extend(self.load(seller_id))
            except StoreCorruptedError as exc:
                logger.error(
                    "Skipping unreadable sales partition",
                    extra={"seller_id": seller_id, "error": str(exc)},
                )
        return all_sales


__all__ = ["SaleRepository"]
