"""
Draft repository (obfuscated local persistence).

A user's drafts live under `drafts_<user_id>` as one encoded blob (see
domain/cache_codec.py). Reading never fails: a missing, corrupt or foreign
cache reads as an empty list. Writing always replaces the whole blob.
"""

from __future__ import annotations

import logging
from typing import List

from domain.cache_codec import decode_drafts, encode_drafts
from domain.sale import Sale
from repositories.kv_store import DRAFTS_NAMESPACE, KeyValueStore, partition_key
from repositories.records import record_to_sale, sale_to_record

logger = logging.getLogger(__name__)


class DraftRepository:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load_all(self, user_id: str) -> List[Sale]:
        """Every stored draft for the user, expired ones included."""

        raw = self._store.get(partition_key(DRAFTS_NAMESPACE, user_id))
        drafts: List[Sale] = []
        for record in decode_drafts(raw, user_id):
            try:
                drafts.append(record_to_sale(record))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(
                    "Dropping malformed draft record",
                    extra={"user_id": user_id, "draft_id": record.get("id"), "error": str(exc)},
                )
        return drafts

    def save_all(self, user_id: str, drafts: List[Sale]) -> None:
        encoded = encode_drafts([sale_to_record(d) for d in drafts], user_id)
        self._store.set(partition_key(DRAFTS_NAMESPACE, user_id), encoded.encode("ascii"))


__all__ = ["DraftRepository"]
