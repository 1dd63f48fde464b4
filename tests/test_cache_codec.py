"""
Tests for `domain/cache_codec.py`.

Covers contract rules:
- Encoded drafts decode back for the same user.
- Tolerant decode yields [] for garbage, missing input or another user's key.
- Strict decode raises CacheDecodeFailure.
- The obfuscated text does not contain the plaintext.
"""

from __future__ import annotations

import pytest

from domain.cache_codec import (
    decode_drafts,
    decode_drafts_strict,
    decode_text,
    encode_drafts,
    encode_text,
)
from domain.errors import CacheDecodeFailure

RECORDS = [{"id": "TMP_AB12C", "customerData": {"nome": "José Ação", "cpf": "529.982.247-25"}}]


def test_drafts_decode_for_same_user() -> None:
    encoded = encode_drafts(RECORDS, "seller-1")

    assert decode_drafts(encoded, "seller-1") == RECORDS
    assert "José" not in encoded
    assert "529.982" not in encoded


def test_unicode_text_survives_percent_encoding() -> None:
    text = "Praça da Sé, nº 100 😀"
    assert decode_text(encode_text(text, "u"), "u") == text


@pytest.mark.parametrize("garbage", [None, "", "not base64 !!!", "AAAA", b"\x00\x01"])
def test_tolerant_decode_returns_empty_list(garbage) -> None:
    assert decode_drafts(garbage, "seller-1") == []


def test_foreign_key_reads_as_empty() -> None:
    encoded = encode_drafts(RECORDS, "seller-1")
    assert decode_drafts(encoded, "intruder-99") == []


def test_strict_decode_raises_on_non_list_payload() -> None:
    encoded = encode_text('{"id": "x"}', "seller-1")

    with pytest.raises(CacheDecodeFailure):
        decode_drafts_strict(encoded, "seller-1")


def test_empty_user_id_is_rejected() -> None:
    with pytest.raises(ValueError):
        encode_drafts(RECORDS, "")
