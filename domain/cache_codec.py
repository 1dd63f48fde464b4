"""
Draft cache codec: reversible obfuscation of a user's draft list.

Format (compatible with caches written by the web client):
    base64( xor( percent_encode(json(drafts)), user_id + KEY_SUFFIX ) )

The percent-encoding step mirrors JavaScript's encodeURIComponent, so the XOR
input is always ASCII. The key repeats over the payload.

This is obfuscation, not confidentiality: the key is derived from the user id
and a constant shipped with the client. A deployment that needs real
protection must substitute authenticated encryption behind the same
encode/decode contract.

Decoding never raises through the tolerant entry point (decode_drafts): any
malformed input is logged and treated as "no cache".
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Union
from urllib.parse import quote, unquote

from .errors import CacheDecodeFailure

logger = logging.getLogger(__name__)

KEY_SUFFIX: str = "nexus_enterprise_2025"

# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _derive_key(user_id: str) -> bytes:
    if not user_id:
        raise ValueError("user_id is required to derive the cache key")
    return (user_id + KEY_SUFFIX).encode("utf-8")


def _xor(data: bytes, key: bytes) -> bytes:
    key_len = len(key)
    return bytes(b ^ key[i % key_len] for i, b in enumerate(data))


def encode_text(text: str, user_id: str) -> str:
    """Obfuscate arbitrary text for the given user."""

    key = _derive_key(user_id)
    encoded = quote(text, safe=_URI_COMPONENT_SAFE).encode("ascii")
    return base64.b64encode(_xor(encoded, key)).decode("ascii")


def decode_text(encoded: Union[str, bytes], user_id: str) -> str:
    """
    Reverse encode_text.

    Raises:
        CacheDecodeFailure: malformed base64, wrong key, or corrupt byte stream.
    """

    key = _derive_key(user_id)
    try:
        raw = encoded.encode("ascii") if isinstance(encoded, str) else bytes(encoded)
        scrambled = base64.b64decode(raw, validate=True)
        plain = _xor(scrambled, key).decode("ascii")
        return unquote(plain, errors="strict")
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise CacheDecodeFailure(str(exc)) from exc


def encode_drafts(records: List[Dict[str, Any]], user_id: str) -> str:
    return encode_text(json.dumps(records, separators=(",", ":")), user_id)


def decode_drafts_strict(encoded: Union[str, bytes], user_id: str) -> List[Dict[str, Any]]:
    text = decode_text(encoded, user_id)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CacheDecodeFailure(f"cache is not valid JSON: {exc}") from exc
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise CacheDecodeFailure("cache payload is not a list of records")
    return payload


def decode_drafts(encoded: Union[str, bytes, None], user_id: str) -> List[Dict[str, Any]]:
    """Tolerant decode: returns [] for missing, corrupt or foreign caches."""

    if not encoded:
        return []
    try:
        return decode_drafts_strict(encoded, user_id)
    except CacheDecodeFailure as exc:
        logger.warning(
            "Failed to decode draft cache; treating as empty",
            extra={"user_id": user_id, "error": str(exc)},
        )
        return []


__all__ = [
    "KEY_SUFFIX",
    "encode_text",
    "decode_text",
    "encode_drafts",
    "decode_drafts",
    "decode_drafts_strict",
]
