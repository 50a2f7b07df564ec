"""
zotasigner/util/digest.py
Hashing and JSON helpers shared by the signing algorithms and the verifiers.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Optional


def sha256_hex_lower(*parts: Optional[str]) -> str:
    """SHA-256 over the plain concatenation of ``parts`` (``None`` counts as ``""``)."""
    source = "".join(p if p is not None else "" for p in parts)
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def safe_json(body: Optional[str]) -> Any:
    """
    Parse a request body leniently.

    Empty or unparsable bodies become an empty object so callers can keep
    reading fields (which then all come back empty) instead of failing.
    """
    if not body:
        return {}
    try:
        return json.loads(body)
    except ValueError:
        return {}


def json_object(value: Any) -> Dict[str, Any]:
    """Return ``value`` when it is a JSON object, else an empty one."""
    return value if isinstance(value, dict) else {}


def json_text(obj: Any, field: str) -> str:
    """
    Read ``field`` from a parsed JSON object as text.

    Missing, ``null`` and container values read as ``""``; booleans use JSON
    spelling so ``true`` hashes the same way the gateway sees it.
    """
    if not isinstance(obj, dict):
        return ""
    value = obj.get(field)
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def with_field(value: Any, key: str, field_value: str) -> Dict[str, Any]:
    """
    Merge ``key`` into a parsed JSON value.

    Objects get the key added or overwritten (a shallow copy is returned).
    Any other JSON value is wrapped as ``{"request": value, key: field_value}``.
    """
    if value is None:
        return {key: field_value}
    if isinstance(value, dict):
        merged = dict(value)
        merged[key] = field_value
        return merged
    return {"request": value, key: field_value}


def dump_json(value: Any) -> str:
    """Compact serialization used whenever a body is rewritten."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
