"""
zotasigner/util/query_string.py
Order-preserving parse/build for application/x-www-form-urlencoded query strings.

Signing rewrites a handful of parameters and appends ``signature``; everything
else in the query has to come back out in the order it went in.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional
from urllib.parse import quote_plus, unquote_plus


def parse(query: Optional[str]) -> Dict[str, str]:
    """
    Parse a raw query (without the leading ``?``) into insertion-ordered pairs.

    Keys without ``=`` map to ``""``. Empty segments are skipped. A repeated key
    keeps its first position and takes the last value.
    """
    out: Dict[str, str] = {}
    if not query:
        return out

    for part in query.split("&"):
        if not part:
            continue
        key, sep, value = part.partition("=")
        out[unquote_plus(key)] = unquote_plus(value) if sep else ""
    return out


def build(params: Mapping[str, Optional[str]]) -> str:
    """Encode ordered pairs back into a query string (no leading ``?``)."""
    return "&".join(
        f"{_encode(key)}={_encode(value if value is not None else '')}"
        for key, value in params.items()
    )


def _encode(value: str) -> str:
    # Form encoding: space becomes "+", "*" stays literal like the gateway's own encoder.
    return quote_plus(value, safe="*")
