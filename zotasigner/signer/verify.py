"""
zotasigner/signer/verify.py
Signature checks for traffic coming *back* from the gateway.

Final redirects carry their signature in the query string; asynchronous
callbacks carry it in a JSON body. Neither check ever modifies the request.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from zotasigner.message.request import HttpRequest
from zotasigner.profile.models import ZotaProfile
from zotasigner.signer.result import NO_ACTIVE_PROFILE, Annotation, Severity, SignResult
from zotasigner.util import query_string
from zotasigner.util.digest import json_text, safe_json, sha256_hex_lower

logger = logging.getLogger(__name__)

# Looked up lazily so a missing profile is only reported when a signature is actually present.
ProfileSource = Callable[[], Optional[ZotaProfile]]

CALLBACK_FIELDS = ("EndpointID", "orderID", "merchantOrderID", "status", "amount", "customerEmail")


def _verdict(label: str, expected: str, received: str) -> Annotation:
    if expected.lower() == received.lower():
        return Annotation(note=f"Zota {label} signature: VALID", severity=Severity.SUCCESS, signature=expected)
    return Annotation(note=f"Zota {label} signature: INVALID", severity=Severity.FAILURE, signature=expected)


def verify_final_redirect(request: HttpRequest, active_profile: ProfileSource) -> SignResult:
    """
    Check ``sha256(status + orderID + merchantOrderID + secret)`` on a redirect.

    Nothing is reported unless all four parameters are present.
    """
    params = query_string.parse(request.query)
    status = params.get("status")
    order_id = params.get("orderID")
    merchant_order_id = params.get("merchantOrderID")
    received = params.get("signature")
    if status is None or order_id is None or merchant_order_id is None or received is None:
        return SignResult(request)

    profile = active_profile()
    if profile is None:
        return SignResult(request, NO_ACTIVE_PROFILE)

    expected = sha256_hex_lower(status, order_id, merchant_order_id, profile.merchant_secret_key)
    return SignResult(request, _verdict("final-redirect", expected, received))


def verify_callback(request: HttpRequest, active_profile: ProfileSource) -> SignResult:
    """Check a callback body's signature over the six callback fields plus the secret."""
    try:
        body = safe_json(request.body)
        received = json_text(body, "signature")
        if not received:
            return SignResult(request)

        profile = active_profile()
        if profile is None:
            return SignResult(request, NO_ACTIVE_PROFILE)

        values = [json_text(body, name) for name in CALLBACK_FIELDS]
        expected = sha256_hex_lower(*values, profile.merchant_secret_key)
        return SignResult(request, _verdict("callback", expected, received))
    except Exception as e:
        logger.error(f"[Zota] Callback verification failed: {e}")
        return SignResult(request, Annotation.failure(f"Zota callback verify error: {e}"))
