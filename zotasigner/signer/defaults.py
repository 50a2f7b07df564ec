"""
zotasigner/signer/defaults.py
Retarget a request at another profile before it is re-signed by hand.

Four independent passes, each a no-op when it has nothing to do:
  1) network target + Host header from the profile's API base
  2) endpoint id segment in deposit/payout paths
  3) merchantID / endpointIds in the query
  4) merchantID / endpointID keys in a POST JSON object body
Malformed input never raises; a bad API base is logged and only that pass is skipped.
"""

from __future__ import annotations

import json
import logging
from typing import Optional
from urllib.parse import urlsplit

from zotasigner.base.exceptions import InvalidApiBaseError
from zotasigner.message.request import HttpRequest, HttpService
from zotasigner.profile.models import ZotaProfile
from zotasigner.signer.rules import ENDPOINT_ID_PREFIXES, is_query_endpoint
from zotasigner.util import query_string
from zotasigner.util.digest import dump_json

logger = logging.getLogger(__name__)


def apply_profile_defaults(request: HttpRequest, profile: Optional[ZotaProfile]) -> HttpRequest:
    if profile is None:
        return request
    updated = update_service_for_profile(request, profile)
    updated = update_endpoint_in_path(updated, profile)
    updated = update_query_for_profile(updated, profile)
    updated = update_json_body_for_profile(updated, profile)
    return updated


def normalize_api_base(api_base: str) -> HttpService:
    """Turn ``api.example.com`` or ``http://host:8080/x`` into a network target."""
    raw = api_base.strip()
    if "://" not in raw:
        raw = f"https://{raw}"
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as e:
        raise InvalidApiBaseError(f"API base is not a valid URL: {e}", api_base) from e
    if not parts.hostname:
        raise InvalidApiBaseError("API base is missing a host", api_base)

    scheme = (parts.scheme or "https").lower()
    if scheme not in ("http", "https"):
        raise InvalidApiBaseError(f"Unsupported API base scheme: {scheme}", api_base)
    secure = scheme == "https"
    return HttpService(host=parts.hostname, port=port or (443 if secure else 80), secure=secure)


def update_service_for_profile(request: HttpRequest, profile: ZotaProfile) -> HttpRequest:
    if not profile.api_base or not profile.api_base.strip():
        return request
    try:
        service = normalize_api_base(profile.api_base)
    except InvalidApiBaseError as e:
        logger.error(f"[Zota] Invalid API base for profile {profile.name}: {e}")
        return request
    return request.with_service(service).with_updated_header("Host", service.host_header)


def update_endpoint_in_path(request: HttpRequest, profile: ZotaProfile) -> HttpRequest:
    endpoint_id = (profile.default_endpoint_id or "").strip()
    if not endpoint_id:
        return request
    updated = request
    for prefix in ENDPOINT_ID_PREFIXES:
        updated = _replace_endpoint_segment(updated, prefix, endpoint_id)
    return updated


def _replace_endpoint_segment(request: HttpRequest, prefix: str, endpoint_id: str) -> HttpRequest:
    base_path = request.path_without_query
    if not base_path.startswith(prefix):
        return request
    # A deposit path under "direct/" also starts with the plain deposit prefix.
    if any(
        len(other) > len(prefix) and base_path.startswith(other)
        for other in ENDPOINT_ID_PREFIXES
    ):
        return request

    remainder = base_path[len(prefix):]
    slash = remainder.find("/")
    if slash >= 0:
        trailing = remainder[slash:]
    else:
        trailing = "/" if base_path.endswith("/") else ""

    new_base = f"{prefix}{endpoint_id}{trailing}"
    query = request.query
    new_path = f"{new_base}?{query}" if query else new_base
    if new_path == request.path:
        return request
    return request.with_path(new_path)


def update_query_for_profile(request: HttpRequest, profile: ZotaProfile) -> HttpRequest:
    base_path = request.path_without_query
    force_merchant = is_query_endpoint(base_path)
    if not request.query and not force_merchant:
        return request

    params = query_string.parse(request.query)
    changed = False

    merchant_id = (profile.merchant_id or "").strip()
    if merchant_id and (force_merchant or "merchantID" in params):
        params["merchantID"] = merchant_id
        changed = True

    endpoint_id = (profile.default_endpoint_id or "").strip()
    if endpoint_id and "endpointIds" in params:
        params["endpointIds"] = endpoint_id
        changed = True

    if not changed:
        return request
    new_query = query_string.build(params)
    return request.with_path(f"{base_path}?{new_query}" if new_query else base_path)


def update_json_body_for_profile(request: HttpRequest, profile: ZotaProfile) -> HttpRequest:
    if request.method.upper() != "POST" or not request.body:
        return request
    try:
        body = json.loads(request.body)
    except ValueError:
        return request
    if not isinstance(body, dict):
        return request

    changed = False
    merchant_id = (profile.merchant_id or "").strip()
    if merchant_id:
        for key in ("merchantID", "MerchantID"):
            if key in body:
                body[key] = merchant_id
                changed = True

    endpoint_id = (profile.default_endpoint_id or "").strip()
    if endpoint_id:
        for key in ("endpointID", "EndpointID"):
            if key in body:
                body[key] = endpoint_id
                changed = True

    if not changed:
        return request
    return request.with_body(dump_json(body))
