"""
zotasigner/signer/algorithms.py
Per-endpoint signature algorithms.

Every signature is the lowercase SHA-256 hex of a fixed, endpoint-specific
concatenation of field values with no separators. Missing fields contribute an
empty string and are reported back as warnings; they never stop signing.

The functions here are pure: the profile, refresh mode, clock and request-id
generator all arrive through ``SigningContext``.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Sequence, Tuple

from zotasigner.message.request import HttpRequest
from zotasigner.profile.models import ZotaProfile
from zotasigner.signer.result import Annotation, SignResult
from zotasigner.signer.rules import Algorithm
from zotasigner.util import query_string
from zotasigner.util.digest import dump_json, json_object, json_text, safe_json, sha256_hex_lower, with_field

SECRET_FIELD = "MerchantSecretKey"


def _unix_seconds() -> int:
    return int(time.time())


def _random_request_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class SigningContext:
    profile: ZotaProfile
    refresh_dynamic_values: bool
    clock: Callable[[], int] = field(default=_unix_seconds)
    new_request_id: Callable[[], str] = field(default=_random_request_id)

    @property
    def secret(self) -> str:
        return self.profile.merchant_secret_key or ""


SignFunction = Callable[[HttpRequest, str, SigningContext], SignResult]


def extract_id_from_path(path: str, prefix: str) -> str:
    """
    Endpoint (or group) id following ``prefix``.

    Accepts ``<id>``, ``<id>/`` and ``group/<id>/``; any query suffix is ignored.
    """
    rest = path[len(prefix):] if path.startswith(prefix) else path
    rest = rest.split("?", 1)[0].strip()
    if rest.startswith("group/"):
        rest = rest[len("group/"):]
    if rest.endswith("/"):
        rest = rest[:-1]
    return rest


def missing_fields(pairs: Sequence[Tuple[str, str]]) -> List[str]:
    return [name for name, value in pairs if not value]


# ----------------------------------------------------------------------
# JSON-body endpoints
# ----------------------------------------------------------------------

def _sign_json_body(
    request: HttpRequest,
    kind: str,
    endpoint_id: str,
    body_fields: Sequence[str],
    ctx: SigningContext,
) -> SignResult:
    parsed = safe_json(request.body)
    source = json_object(parsed)
    values = [(name, json_text(source, name)) for name in body_fields]

    signature = sha256_hex_lower(endpoint_id, *(v for _, v in values), ctx.secret)
    updated = request.with_body(dump_json(with_field(parsed, "signature", signature)))

    warnings = missing_fields(values + [(SECRET_FIELD, ctx.secret)])
    return SignResult(updated, Annotation.signed(kind, signature, warnings))


def sign_deposit(request: HttpRequest, prefix: str, ctx: SigningContext) -> SignResult:
    endpoint_id = extract_id_from_path(request.path, prefix)
    return _sign_json_body(
        request,
        "deposit",
        endpoint_id,
        ("merchantOrderID", "orderAmount", "customerEmail"),
        ctx,
    )


def sign_payout(request: HttpRequest, prefix: str, ctx: SigningContext) -> SignResult:
    endpoint_id = extract_id_from_path(request.path, prefix)
    return _sign_json_body(
        request,
        "payout",
        endpoint_id,
        ("merchantOrderID", "orderAmount", "customerEmail", "customerBankAccountNumber"),
        ctx,
    )


# ----------------------------------------------------------------------
# Query-string endpoints
# ----------------------------------------------------------------------

def _dynamic_params(request: HttpRequest, ctx: SigningContext, with_request_id: bool) -> Dict[str, str]:
    """
    Parse the query and settle merchantID/timestamp(/requestID).

    Refresh overwrites them; otherwise existing values are kept and only gaps
    are filled, which keeps re-signing an already signed request stable.
    """
    params = query_string.parse(request.query)
    dynamic: List[Tuple[str, Callable[[], str]]] = [
        ("merchantID", lambda: ctx.profile.merchant_id or ""),
        ("timestamp", lambda: str(ctx.clock())),
    ]
    if with_request_id:
        dynamic.append(("requestID", ctx.new_request_id))

    for key, produce in dynamic:
        if ctx.refresh_dynamic_values or key not in params:
            params[key] = produce()
    return params


def _finish_query(
    request: HttpRequest,
    kind: str,
    params: Dict[str, str],
    hashed: Sequence[str],
    reported: Sequence[Tuple[str, str]],
) -> SignResult:
    signature = sha256_hex_lower(*hashed)
    params["signature"] = signature
    updated = request.with_path(f"{request.path_without_query}?{query_string.build(params)}")
    return SignResult(updated, Annotation.signed(kind, signature, missing_fields(reported)))


def _get(params: Mapping[str, str], key: str) -> str:
    return params.get(key) or ""


def sign_order_status(request: HttpRequest, prefix: str, ctx: SigningContext) -> SignResult:
    params = _dynamic_params(request, ctx, with_request_id=False)
    merchant_id = _get(params, "merchantID")
    merchant_order_id = _get(params, "merchantOrderID")
    order_id = _get(params, "orderID")
    timestamp = _get(params, "timestamp")

    return _finish_query(
        request,
        "order-status",
        params,
        (merchant_id, merchant_order_id, order_id, timestamp, ctx.secret),
        [
            ("merchantID", merchant_id),
            ("merchantOrderID", merchant_order_id),
            ("orderID", order_id),
            ("timestamp", timestamp),
            (SECRET_FIELD, ctx.secret),
        ],
    )


def sign_orders_report(request: HttpRequest, prefix: str, ctx: SigningContext) -> SignResult:
    params = _dynamic_params(request, ctx, with_request_id=True)
    names = (
        "merchantID",
        "dateType",
        "endpointIds",
        "fromDate",
        "requestID",
        "statuses",
        "timestamp",
        "toDate",
        "types",
    )
    values = [(name, _get(params, name)) for name in names]

    return _finish_query(
        request,
        "orders-report",
        params,
        [v for _, v in values] + [ctx.secret],
        values + [(SECRET_FIELD, ctx.secret)],
    )


def sign_current_balance(request: HttpRequest, prefix: str, ctx: SigningContext) -> SignResult:
    params = _dynamic_params(request, ctx, with_request_id=True)
    merchant_id = _get(params, "merchantID")
    request_id = _get(params, "requestID")
    if not request_id and params.get("requestId"):
        # older clients send camelCase
        request_id = params["requestId"]
        params["requestID"] = request_id
    timestamp = _get(params, "timestamp")

    return _finish_query(
        request,
        "current-balance",
        params,
        (merchant_id, request_id, timestamp, ctx.secret),
        [
            ("merchantID", merchant_id),
            ("requestID", request_id),
            ("timestamp", timestamp),
            (SECRET_FIELD, ctx.secret),
        ],
    )


def sign_exchange_rates(request: HttpRequest, prefix: str, ctx: SigningContext) -> SignResult:
    params = _dynamic_params(request, ctx, with_request_id=True)
    merchant_id = _get(params, "merchantID")
    request_id = _get(params, "requestID")
    date = _get(params, "date")
    timestamp = _get(params, "timestamp")
    order_type = _get(params, "orderType")
    order_id = _get(params, "orderID")

    # The gateway hashes the secret second for this endpoint.
    return _finish_query(
        request,
        "exchange-rates",
        params,
        (merchant_id, ctx.secret, request_id, date, timestamp, order_id),
        [
            ("merchantID", merchant_id),
            ("requestID", request_id),
            ("date", date),
            ("timestamp", timestamp),
            ("orderType", order_type),
            ("orderID", order_id),
            (SECRET_FIELD, ctx.secret),
        ],
    )


ALGORITHMS: Dict[Algorithm, SignFunction] = {
    Algorithm.DEPOSIT: sign_deposit,
    Algorithm.PAYOUT: sign_payout,
    Algorithm.ORDER_STATUS: sign_order_status,
    Algorithm.ORDERS_REPORT: sign_orders_report,
    Algorithm.CURRENT_BALANCE: sign_current_balance,
    Algorithm.EXCHANGE_RATES: sign_exchange_rates,
}
