# ============================================================================
# tests/unit/test_engine.py
# Signing engine: gating, profile resolution, marker handling, failures
# ============================================================================

import json
import logging

from zotasigner.message.request import HttpRequest
from zotasigner.signer import algorithms
from zotasigner.signer.engine import MANUAL_PROFILE_HEADER, ZotaSigner
from zotasigner.signer.result import NO_ACTIVE_PROFILE, Severity
from zotasigner.signer.rules import Algorithm
from zotasigner.util import query_string

STAGE = "https://api.zotapay-stage.com"
DEPOSIT_PATH = "/api/v1/deposit/request/1050/"
DEPOSIT_BODY = json.dumps({"merchantOrderID": "O1", "orderAmount": "500.00", "customerEmail": "a@b.com"})
DEPOSIT_SIG = "5a59b1172c43669002c350c8b7af050227087592e021b0aca5b0e433875d7290"
DEPOSIT_SIG_PROD = "25805c39370e1a35659eda904c6cea8d18a16a40839db82b9d2b6df86d7eb230"


def _deposit(base=STAGE, headers=None):
    return HttpRequest.from_url("POST", f"{base}{DEPOSIT_PATH}", headers=headers, body=DEPOSIT_BODY)


class NoProfiles:
    def by_name(self, name):
        return None

    def get_active_or_warn(self):
        return None


# ----------------------------------------------------------------------------
# Gating
# ----------------------------------------------------------------------------

def test_passive_signs_zota_host(signer):
    result = signer.sign_if_zota(_deposit())
    assert json.loads(result.request.body)["signature"] == DEPOSIT_SIG
    assert result.annotation.severity == Severity.INFO


def test_passive_signs_known_path_on_any_host(signer):
    result = signer.sign_if_zota(_deposit(base="http://localhost:9000"))
    assert result.annotation.signature == DEPOSIT_SIG


def test_passive_ignores_unrelated_traffic(signer):
    request = HttpRequest.from_url("POST", "https://shop.example.com/cart", body='{"a":1}')
    result = signer.sign_if_zota(request)
    assert result.request == request
    assert result.annotation is None


def test_passive_leaves_unmatched_zota_paths_alone(signer):
    request = HttpRequest.from_url("GET", f"{STAGE}/api/v1/deposit/request/1050/")
    result = signer.sign_if_zota(request)
    assert result.request == request
    assert result.annotation is None


def test_explicit_signs_any_host(signer):
    result = signer.sign(_deposit(base="https://shop.example.com"))
    assert result.annotation.signature == DEPOSIT_SIG


def test_explicit_refreshes_dynamic_values(signer):
    request = HttpRequest.from_url("GET", f"{STAGE}/api/v1/query/current-balance/?merchantID=OLD&requestID=req-1&timestamp=1")
    result = signer.sign(request)
    params = query_string.parse(result.request.query)
    assert params["merchantID"] == "M1"
    assert params["requestID"] == "fixed-id"
    assert params["timestamp"] == "1700000000"
    assert params["signature"] == "d88fc248c333a1cf524b8121af016ac30ef697faf83995873bd30af92fc0753b"


def test_passive_verifies_redirects_on_unrelated_hosts(signer):
    url = (
        "https://shop.example.com/return?status=A&orderID=1&merchantOrderID=2"
        "&signature=2412ac542e62a478c10f3f445ab2728162409bd70d355a7da8aa725485d31942"
    )
    result = signer.sign_if_zota(HttpRequest.from_url("GET", url))
    assert result.annotation.note == "Zota final-redirect signature: VALID"


def test_explicit_does_not_verify(signer):
    url = "https://shop.example.com/return?status=A&orderID=1&merchantOrderID=2&signature=x"
    assert signer.sign(HttpRequest.from_url("GET", url)).annotation is None


# ----------------------------------------------------------------------------
# Profiles and the manual marker
# ----------------------------------------------------------------------------

def test_profile_override_wins(signer, prod_profile):
    result = signer.sign(_deposit(), prod_profile)
    assert result.annotation.signature == DEPOSIT_SIG_PROD


def test_passive_skips_hand_signed_requests_and_strips_marker(signer):
    request = _deposit(headers={MANUAL_PROFILE_HEADER: "prod"})
    result = signer.sign_if_zota(request)
    assert result.request.header_value(MANUAL_PROFILE_HEADER) is None
    assert result.request.body == DEPOSIT_BODY
    assert result.annotation is None


def test_passive_strips_empty_marker(signer):
    request = HttpRequest.from_url("GET", "https://shop.example.com/", headers={MANUAL_PROFILE_HEADER: " "})
    result = signer.sign_if_zota(request)
    assert result.request.header_value(MANUAL_PROFILE_HEADER) is None


def test_explicit_uses_marker_profile_and_keeps_marker(signer):
    result = signer.sign(_deposit(headers={MANUAL_PROFILE_HEADER: "prod"}))
    assert result.annotation.signature == DEPOSIT_SIG_PROD
    assert result.request.header_value(MANUAL_PROFILE_HEADER) == "prod"


def test_unknown_marker_profile_falls_back_to_active(signer, caplog):
    with caplog.at_level(logging.ERROR):
        result = signer.sign(_deposit(headers={MANUAL_PROFILE_HEADER: "ghost"}))
    assert result.annotation.signature == DEPOSIT_SIG
    assert "Zota profile referenced in request not found: ghost" in caplog.text


def test_no_active_profile():
    signer = ZotaSigner(NoProfiles())
    request = _deposit()
    result = signer.sign_if_zota(request)
    assert result.annotation == NO_ACTIVE_PROFILE
    assert result.request == request


def test_mark_manual_profile(signer, profile, prod_profile):
    marked = signer.mark_manual_profile(_deposit(headers={MANUAL_PROFILE_HEADER: "old"}), prod_profile)
    values = [v for k, v in marked.headers if k == MANUAL_PROFILE_HEADER]
    assert values == ["prod"]

    cleared = signer.mark_manual_profile(marked, None)
    assert cleared.header_value(MANUAL_PROFILE_HEADER) is None


# ----------------------------------------------------------------------------
# Failure handling and helpers
# ----------------------------------------------------------------------------

def test_algorithm_errors_become_annotations(signer, monkeypatch):
    def boom(request, prefix, ctx):
        raise RuntimeError("boom")

    monkeypatch.setitem(algorithms.ALGORITHMS, Algorithm.DEPOSIT, boom)
    request = _deposit(headers={MANUAL_PROFILE_HEADER: ""})
    result = signer.sign_if_zota(request)

    assert result.annotation.note == "Zota signing error: RuntimeError: boom"
    assert result.annotation.severity == Severity.FAILURE
    assert result.request.body == DEPOSIT_BODY
    assert result.request.header_value(MANUAL_PROFILE_HEADER) is None


def test_looks_like_zota_host():
    assert ZotaSigner.looks_like_zota_host("api.zotapay-stage.com")
    assert ZotaSigner.looks_like_zota_host("ZOTA.internal")
    assert not ZotaSigner.looks_like_zota_host("example.com")
    assert not ZotaSigner.looks_like_zota_host(None)


def test_sign_for_preview_returns_signed_request(signer):
    preview = signer.sign_for_preview(_deposit())
    assert json.loads(preview.body)["signature"] == DEPOSIT_SIG
