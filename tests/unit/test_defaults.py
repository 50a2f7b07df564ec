# ============================================================================
# tests/unit/test_defaults.py
# Retargeting a request at another profile
# ============================================================================

import json
import logging

import pytest

from zotasigner.base.exceptions import InvalidApiBaseError
from zotasigner.message.request import HttpRequest, HttpService
from zotasigner.signer.defaults import (
    apply_profile_defaults,
    normalize_api_base,
    update_endpoint_in_path,
    update_json_body_for_profile,
    update_query_for_profile,
    update_service_for_profile,
)
from zotasigner.util import query_string

STAGE = "https://api.zotapay-stage.com"


def _req(method, path, body=""):
    return HttpRequest.from_url(method, f"{STAGE}{path}", body=body)


# ----------------------------------------------------------------------------
# API base
# ----------------------------------------------------------------------------

@pytest.mark.parametrize(
    "api_base,expected",
    [
        ("api.zotapay.com", HttpService("api.zotapay.com", 443, True)),
        ("  https://api.zotapay.com/  ", HttpService("api.zotapay.com", 443, True)),
        ("http://localhost:8080/mock", HttpService("localhost", 8080, False)),
        ("HTTP://Sandbox.local", HttpService("sandbox.local", 80, False)),
    ],
)
def test_normalize_api_base(api_base, expected):
    assert normalize_api_base(api_base) == expected


@pytest.mark.parametrize("api_base", ["ftp://files.zotapay.com", "https://", "http://host:notaport"])
def test_normalize_api_base_rejects_bad_input(api_base):
    with pytest.raises(InvalidApiBaseError) as exc:
        normalize_api_base(api_base)
    assert exc.value.api_base == api_base


def test_service_and_host_header_follow_profile(prod_profile):
    updated = update_service_for_profile(_req("GET", "/"), prod_profile)
    assert updated.service == HttpService("api.zotapay.com", 443, True)
    assert updated.header_value("Host") == "api.zotapay.com"
    assert [k for k, _ in updated.headers].count("Host") == 1


def test_non_default_port_lands_in_host_header(profile):
    local = profile.model_copy(update={"api_base": "http://localhost:8080"})
    updated = update_service_for_profile(_req("GET", "/"), local)
    assert updated.header_value("Host") == "localhost:8080"
    assert updated.url == "http://localhost:8080/"


def test_bad_api_base_is_logged_and_skipped(profile, caplog):
    broken = profile.model_copy(update={"api_base": "ftp://nope"})
    request = _req("GET", "/")
    with caplog.at_level(logging.ERROR):
        assert update_service_for_profile(request, broken) == request
    assert "Invalid API base for profile fixture" in caplog.text


# ----------------------------------------------------------------------------
# Endpoint id in path
# ----------------------------------------------------------------------------

@pytest.mark.parametrize(
    "path,expected",
    [
        ("/api/v1/deposit/request/1050/", "/api/v1/deposit/request/2000/"),
        ("/api/v1/deposit/request/1050", "/api/v1/deposit/request/2000"),
        ("/api/v1/deposit/request/direct/1050/?a=1", "/api/v1/deposit/request/direct/2000/?a=1"),
        ("/api/v1/payout/request/77/", "/api/v1/payout/request/2000/"),
        ("/api/v1/query/order-status/", "/api/v1/query/order-status/"),
    ],
)
def test_update_endpoint_in_path(prod_profile, path, expected):
    assert update_endpoint_in_path(_req("POST", path), prod_profile).path == expected


def test_endpoint_untouched_without_default(profile):
    request = _req("POST", "/api/v1/deposit/request/1050/")
    assert update_endpoint_in_path(request, profile) is request


# ----------------------------------------------------------------------------
# Query and body
# ----------------------------------------------------------------------------

def test_query_endpoints_always_get_merchant(prod_profile):
    updated = update_query_for_profile(_req("GET", "/api/v1/query/current-balance/"), prod_profile)
    assert updated.path == "/api/v1/query/current-balance/?merchantID=M2"


def test_query_values_replaced_in_place(prod_profile):
    request = _req("GET", "/api/v1/query/orders-report/csv/?merchantID=M1&endpointIds=1050,1051&types=SALE")
    params = query_string.parse(update_query_for_profile(request, prod_profile).query)
    assert list(params) == ["merchantID", "endpointIds", "types"]
    assert params["merchantID"] == "M2"
    assert params["endpointIds"] == "2000"


def test_other_queries_only_touch_present_keys(prod_profile):
    request = _req("GET", "/checkout?cart=1")
    assert update_query_for_profile(request, prod_profile) is request

    request = _req("GET", "/checkout?merchantID=OLD")
    assert update_query_for_profile(request, prod_profile).query == "merchantID=M2"


def test_json_body_ids_replaced(prod_profile):
    body = json.dumps({"merchantID": "OLD", "EndpointID": "1", "orderAmount": "1.00"})
    updated = update_json_body_for_profile(_req("POST", "/x", body), prod_profile)
    assert json.loads(updated.body) == {"merchantID": "M2", "EndpointID": "2000", "orderAmount": "1.00"}


@pytest.mark.parametrize(
    "method,body",
    [
        ("GET", '{"merchantID":"OLD"}'),
        ("POST", "[1,2]"),
        ("POST", "not json"),
        ("POST", '{"orderAmount":"1.00"}'),
        ("POST", ""),
    ],
)
def test_json_body_left_alone(prod_profile, method, body):
    request = _req(method, "/x", body)
    assert update_json_body_for_profile(request, prod_profile) is request


def test_apply_profile_defaults_end_to_end(prod_profile):
    body = json.dumps({"merchantOrderID": "O1"})
    updated = apply_profile_defaults(_req("POST", "/api/v1/deposit/request/1050/", body), prod_profile)
    assert updated.url == "https://api.zotapay.com/api/v1/deposit/request/2000/"
    assert updated.body == body


def test_apply_profile_defaults_without_profile():
    request = _req("GET", "/")
    assert apply_profile_defaults(request, None) is request
