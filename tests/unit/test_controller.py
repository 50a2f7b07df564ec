# ============================================================================
# tests/unit/test_controller.py
# Signing flags, persisted settings and explicit re-signing
# ============================================================================

import json

import pytest

from zotasigner.base.config import SigningDefaults
from zotasigner.base.exceptions import ProfileError
from zotasigner.controller import ToolSource, ZotaController, ZotaSettings
from zotasigner.message.request import HttpRequest
from zotasigner.profile.persistence import CONFIG_KEY, MemoryStore
from zotasigner.signer.engine import MANUAL_PROFILE_HEADER

DEPOSIT_BODY = json.dumps({"merchantOrderID": "O1", "orderAmount": "500.00", "customerEmail": "a@b.com"})


@pytest.fixture
def backing():
    return MemoryStore()


@pytest.fixture
def controller(backing, profile, prod_profile):
    ctl = ZotaController(backing, SigningDefaults())
    ctl.add_or_update_profile(profile)
    ctl.add_or_update_profile(prod_profile)
    ctl.select_active_profile("fixture")
    return ctl


def _saved(backing):
    return json.loads(backing.get_string(CONFIG_KEY))


# ----------------------------------------------------------------------------
# Flags
# ----------------------------------------------------------------------------

def test_default_flags(controller):
    assert controller.should_sign(ToolSource.REPEATER)
    assert not controller.should_sign(ToolSource.PROXY)
    assert not controller.should_sign(ToolSource.INTRUDER)
    assert not controller.should_sign(ToolSource.OTHER)


def test_master_switch_overrides_tool_flags(controller):
    controller.set_sign_proxy(True)
    controller.set_enabled(False)
    assert not controller.should_sign(ToolSource.REPEATER)
    assert not controller.should_sign(ToolSource.PROXY)


def test_flags_are_persisted(backing, controller):
    controller.set_sign_proxy(True)
    controller.set_sign_intruder(True)
    controller.set_sign_repeater(False)
    assert _saved(backing) == {
        "enabled": True,
        "signRepeater": False,
        "signProxy": True,
        "signIntruder": True,
        "activeProfileName": "fixture",
    }

    reloaded = ZotaController(backing, SigningDefaults())
    assert reloaded.should_sign(ToolSource.PROXY)
    assert reloaded.should_sign(ToolSource.INTRUDER)
    assert not reloaded.should_sign(ToolSource.REPEATER)


def test_defaults_used_when_nothing_saved():
    ctl = ZotaController(MemoryStore(), SigningDefaults(sign_proxy=True))
    assert ctl.should_sign(ToolSource.PROXY)


def test_corrupt_settings_fall_back_to_defaults():
    ctl = ZotaController(MemoryStore({CONFIG_KEY: "{oops"}), SigningDefaults())
    assert ctl.settings == ZotaSettings.from_defaults(SigningDefaults()).model_copy(
        update={"active_profile_name": "default"}
    )


# ----------------------------------------------------------------------------
# Active profile bookkeeping
# ----------------------------------------------------------------------------

def test_fresh_controller_records_seeded_profile():
    backing = MemoryStore()
    ctl = ZotaController(backing, SigningDefaults())
    assert ctl.active_profile().name == "default"
    assert _saved(backing)["activeProfileName"] == "default"


def test_configured_profile_is_activated(backing, controller):
    fresh = ZotaController(backing, SigningDefaults(active_profile_name="prod"))
    # saved settings win over defaults
    assert fresh.active_profile().name == "fixture"

    other = MemoryStore({"zota.profiles": backing.get_string("zota.profiles")})
    configured = ZotaController(other, SigningDefaults(active_profile_name="prod"))
    assert configured.active_profile().name == "prod"


def test_missing_configured_profile_is_corrected():
    ctl = ZotaController(MemoryStore(), SigningDefaults(active_profile_name="ghost"))
    assert ctl.settings.active_profile_name == "default"


def test_select_active_profile(backing, controller):
    assert controller.select_active_profile("prod")
    assert controller.active_profile().name == "prod"
    assert _saved(backing)["activeProfileName"] == "prod"

    assert not controller.select_active_profile("ghost")
    assert not controller.select_active_profile("")
    assert controller.active_profile().name == "prod"


def test_remove_active_profile_updates_settings(controller):
    assert controller.remove_profile("fixture")
    assert controller.settings.active_profile_name == controller.active_profile().name
    assert not controller.remove_profile("fixture")
    assert not controller.remove_profile(None)


def test_add_or_update_profile(controller, profile):
    controller.add_or_update_profile(None)
    controller.add_or_update_profile(profile.model_copy(update={"merchant_id": "M9"}))
    assert controller.profiles.by_name("fixture").merchant_id == "M9"


# ----------------------------------------------------------------------------
# Explicit re-signing
# ----------------------------------------------------------------------------

def test_resign_with_named_profile(controller):
    request = HttpRequest.from_url(
        "POST", "https://api.zotapay-stage.com/api/v1/deposit/request/1050/", body=DEPOSIT_BODY
    )
    result = controller.resign_with_profile(request, "prod")

    assert result.request.url == "https://api.zotapay.com/api/v1/deposit/request/2000/"
    assert result.request.header_value("Host") == "api.zotapay.com"
    assert result.request.header_value(MANUAL_PROFILE_HEADER) == "prod"
    assert json.loads(result.request.body)["signature"] == (
        "142448019325e458ee9033202d38293873446141da66095dc00feee3b0c84c39"
    )


def test_resigned_request_survives_the_passive_pass(controller):
    request = HttpRequest.from_url(
        "POST", "https://api.zotapay-stage.com/api/v1/deposit/request/1050/", body=DEPOSIT_BODY
    )
    resigned = controller.resign_with_profile(request, "prod").request
    outgoing = controller.signer.sign_if_zota(resigned)

    assert outgoing.request.body == resigned.body
    assert outgoing.request.header_value(MANUAL_PROFILE_HEADER) is None


def test_resign_uses_active_profile_by_default(controller):
    request = HttpRequest.from_url("GET", "https://api.zotapay-stage.com/api/v1/query/current-balance/")
    result = controller.resign_with_profile(request)
    assert result.request.header_value(MANUAL_PROFILE_HEADER) == "fixture"
    assert "merchantID=M1" in result.request.query


def test_resign_with_unknown_profile(controller):
    request = HttpRequest.from_url("GET", "https://api.zotapay-stage.com/")
    with pytest.raises(ProfileError) as exc:
        controller.resign_with_profile(request, "ghost")
    assert exc.value.profile_name == "ghost"


def test_resign_without_active_profile():
    ctl = ZotaController(MemoryStore(), SigningDefaults())
    ctl.remove_profile("default")
    with pytest.raises(ProfileError):
        ctl.resign_with_profile(HttpRequest.from_url("GET", "https://api.zotapay-stage.com/"))
