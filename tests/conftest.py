# ============================================================================
# tests/conftest.py
# Shared fixtures: a sandboxed config, two profiles and a deterministic signer
# ============================================================================

import pytest

from zotasigner.base.config import StorageConfig, ZotaConfig, get_config, set_config
from zotasigner.profile.models import ZotaProfile
from zotasigner.profile.persistence import MemoryStore
from zotasigner.profile.store import ProfileStore
from zotasigner.signer.engine import ZotaSigner


@pytest.fixture(autouse=True)
def sandboxed_config(tmp_path):
    """Keep every test away from ~/.zotasigner."""
    original = get_config()
    set_config(ZotaConfig(storage=StorageConfig(base_dir=tmp_path)))
    yield
    set_config(original)


@pytest.fixture
def profile():
    return ZotaProfile(
        name="fixture",
        merchant_id="M1",
        merchant_secret_key="S1",
        api_base="https://api.zotapay-stage.com",
    )


@pytest.fixture
def prod_profile():
    return ZotaProfile(
        name="prod",
        merchant_id="M2",
        merchant_secret_key="S2",
        api_base="api.zotapay.com",
        default_endpoint_id="2000",
    )


@pytest.fixture
def profiles(profile, prod_profile):
    store = ProfileStore(MemoryStore())
    store.add_or_update(profile)
    store.add_or_update(prod_profile)
    store.set_active(profile.name)
    return store


@pytest.fixture
def signer(profiles):
    return ZotaSigner(profiles, clock=lambda: 1700000000, request_id_factory=lambda: "fixed-id")
