"""
zotasigner/controller.py
Owns the signing flags and keeps them consistent with the profile store.

The interception hook asks ``should_sign(tool)``; interactive surfaces (the
mitmproxy command, the CLI) go through the profile operations here so the
persisted ``active_profile_name`` never drifts from the store's pointer.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zotasigner.base.config import SigningDefaults, get_config
from zotasigner.base.exceptions import PersistenceError, ProfileError
from zotasigner.message.request import HttpRequest
from zotasigner.profile.models import ZotaProfile
from zotasigner.profile.persistence import CONFIG_KEY, KeyValueStore
from zotasigner.profile.store import ProfileStore
from zotasigner.signer.engine import ZotaSigner
from zotasigner.signer.result import SignResult

logger = logging.getLogger(__name__)


class ToolSource(str, Enum):
    REPEATER = "repeater"
    PROXY = "proxy"
    INTRUDER = "intruder"
    OTHER = "other"


class ZotaSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = True
    sign_repeater: bool = Field(default=True, alias="signRepeater")
    sign_proxy: bool = Field(default=False, alias="signProxy")
    sign_intruder: bool = Field(default=False, alias="signIntruder")
    active_profile_name: str = Field(default="", alias="activeProfileName")

    @classmethod
    def from_defaults(cls, defaults: SigningDefaults) -> "ZotaSettings":
        return cls(
            enabled=defaults.enabled,
            sign_repeater=defaults.sign_repeater,
            sign_proxy=defaults.sign_proxy,
            sign_intruder=defaults.sign_intruder,
            active_profile_name=defaults.active_profile_name,
        )


class ZotaController:
    def __init__(self, store: KeyValueStore, defaults: Optional[SigningDefaults] = None):
        self._store = store
        self.profiles = ProfileStore(store)
        self.signer = ZotaSigner(self.profiles)
        self.settings = self._load_settings(defaults or get_config().signing)

        # Sync the active profile both ways.
        if self.settings.active_profile_name:
            if not self.profiles.set_active(self.settings.active_profile_name):
                logger.warning(f"[Zota] Configured profile {self.settings.active_profile_name!r} does not exist")
                self._record_active()
        else:
            self._record_active()

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def should_sign(self, tool: ToolSource) -> bool:
        if not self.settings.enabled:
            return False
        if tool == ToolSource.REPEATER:
            return self.settings.sign_repeater
        if tool == ToolSource.PROXY:
            return self.settings.sign_proxy
        if tool == ToolSource.INTRUDER:
            return self.settings.sign_intruder
        return False

    def set_enabled(self, enabled: bool) -> None:
        self._update(enabled=enabled)

    def set_sign_repeater(self, enabled: bool) -> None:
        self._update(sign_repeater=enabled)

    def set_sign_proxy(self, enabled: bool) -> None:
        self._update(sign_proxy=enabled)

    def set_sign_intruder(self, enabled: bool) -> None:
        self._update(sign_intruder=enabled)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def all_profiles(self) -> List[ZotaProfile]:
        return self.profiles.all()

    def active_profile(self) -> Optional[ZotaProfile]:
        return self.profiles.get_active()

    def select_active_profile(self, name: Optional[str]) -> bool:
        if not name:
            return False
        if not self.profiles.set_active(name):
            return False
        self._update(active_profile_name=name)
        return True

    def add_or_update_profile(self, profile: Optional[ZotaProfile]) -> None:
        if profile is None:
            return
        if not profile.name or not profile.name.strip():
            raise ProfileError("Profile name is required")
        self.profiles.add_or_update(profile)
        if not self.settings.active_profile_name:
            self._update(active_profile_name=profile.name)

    def remove_profile(self, name: Optional[str]) -> bool:
        if not name:
            return False
        was_active = self.settings.active_profile_name == name
        removed = self.profiles.remove(name)
        if removed and was_active:
            self._record_active()
        return removed

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def resign_with_profile(self, request: HttpRequest, profile_name: Optional[str] = None) -> SignResult:
        """
        Explicit "re-sign with profile X".

        Retargets the request at the profile, signs it with fresh dynamic
        values and tags it with the manual marker so the passive pass on the
        way out leaves the signature alone.
        """
        if profile_name:
            profile = self.profiles.by_name(profile_name)
            if profile is None:
                raise ProfileError(f"Unknown profile: {profile_name}", profile_name)
        else:
            profile = self.profiles.get_active()
            if profile is None:
                raise ProfileError("No active profile")

        prepared = self.signer.apply_profile_defaults(request, profile)
        result = self.signer.sign(prepared, profile)
        marked = self.signer.mark_manual_profile(result.request, profile)

        if result.annotation is not None:
            logger.info(f"[Zota] {result.annotation.note}")
        else:
            logger.info(f"[Zota] Re-signed request using profile: {profile.name}")
        return result.with_request(marked)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _record_active(self) -> None:
        active = self.profiles.get_active()
        self._update(active_profile_name=active.name if active else "")

    def _update(self, **changes) -> None:
        self.settings = self.settings.model_copy(update=changes)
        self._save_settings()

    def _load_settings(self, defaults: SigningDefaults) -> ZotaSettings:
        try:
            raw = self._store.get_string(CONFIG_KEY)
            if raw:
                return ZotaSettings.model_validate_json(raw)
        except (PersistenceError, ValidationError) as e:
            logger.error(f"[Zota] Failed to load config: {e}")
        return ZotaSettings.from_defaults(defaults)

    def _save_settings(self) -> None:
        try:
            self._store.set_string(CONFIG_KEY, self.settings.model_dump_json(by_alias=True))
        except PersistenceError as e:
            logger.error(f"[Zota] Failed to save config: {e}")
