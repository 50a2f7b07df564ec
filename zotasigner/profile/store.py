# zotasigner/profile/store.py: named credential profiles + the active pointer

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

from pydantic import ValidationError

from zotasigner.base.exceptions import PersistenceError
from zotasigner.profile.models import ZotaProfile
from zotasigner.profile.persistence import ACTIVE_KEY, PROFILES_KEY, KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_NAME = "default"
DEFAULT_API_BASE = "https://api.zotapay-stage.com"


class ProfileLookup(Protocol):
    """What the signing engine needs from a profile source."""
    def by_name(self, name: str) -> Optional[ZotaProfile]: ...
    def get_active_or_warn(self) -> Optional[ZotaProfile]: ...


@dataclass(frozen=True)
class ProfileSnapshot:
    profiles: Tuple[ZotaProfile, ...]
    active_name: Optional[str]

    @property
    def active(self) -> Optional[ZotaProfile]:
        for p in self.profiles:
            if p.name == self.active_name:
                return p
        return None


class ProfileStore:
    """
    Insertion-ordered profiles keyed by name, plus one active pointer.

    The interception hook and interactive actions hit this concurrently, so
    every read and write goes through a single lock. Persistence is
    best-effort: load/save failures are logged and never raised.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store
        self._lock = threading.Lock()
        self._profiles: Dict[str, ZotaProfile] = {}
        self._active: Optional[str] = None

        self._load()
        with self._lock:
            if not self._profiles:
                seed = ZotaProfile(name=DEFAULT_PROFILE_NAME, api_base=DEFAULT_API_BASE)
                self._profiles[seed.name] = seed
                self._active = seed.name
            elif self._active not in self._profiles:
                self._active = next(iter(self._profiles))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def all(self) -> List[ZotaProfile]:
        with self._lock:
            return list(self._profiles.values())

    def snapshot(self) -> ProfileSnapshot:
        with self._lock:
            return ProfileSnapshot(profiles=tuple(self._profiles.values()), active_name=self._active)

    def by_name(self, name: str) -> Optional[ZotaProfile]:
        with self._lock:
            return self._profiles.get(name)

    def get_active(self) -> Optional[ZotaProfile]:
        with self._lock:
            if self._active is None:
                return None
            return self._profiles.get(self._active)

    def get_active_or_warn(self) -> Optional[ZotaProfile]:
        profile = self.get_active()
        if profile is None:
            logger.error("[Zota] No active Zota profile configured")
        return profile

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_or_update(self, profile: ZotaProfile) -> None:
        with self._lock:
            self._profiles[profile.name] = profile
            if self._active is None:
                self._active = profile.name
            self._save()

    def remove(self, name: str) -> bool:
        with self._lock:
            if self._profiles.pop(name, None) is None:
                return False
            if self._active == name:
                self._active = next(iter(self._profiles), None)
            self._save()
            return True

    def set_active(self, name: str) -> bool:
        with self._lock:
            if name not in self._profiles:
                return False
            self._active = name
            self._save()
            return True

    # ------------------------------------------------------------------
    # Persistence (callers hold the lock, except during __init__)
    # ------------------------------------------------------------------

    def _load(self) -> None:
        try:
            raw = self._store.get_string(PROFILES_KEY)
            if raw:
                self._profiles = self._decode(raw)
            active = self._store.get_string(ACTIVE_KEY)
            if active:
                self._active = active
        except (PersistenceError, ValueError, ValidationError) as e:
            logger.error(f"[Zota] Failed to load profiles from project: {e}")

    def _save(self) -> None:
        try:
            payload = {name: p.to_storage() for name, p in self._profiles.items()}
            self._store.set_string(PROFILES_KEY, json.dumps(payload))
            self._store.set_string(ACTIVE_KEY, self._active or "")
        except PersistenceError as e:
            logger.error(f"[Zota] Failed to save profiles to project: {e}")

    @staticmethod
    def _decode(raw: str) -> Dict[str, ZotaProfile]:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("stored profiles are not a JSON object")
        profiles: Dict[str, ZotaProfile] = {}
        for key, item in data.items():
            if not isinstance(item, dict):
                continue
            item = {"name": key, **item}
            profile = ZotaProfile.model_validate(item)
            profiles[profile.name] = profile
        return profiles
