"""
zotasigner/profile/persistence.py
Keyed string store backing profiles, the active pointer and the signing flags.

The signer only ever needs ``get_string``/``set_string``; the file variant
keeps everything in one JSON object so a project can be copied around as a
single file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

from zotasigner.base.exceptions import PersistenceError

logger = logging.getLogger(__name__)

PROFILES_KEY = "zota.profiles"
ACTIVE_KEY = "zota.active"
CONFIG_KEY = "zota.config"


class KeyValueStore(Protocol):
    def get_string(self, key: str) -> Optional[str]: ...
    def set_string(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store; used by tests and the one-shot CLI commands."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_string(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set_string(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value


class JsonFileStore:
    """
    Store backed by a single JSON object on disk.

    Writes go through a temp file in the same directory followed by
    ``os.replace`` so a crash never leaves a half-written project file.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read store {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raise PersistenceError(f"Store {self.path} does not hold a JSON object")
        return {str(k): str(v) for k, v in raw.items()}

    def get_string(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_string(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".zota-", suffix=".tmp")
            except OSError as e:
                raise PersistenceError(f"Cannot write store {self.path}: {e}") from e
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2, sort_keys=True)
                os.replace(tmp, self.path)
            except OSError as e:
                try:
                    os.unlink(tmp)
                except OSError:
                    logger.warning(f"[Zota] Could not remove temp file {tmp}")
                raise PersistenceError(f"Cannot write store {self.path}: {e}") from e
