# ============================================================================
# zotasigner/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines every setting the signer reads at startup: which tools get their
# traffic signed, where profiles and config are persisted, where the proxy
# listens and how logging behaves.
#
# KEY CONCEPTS:
# 1. Dataclasses: immutable (frozen) containers per concern
# 2. Environment Variables: ZOTA_* variables override the defaults
# 3. Singleton: one shared config, replaceable in tests via set_config()
#
# NOTE:
# The signing flags here are only the *initial* values. Once a project store
# holds a saved "zota.config" entry, the controller's persisted flags win.
#
# ============================================================================

from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# ============================================================================
# Signing Defaults
# ============================================================================
# Initial on/off switches for automatic signing, per traffic source.

@dataclass(frozen=True)
class SigningDefaults:
    # Master switch: when False, intercepted requests are analyzed and
    # annotated but never modified
    enabled: bool = True

    # Replayed flows (the mitmproxy equivalent of a repeater)
    sign_repeater: bool = True

    # Live proxied traffic
    sign_proxy: bool = False

    # Scripted/automated bursts
    sign_intruder: bool = False

    # Profile to activate at startup; empty keeps whatever the store says
    active_profile_name: str = ""


# ============================================================================
# File Storage Configuration
# ============================================================================

@dataclass(frozen=True)
class StorageConfig:
    # Base directory for all zotasigner data (~ means your home folder)
    base_dir: Path = field(default_factory=lambda: Path.home() / ".zotasigner")

    # Keyed string store holding profiles, the active pointer and the flags
    store_name: str = "project.json"

    @property
    def store_path(self) -> Path:
        return self.base_dir / self.store_name


# ============================================================================
# Proxy Configuration
# ============================================================================

@dataclass(frozen=True)
class ProxyConfig:
    # 127.0.0.1 keeps the interceptor reachable from this machine only
    listen_host: str = "127.0.0.1"

    # 0 means "pick a free port at startup"
    listen_port: int = 8080


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    # DEBUG / INFO / WARNING / ERROR
    level: str = "INFO"

    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # Also write to a rotating file inside base_dir
    file_enabled: bool = False

    file_name: str = "zotasigner.log"

    # Rotate at this size; keep backup_count old files
    max_file_size_mb: int = 5
    backup_count: int = 3


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass
class ZotaConfig:
    signing: SigningDefaults = field(default_factory=SigningDefaults)
    storage: StorageConfig = field(default_factory=StorageConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    log: LogConfig = field(default_factory=LogConfig)

    debug: bool = False

    @classmethod
    def from_env(cls) -> "ZotaConfig":
        """Build a config from ZOTA_* environment variables, falling back to defaults."""
        signing = SigningDefaults(
            enabled=_env_flag("ZOTA_ENABLED", "true"),
            sign_repeater=_env_flag("ZOTA_SIGN_REPEATER", "true"),
            sign_proxy=_env_flag("ZOTA_SIGN_PROXY", "false"),
            sign_intruder=_env_flag("ZOTA_SIGN_INTRUDER", "false"),
            active_profile_name=os.getenv("ZOTA_ACTIVE_PROFILE", ""),
        )

        base_dir = Path(os.getenv("ZOTA_DATA_DIR", str(Path.home() / ".zotasigner")))
        storage = StorageConfig(
            base_dir=base_dir,
            store_name=os.getenv("ZOTA_STORE_NAME", "project.json"),
        )

        proxy = ProxyConfig(
            listen_host=os.getenv("ZOTA_PROXY_HOST", "127.0.0.1"),
            listen_port=int(os.getenv("ZOTA_PROXY_PORT", "8080")),
        )

        log = LogConfig(
            level=os.getenv("ZOTA_LOG_LEVEL", "INFO"),
            file_enabled=_env_flag("ZOTA_LOG_FILE", "false"),
        )

        return cls(
            signing=signing,
            storage=storage,
            proxy=proxy,
            log=log,
            debug=_env_flag("ZOTA_DEBUG", "false"),
        )


# ============================================================================
# Global Configuration Singleton
# ============================================================================

_config: Optional[ZotaConfig] = None


def get_config() -> ZotaConfig:
    """
    Get the global configuration instance.

    Created from the environment on first use, then reused.
    """
    global _config
    if _config is None:
        _config = ZotaConfig.from_env()
    return _config


def set_config(config: ZotaConfig) -> None:
    """Replace the global configuration (mainly used for testing)."""
    global _config
    _config = config


def setup_logging(config: Optional[ZotaConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Console output always; a rotating file under the data directory when
    ``log.file_enabled`` is set. Call once at application startup.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        cfg.storage.base_dir.mkdir(parents=True, exist_ok=True)
        log_path = cfg.storage.base_dir / cfg.log.file_name
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
