from typing import Optional


class ZotaSignerError(Exception):
    """Base exception for all zotasigner errors."""


class ProfileError(ZotaSignerError):
    """Raised when a profile is missing, unnamed or otherwise unusable for an explicit action."""
    def __init__(self, message: str, profile_name: Optional[str] = None):
        super().__init__(message)
        self.profile_name = profile_name


class InvalidApiBaseError(ZotaSignerError):
    """Raised when a profile's API base cannot be turned into a network target."""
    def __init__(self, message: str, api_base: Optional[str] = None):
        super().__init__(message)
        self.api_base = api_base


class PersistenceError(ZotaSignerError):
    """Raised when the keyed string store cannot be read or written."""
