from .models import ZotaProfile
from .store import ProfileLookup, ProfileSnapshot, ProfileStore

__all__ = ["ZotaProfile", "ProfileLookup", "ProfileSnapshot", "ProfileStore"]
