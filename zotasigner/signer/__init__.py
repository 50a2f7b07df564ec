"""Module __init__: the signing engine and its building blocks."""
#
# KEY MODULES:
# - rules.py: endpoint rule table (method + path prefixes -> algorithm)
# - algorithms.py: per-endpoint signature computation and request rewriting
# - verify.py: final-redirect and callback signature checks
# - defaults.py: retarget a request at a profile before manual re-signing
# - engine.py: ZotaSigner, which ties the above together
#

from .engine import MANUAL_PROFILE_HEADER, ZotaSigner
from .result import Annotation, Severity, SignResult

__all__ = ["MANUAL_PROFILE_HEADER", "ZotaSigner", "Annotation", "Severity", "SignResult"]
