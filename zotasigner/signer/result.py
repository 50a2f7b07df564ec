"""
zotasigner/signer/result.py
Outcome of a signing or verification pass: the request to send plus an optional note.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

from zotasigner.message.request import HttpRequest


class Severity(str, Enum):
    INFO = "informational"
    WARNING = "warning"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Annotation:
    """Human-readable note attached to a signing or verification outcome."""
    note: str
    severity: Severity = Severity.INFO
    signature: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    @classmethod
    def signed(cls, kind: str, signature: str, warnings: Sequence[str] = ()) -> "Annotation":
        note = f"Zota: signed {kind} sig={signature}"
        if warnings:
            note += " warnings=" + "/".join(warnings)
        return cls(
            note=note,
            severity=Severity.WARNING if warnings else Severity.INFO,
            signature=signature,
            warnings=tuple(warnings),
        )

    @classmethod
    def failure(cls, note: str) -> "Annotation":
        return cls(note=note, severity=Severity.FAILURE)


NO_ACTIVE_PROFILE = Annotation.failure("Zota: no active profile")


@dataclass(frozen=True)
class SignResult:
    """A (possibly rewritten) request and what the engine has to say about it."""
    request: HttpRequest
    annotation: Optional[Annotation] = None

    def with_request(self, request: HttpRequest) -> "SignResult":
        return replace(self, request=request)
