"""
zotasigner/signer/engine.py
The signing engine.

ZotaSigner classifies a request against the endpoint rule table, resolves
which merchant profile to sign with and dispatches to the matching algorithm.
It never blocks or drops a request: the worst outcome is "unsigned, annotated
as failed".

Two entry points:
  - sign()         explicit re-sign / preview; always dispatches, refreshes
                   timestamp/requestID/merchantID, keeps the manual marker
  - sign_if_zota() passive pass over intercepted traffic; gated on host/path,
                   never refreshes existing values, always strips the marker
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from zotasigner.message.request import HttpRequest
from zotasigner.profile.models import ZotaProfile
from zotasigner.profile.store import ProfileLookup
from zotasigner.signer.algorithms import ALGORITHMS, SigningContext
from zotasigner.signer.defaults import apply_profile_defaults
from zotasigner.signer.result import NO_ACTIVE_PROFILE, Annotation, SignResult
from zotasigner.signer.rules import is_known_path, match_rule
from zotasigner.signer.verify import verify_callback, verify_final_redirect

MANUAL_PROFILE_HEADER = "X-Zota-Profile"

HOST_MARKERS = ("zota", "zotapay")


class ZotaSigner:
    """
    Central signing engine for Zota API requests.

    Holds no per-request state; one instance can serve every interception
    thread at once.
    """

    def __init__(
        self,
        profiles: ProfileLookup,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], int]] = None,
        request_id_factory: Optional[Callable[[], str]] = None,
    ):
        self.profiles = profiles
        self.log = logger or logging.getLogger(__name__)
        self._clock = clock
        self._request_id_factory = request_id_factory

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def sign(self, request: HttpRequest, profile_override: Optional[ZotaProfile] = None) -> SignResult:
        return self._sign_internal(request, profile_override, allow_unknown_host=True, refresh_dynamic_values=True)

    def sign_if_zota(self, request: HttpRequest) -> SignResult:
        return self._sign_internal(request, None, allow_unknown_host=False, refresh_dynamic_values=False)

    def sign_for_preview(self, request: HttpRequest) -> HttpRequest:
        """Signed copy for display before sending (e.g. a freshly replayed flow)."""
        return self.sign(request).request

    def apply_profile_defaults(self, request: HttpRequest, profile: Optional[ZotaProfile]) -> HttpRequest:
        return apply_profile_defaults(request, profile)

    def mark_manual_profile(self, request: HttpRequest, profile: Optional[ZotaProfile]) -> HttpRequest:
        """
        Tag a hand-signed request with the profile used.

        The passive pass sees the marker, leaves the signature alone and strips
        the header before the request goes out.
        """
        cleared = request.with_removed_header(MANUAL_PROFILE_HEADER)
        if profile is None or not profile.name or not profile.name.strip():
            return cleared
        return cleared.with_added_header(MANUAL_PROFILE_HEADER, profile.name)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def looks_like_zota_host(host: Optional[str]) -> bool:
        if not host:
            return False
        host = host.lower()
        return any(marker in host for marker in HOST_MARKERS)

    def _sign_internal(
        self,
        request: HttpRequest,
        profile_override: Optional[ZotaProfile],
        allow_unknown_host: bool,
        refresh_dynamic_values: bool,
    ) -> SignResult:
        strip_manual_header = not allow_unknown_host
        host = request.service.host if request.service else ""
        path = request.path
        method = (request.method or "").upper()

        manual_name = (request.header_value(MANUAL_PROFILE_HEADER) or "").strip()
        if manual_name and not refresh_dynamic_values:
            # Already signed by hand; only the marker has to go.
            return self._finalize(SignResult(request), strip_manual_header)

        if profile_override is None and manual_name:
            profile_override = self.profiles.by_name(manual_name)
            if profile_override is None:
                self.log.error(f"[Zota] Zota profile referenced in request not found: {manual_name}")

        # Unrelated hosts are never signed, but may still carry a redirect/callback to verify.
        gated = allow_unknown_host or self.looks_like_zota_host(host) or is_known_path(path)

        try:
            rule = match_rule(method, path) if gated else None
            if rule is not None:
                profile = self._resolve_profile(profile_override)
                if profile is None:
                    return self._finalize(SignResult(request, NO_ACTIVE_PROFILE), strip_manual_header)
                signed = ALGORITHMS[rule.algorithm](
                    request,
                    rule.matched_prefix(path),
                    self._context(profile, refresh_dynamic_values),
                )
                return self._finalize(signed, strip_manual_header)

            if not allow_unknown_host and method == "GET":
                verified = verify_final_redirect(request, self.profiles.get_active_or_warn)
                if verified.annotation is not None:
                    return self._finalize(verified, strip_manual_header)
            elif not allow_unknown_host and method == "POST":
                verified = verify_callback(request, self.profiles.get_active_or_warn)
                if verified.annotation is not None:
                    return self._finalize(verified, strip_manual_header)
        except Exception as e:
            self.log.error(f"[Zota] Signing error: {e}")
            note = Annotation.failure(f"Zota signing error: {type(e).__name__}: {e}")
            return self._finalize(SignResult(request, note), strip_manual_header)

        return self._finalize(SignResult(request), strip_manual_header)

    def _resolve_profile(self, override: Optional[ZotaProfile]) -> Optional[ZotaProfile]:
        if override is not None:
            return override
        return self.profiles.get_active_or_warn()

    def _context(self, profile: ZotaProfile, refresh_dynamic_values: bool) -> SigningContext:
        kwargs = {}
        if self._clock is not None:
            kwargs["clock"] = self._clock
        if self._request_id_factory is not None:
            kwargs["new_request_id"] = self._request_id_factory
        return SigningContext(profile=profile, refresh_dynamic_values=refresh_dynamic_values, **kwargs)

    @staticmethod
    def _finalize(result: SignResult, strip_manual_header: bool) -> SignResult:
        if not strip_manual_header:
            return result
        if result.request.header_value(MANUAL_PROFILE_HEADER) is None:
            return result
        return result.with_request(result.request.with_removed_header(MANUAL_PROFILE_HEADER))
