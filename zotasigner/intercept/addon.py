"""
zotasigner/intercept/addon.py
mitmproxy addon that signs Zota traffic on its way out.

Every request runs through the passive signing pass. Whether the rewritten
request actually replaces the original depends on the per-tool flags; the
annotation (missing fields, VALID/INVALID callbacks, errors) is attached to the
flow either way. The manual-profile marker is stripped in both cases.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from mitmproxy import command, flow, http

from zotasigner.base.exceptions import ProfileError
from zotasigner.controller import ToolSource, ZotaController
from zotasigner.message.request import HttpRequest, HttpService
from zotasigner.signer.engine import MANUAL_PROFILE_HEADER
from zotasigner.signer.result import Annotation, Severity, SignResult

logger = logging.getLogger(__name__)

MARKERS = {
    Severity.INFO: ":default:",
    Severity.WARNING: ":yellow_circle:",
    Severity.SUCCESS: ":green_circle:",
    Severity.FAILURE: ":red_circle:",
}


@dataclass(frozen=True)
class InterceptDecision:
    """What the hook should send, and what to tell the user about it."""
    request: HttpRequest
    annotation: Optional[Annotation] = None

    @classmethod
    def from_result(cls, original: HttpRequest, result: SignResult, apply: bool) -> "InterceptDecision":
        # The manual marker never leaves the proxy, signed or not.
        request = result.request if apply else original.with_removed_header(MANUAL_PROFILE_HEADER)
        return cls(request=request, annotation=result.annotation)


def request_from_flow(req: http.Request) -> HttpRequest:
    service = HttpService(host=req.host, port=req.port, secure=req.scheme == "https")
    return HttpRequest(
        method=req.method,
        path=req.path,
        service=service,
        headers=tuple(req.headers.items(multi=True)),
        body=req.get_text(strict=False) or "",
    )


def apply_to_flow(req: http.Request, original: HttpRequest, updated: HttpRequest) -> None:
    if updated == original:
        return
    req.method = updated.method
    if updated.service is not None and updated.service != original.service:
        req.scheme = updated.service.scheme
        req.host = updated.service.host
        req.port = updated.service.port
    req.path = updated.path
    req.headers = http.Headers([(k.encode("utf-8"), v.encode("utf-8")) for k, v in updated.headers])
    if updated.body != original.body:
        req.text = updated.body


def annotate(f: flow.Flow, annotation: Optional[Annotation]) -> None:
    if annotation is None:
        return
    f.comment = annotation.note
    f.marked = MARKERS[annotation.severity]


def tool_source(f: http.HTTPFlow) -> ToolSource:
    # A client-side replay is the closest thing mitmproxy has to a repeater.
    if f.is_replay == "request":
        return ToolSource.REPEATER
    return ToolSource.PROXY


class ZotaAddon:
    """
    mitmproxy addon bridging intercepted flows to the signing engine.
    """
    def __init__(self, controller: ZotaController):
        self.controller = controller
        self.signer = controller.signer

    def decide(self, request: HttpRequest, tool: ToolSource) -> InterceptDecision:
        """Host-agnostic hook: run the passive pass and apply the tool's flag."""
        result = self.signer.sign_if_zota(request)
        return InterceptDecision.from_result(request, result, apply=self.controller.should_sign(tool))

    def request(self, f: http.HTTPFlow):
        """Sign (or just annotate) an outgoing request."""
        try:
            original = request_from_flow(f.request)
            decision = self.decide(original, tool_source(f))
            apply_to_flow(f.request, original, decision.request)
            annotate(f, decision.annotation)
            if decision.annotation is not None:
                logger.info(f"[Zota] {f.request.method} {f.request.pretty_url}: {decision.annotation.note}")
        except Exception as e:
            logger.error(f"[Zota] Request processing error: {e}")

    def _resign(self, flows: Sequence[flow.Flow], profile_name: Optional[str]) -> None:
        for f in flows:
            if not isinstance(f, http.HTTPFlow):
                continue
            original = request_from_flow(f.request)
            try:
                result = self.controller.resign_with_profile(original, profile_name)
            except ProfileError as e:
                logger.error(f"[Zota] Failed to re-sign request: {e}")
                return
            apply_to_flow(f.request, original, result.request)
            annotate(f, result.annotation)

    @command.command("zota.resign")
    def resign(self, flows: Sequence[flow.Flow]) -> None:
        """Re-sign flows with the active profile."""
        self._resign(flows, None)

    @command.command("zota.resign_with")
    def resign_with(self, flows: Sequence[flow.Flow], profile: str) -> None:
        """Re-sign flows with a named profile (host, endpoint and merchant ids follow the profile)."""
        self._resign(flows, profile)

    @command.command("zota.profiles")
    def list_profiles(self) -> Sequence[str]:
        """Names of all configured profiles."""
        return [p.name for p in self.controller.all_profiles()]

    @command.command("zota.use")
    def use_profile(self, profile: str) -> None:
        """Make a profile the active one."""
        if not self.controller.select_active_profile(profile):
            logger.error(f"[Zota] Unknown profile: {profile}")
