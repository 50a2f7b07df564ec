"""
zotasigner/message/request.py
Immutable HTTP request snapshot used by the signing engine.

Every ``with_*`` call returns a new value; nothing here mutates in place, so a
request can be previewed, signed and sent without aliasing surprises.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple
from urllib.parse import urlsplit

Header = Tuple[str, str]


@dataclass(frozen=True)
class HttpService:
    """Network target of a request."""
    host: str
    port: int
    secure: bool

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @property
    def is_default_port(self) -> bool:
        return (self.secure and self.port == 443) or (not self.secure and self.port == 80)

    @property
    def host_header(self) -> str:
        return self.host if self.is_default_port else f"{self.host}:{self.port}"


@dataclass(frozen=True)
class HttpRequest:
    method: str
    path: str
    service: Optional[HttpService] = None
    headers: Tuple[Header, ...] = field(default_factory=tuple)
    body: str = ""

    @classmethod
    def from_url(
        cls,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: str = "",
    ) -> "HttpRequest":
        """Build a request from an absolute URL; a ``Host`` header is added when missing."""
        parts = urlsplit(url)
        secure = parts.scheme.lower() != "http"
        port = parts.port or (443 if secure else 80)
        service = HttpService(host=parts.hostname or "", port=port, secure=secure)

        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"

        request = cls(
            method=method.upper(),
            path=path,
            service=service,
            headers=tuple((headers or {}).items()),
            body=body,
        )
        if request.header_value("Host") is None:
            request = request.with_added_header("Host", service.host_header)
        return request

    @property
    def url(self) -> str:
        if self.service is None:
            return self.path
        return f"{self.service.scheme}://{self.service.host_header}{self.path}"

    @property
    def path_without_query(self) -> str:
        return self.path.split("?", 1)[0]

    @property
    def query(self) -> str:
        _, _, query = self.path.partition("?")
        return query

    def header_value(self, name: str) -> Optional[str]:
        """First value of ``name`` (case-insensitive), or ``None``."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def with_path(self, path: str) -> "HttpRequest":
        return replace(self, path=path)

    def with_service(self, service: HttpService) -> "HttpRequest":
        return replace(self, service=service)

    def with_body(self, body: str) -> "HttpRequest":
        updated = replace(self, body=body)
        if self.header_value("Content-Length") is not None:
            updated = updated.with_updated_header("Content-Length", str(len(body.encode("utf-8"))))
        return updated

    def with_added_header(self, name: str, value: str) -> "HttpRequest":
        return replace(self, headers=self.headers + ((name, value),))

    def with_removed_header(self, name: str) -> "HttpRequest":
        wanted = name.lower()
        kept = tuple((k, v) for k, v in self.headers if k.lower() != wanted)
        if len(kept) == len(self.headers):
            return self
        return replace(self, headers=kept)

    def with_updated_header(self, name: str, value: str) -> "HttpRequest":
        """Replace the first ``name`` header in place, or append it when absent."""
        wanted = name.lower()
        headers = list(self.headers)
        for idx, (key, _) in enumerate(headers):
            if key.lower() == wanted:
                headers[idx] = (key, value)
                return replace(self, headers=tuple(headers))
        return self.with_added_header(name, value)
