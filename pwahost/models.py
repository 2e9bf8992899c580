"""Data models shared by the PWA endpoints and page injection."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ResolvedTemplate:
    """A service worker strategy template before substitution.

    Attributes:
        strategy: Strategy identifier the template was resolved for.
        text: Raw script text, placeholders still in place.
    """

    strategy: str
    text: str


@dataclass(frozen=True)
class WebManifest:
    """A web app manifest document supplied by the host.

    Attributes:
        raw_json: The document text, served byte-for-byte.
        data: Parsed JSON object, used for head metadata only.
    """

    raw_json: str
    data: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def theme_color(self) -> str | None:
        value = self.data.get("theme_color")
        return str(value) if value else None


@dataclass(frozen=True)
class InjectionDecision:
    """Outcome of an HTML injection decision.

    Attributes:
        inject: Whether markup should be added to the page.
        markup: Exact markup to add; empty when inject is False.
    """

    inject: bool
    markup: str = ""


@dataclass(frozen=True)
class PwaResponse:
    """Response produced by a PWA endpoint.

    Attributes:
        status: HTTP status code.
        body: Encoded response body.
        content_type: Content-Type header value, or None to omit it.
        headers: Additional headers (e.g. Cache-Control).
    """

    status: int
    body: bytes = b""
    content_type: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
