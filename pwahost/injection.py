"""HTML injection of the service worker registration and manifest link.

Served pages pass through an ordered list of processors before they are
written. The registration processor decides, per response, whether the page
gets a script registering the service worker:

1. Feature gate: pwa.register_service_worker must be on.
2. Security gate: HTTP must be allowed, or the request must be HTTPS, or the
   host must be running in development.

The script is inserted right before the closing </body>. Documents without a
closing body tag (fragments, partial responses) are left untouched.
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .config import PwaConfig
from .models import InjectionDecision, WebManifest
from .resources import ManifestError

if TYPE_CHECKING:
    from .resources import FileManifestProvider

logger = logging.getLogger(__name__)

# Placeholder host pages can use wherever the response nonce is needed
CSP_NONCE_PLACEHOLDER = "__CSP_NONCE__"

NO_INJECTION = InjectionDecision(inject=False)

_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)
_HEAD_CLOSE = re.compile(r"</head\s*>", re.IGNORECASE)


@dataclass(frozen=True)
class PageContext:
    """Per-response facts the page processors decide on."""

    is_secure: bool
    is_development: bool
    nonce: str | None = None


def build_registration_script(config: PwaConfig, nonce: str | None = None) -> str:
    """Build the registration script element."""
    nonce_attr = ""
    if config.enable_csp_nonce and nonce:
        nonce_attr = f' nonce="{html.escape(nonce)}"'
    return (
        f"\n\t<script{nonce_attr}>'serviceWorker'in navigator&&navigator.serviceWorker.register("
        f"'{config.service_worker_path}', {{ scope: '{config.scope}' }})</script>"
    )


def decide_registration(
    config: PwaConfig,
    *,
    is_secure: bool,
    is_development: bool,
    nonce: str | None = None,
) -> InjectionDecision:
    """Decide whether a page gets the registration script.

    Args:
        config: PWA configuration.
        is_secure: Whether the current request arrived over HTTPS.
        is_development: Whether the host runs in the development environment.
        nonce: CSP nonce of the current response, if any.

    Returns:
        The decision, carrying the script markup when injecting.
    """
    if not config.register_service_worker:
        return NO_INJECTION

    if not (config.allow_http or is_secure or is_development):
        return NO_INJECTION

    return InjectionDecision(inject=True, markup=build_registration_script(config, nonce))


def decide_manifest_link(config: PwaConfig, manifest: WebManifest | None) -> InjectionDecision:
    """Decide whether a page gets the manifest link in its head."""
    if not config.register_webmanifest or manifest is None:
        return NO_INJECTION

    markup = f'\n\t<link rel="manifest" href="{config.manifest_path}" />'
    if manifest.theme_color:
        markup += f'\n\t<meta name="theme-color" content="{html.escape(manifest.theme_color)}" />'
    return InjectionDecision(inject=True, markup=markup)


def _insert_before_last(pattern: re.Pattern, document: str, markup: str) -> str:
    matches = list(pattern.finditer(document))
    if not matches:
        return document
    position = matches[-1].start()
    return document[:position] + markup + document[position:]


def append_to_body(document: str, markup: str) -> str:
    """Insert markup immediately before the closing body tag."""
    return _insert_before_last(_BODY_CLOSE, document, markup)


def append_to_head(document: str, markup: str) -> str:
    """Insert markup immediately before the closing head tag."""
    return _insert_before_last(_HEAD_CLOSE, document, markup)


class RegistrationInjector:
    """Appends the service worker registration script to the page body.

    Runs before every other body-mutating processor.
    """

    order = -1

    def __init__(self, config: PwaConfig) -> None:
        self.config = config

    def process(self, document: str, page: PageContext) -> str:
        decision = decide_registration(
            self.config,
            is_secure=page.is_secure,
            is_development=page.is_development,
            nonce=page.nonce,
        )
        if not decision.inject:
            return document
        return append_to_body(document, decision.markup)


class ManifestLinkInjector:
    """Adds the manifest link (and theme color) to the page head."""

    order = 0

    def __init__(self, config: PwaConfig, manifests: "FileManifestProvider") -> None:
        self.config = config
        self._manifests = manifests

    def process(self, document: str, page: PageContext) -> str:
        if not self.config.register_webmanifest:
            return document
        try:
            manifest = self._manifests.get_manifest()
        except ManifestError as e:
            # Only the manifest route fails; pages are served without the link
            logger.warning("Skipping manifest link: %s", e)
            return document
        decision = decide_manifest_link(self.config, manifest)
        if not decision.inject:
            return document
        return append_to_head(document, decision.markup)


class NoncePlaceholderProcessor:
    """Replaces __CSP_NONCE__ in host pages with the response nonce."""

    order = 10

    def process(self, document: str, page: PageContext) -> str:
        if page.nonce is None:
            return document
        return document.replace(CSP_NONCE_PLACEHOLDER, page.nonce)


def render_page(document: str, processors: list, page: PageContext) -> str:
    """Run document through processors in ascending order."""
    for processor in sorted(processors, key=lambda p: p.order):
        document = processor.process(document, page)
    return document
