"""PWA endpoint dispatcher.

Routes the three PWA paths (service worker, offline page, manifest) to
handlers that build complete responses. The paths come from configuration:
base route + suffix.
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ._assets import OFFLINE_PAGE_KEY
from .config import PwaConfig
from .models import PwaResponse
from .strategy import resolve_template, select_strategy
from .substitution import build_context, substitute

if TYPE_CHECKING:
    from .resources import FileManifestProvider, FileTemplateProvider, ResourceStore

logger = logging.getLogger(__name__)

SERVICE_WORKER_CONTENT_TYPE = "application/javascript; charset=utf-8"
OFFLINE_CONTENT_TYPE = "text/html"
MANIFEST_CONTENT_TYPE = "application/manifest+json; charset=utf-8"


def _cache_control(max_age: int) -> dict[str, str]:
    return {"Cache-Control": f"max-age={max_age}"}


class PwaEndpoints:
    """Builds responses for the service worker, offline and manifest routes."""

    def __init__(
        self,
        config: PwaConfig,
        resources: "ResourceStore",
        custom_templates: "FileTemplateProvider",
        manifests: "FileManifestProvider",
    ) -> None:
        """Initialize the dispatcher.

        Args:
            config: PWA configuration, shared read-only across requests.
            resources: Store with built-in strategy templates and the offline page.
            custom_templates: Provider for the custom strategy template.
            manifests: Provider for the web app manifest document.
        """
        self.config = config
        self._resources = resources
        self._custom_templates = custom_templates
        self._manifests = manifests
        self._routes: dict[str, Callable[[], PwaResponse]] = {
            config.service_worker_path: self.service_worker,
            config.offline_path: self.offline_page,
            config.manifest_path: self.manifest,
        }

    def match(self, path: str) -> Callable[[], PwaResponse] | None:
        """Return the handler for path, or None if it is not a PWA route.

        The query string is ignored: "/serviceworker?v=2" matches the
        service worker route.
        """
        return self._routes.get(path.split("?", 1)[0])

    def handle(self, path: str) -> PwaResponse | None:
        """Dispatch path to its handler; None if it is not a PWA route."""
        handler = self.match(path)
        if handler is None:
            return None
        return handler()

    def service_worker(self) -> PwaResponse:
        """Handle the service worker route.

        Raises:
            TemplateNotFoundError: If the custom template is missing.
            ResourceNotFoundError: If a built-in template is missing.
        """
        template = resolve_template(select_strategy(self.config), self._resources, self._custom_templates)
        script = substitute(template.text, build_context(self.config))
        return PwaResponse(
            status=200,
            body=script.encode("utf-8"),
            content_type=SERVICE_WORKER_CONTENT_TYPE,
            headers=_cache_control(self.config.service_worker_max_age),
        )

    def offline_page(self) -> PwaResponse:
        """Handle the offline route - the static page, verbatim."""
        html = self._resources.read(OFFLINE_PAGE_KEY)
        return PwaResponse(status=200, body=html.encode("utf-8"), content_type=OFFLINE_CONTENT_TYPE)

    def manifest(self) -> PwaResponse:
        """Handle the manifest route.

        A host without a manifest document is misconfigured: answer 404 with
        an empty body rather than anything that could be cached as a manifest.
        """
        web_manifest = self._manifests.get_manifest()
        if web_manifest is None:
            logger.warning("Manifest requested at %s but none is available", self.config.manifest_path)
            return PwaResponse(status=404)

        return PwaResponse(
            status=200,
            body=web_manifest.raw_json.encode("utf-8"),
            content_type=MANIFEST_CONTENT_TYPE,
            headers=_cache_control(self.config.manifest_max_age),
        )
