"""Static resource store and file-backed collaborators.

Three collaborators feed the PWA endpoints:
- ResourceStore: embedded assets (strategy templates, offline page) by logical key
- FileTemplateProvider: custom service worker templates from the web root
- FileManifestProvider: the web app manifest document from the web root

Every read goes back to its source. Nothing is cached here, so concurrent
requests never share a buffer.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from ._assets import BUILTIN_RESOURCES
from .models import WebManifest
from .security import resolve_within_root

logger = logging.getLogger(__name__)


class ResourceNotFoundError(Exception):
    """Raised when an embedded resource is missing (broken packaging)."""

    pass


class TemplateNotFoundError(Exception):
    """Raised when a custom service worker template cannot be located."""

    pass


class ManifestError(Exception):
    """Raised when the manifest document exists but cannot be used."""

    pass


class ResourceStore:
    """Embedded static text looked up by a stable logical key."""

    def __init__(self, resources: Mapping[str, str] = BUILTIN_RESOURCES) -> None:
        self._resources = resources

    def read(self, key: str) -> str:
        """Return the resource text for key.

        Raises:
            ResourceNotFoundError: If no resource is registered under key.
        """
        try:
            return self._resources[key]
        except KeyError:
            raise ResourceNotFoundError(f"Embedded resource not found: {key}")

    def __contains__(self, key: str) -> bool:
        return key in self._resources


class FileTemplateProvider:
    """Reads custom service worker templates from the web root."""

    def __init__(self, root: str | Path | None) -> None:
        self._root = Path(root) if root is not None else None

    def get_template(self, file_name: str) -> str:
        """Return the raw text of a custom template.

        Raises:
            TemplateNotFoundError: If the template cannot be located.
        """
        if self._root is None:
            raise TemplateNotFoundError(f"No web root configured to load custom template '{file_name}'")

        path = resolve_within_root(self._root, file_name)
        if path is None or not path.is_file():
            raise TemplateNotFoundError(f"Custom service worker template not found: {file_name}")

        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateNotFoundError(f"Failed to read custom template '{file_name}': {e}")


class FileManifestProvider:
    """Reads the web app manifest document from the web root."""

    def __init__(self, root: str | Path | None, file_name: str = "manifest.json") -> None:
        self._root = Path(root) if root is not None else None
        self._file_name = file_name

    def get_manifest(self) -> WebManifest | None:
        """Return the manifest document, or None when none is available.

        Raises:
            ManifestError: If the file exists but is not a JSON object.
        """
        if self._root is None:
            return None

        path = resolve_within_root(self._root, self._file_name)
        if path is None or not path.is_file():
            logger.debug("No manifest at %s", self._file_name)
            return None

        try:
            raw_json = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestError(f"Failed to read manifest '{self._file_name}': {e}")

        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Manifest '{self._file_name}' is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise ManifestError(f"Manifest '{self._file_name}' must be a JSON object")

        return WebManifest(raw_json=raw_json, data=data)
