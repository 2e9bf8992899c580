"""Verification of a deployed PWA host's endpoints."""

import logging
from dataclasses import dataclass

import requests

from .config import PwaConfig
from .endpoints import MANIFEST_CONTENT_TYPE, OFFLINE_CONTENT_TYPE, SERVICE_WORKER_CONTENT_TYPE

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


@dataclass(frozen=True)
class EndpointCheck:
    """Result of checking a single PWA endpoint.

    Attributes:
        path: Route that was requested.
        ok: Whether the status and content type were as expected.
        status_code: HTTP status code, or None if the request failed.
        content_type: Response Content-Type, or None if absent.
        error: Description of the failure, None on success.
    """

    path: str
    ok: bool
    status_code: int | None = None
    content_type: str | None = None
    error: str | None = None


def _media_type(content_type: str | None) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def _check_endpoint(url: str, path: str, expected_type: str, timeout: int) -> EndpointCheck:
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.error("Request to %s failed: %s", url, e)
        return EndpointCheck(path=path, ok=False, error=str(e))

    content_type = response.headers.get("Content-Type")

    if response.status_code != 200:
        return EndpointCheck(
            path=path,
            ok=False,
            status_code=response.status_code,
            content_type=content_type,
            error=f"Unexpected status {response.status_code}",
        )

    if _media_type(content_type) != _media_type(expected_type):
        return EndpointCheck(
            path=path,
            ok=False,
            status_code=response.status_code,
            content_type=content_type,
            error=f"Unexpected content type '{content_type}' (expected '{expected_type}')",
        )

    return EndpointCheck(path=path, ok=True, status_code=response.status_code, content_type=content_type)


def check_endpoints(base_url: str, config: PwaConfig, timeout: int = DEFAULT_TIMEOUT) -> dict[str, EndpointCheck]:
    """Fetch the PWA endpoints of a running host and verify their responses.

    Args:
        base_url: Origin of the host, e.g. "https://example.com".
        config: PWA configuration the host runs with (for the route paths).
        timeout: Request timeout in seconds.

    Returns:
        Mapping of endpoint name ("service_worker", "offline", "manifest")
        to its check result.
    """
    origin = base_url.rstrip("/")
    targets = {
        "service_worker": (config.service_worker_path, SERVICE_WORKER_CONTENT_TYPE),
        "offline": (config.offline_path, OFFLINE_CONTENT_TYPE),
        "manifest": (config.manifest_path, MANIFEST_CONTENT_TYPE),
    }

    results: dict[str, EndpointCheck] = {}
    for name, (path, expected_type) in targets.items():
        results[name] = _check_endpoint(origin + path, path, expected_type, timeout)
        if results[name].ok:
            logger.info("Endpoint %s OK (%s)", path, results[name].content_type)
        else:
            logger.warning("Endpoint %s failed: %s", path, results[name].error)

    return results
