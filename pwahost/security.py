"""Security utilities for pwahost."""

import logging
import secrets
import ssl
from pathlib import Path
from typing import Any
from urllib.parse import unquote

logger = logging.getLogger(__name__)

# Bytes of randomness in each CSP nonce (22 URL-safe characters)
CSP_NONCE_BYTES = 16


def is_secure_request(connection: Any, headers: Any, trust_forwarded_proto: bool = False) -> bool:
    """Check whether a request arrived over HTTPS.

    A request is secure when the server socket itself is TLS-wrapped, or when
    the host sits behind a trusted reverse proxy that terminated TLS and says
    so in X-Forwarded-Proto. The header is ignored unless trusted, since any
    client can send it.

    Args:
        connection: The accepted client socket.
        headers: Request headers (anything with a .get method).
        trust_forwarded_proto: Whether to honour X-Forwarded-Proto.

    Returns:
        True if the transport is secure.
    """
    if isinstance(connection, ssl.SSLSocket):
        return True

    if trust_forwarded_proto:
        forwarded = headers.get("X-Forwarded-Proto", "") or ""
        # Proxy chains append values: "https, http" -> first hop wins
        first_hop = forwarded.split(",")[0].strip().lower()
        return first_hop == "https"

    return False


def generate_csp_nonce() -> str:
    """Generate a fresh nonce for a single response."""
    return secrets.token_urlsafe(CSP_NONCE_BYTES)


def build_csp_header(nonce: str) -> str:
    """Build a Content-Security-Policy value allowing scripts carrying nonce."""
    return f"script-src 'self' 'nonce-{nonce}'; object-src 'none'; base-uri 'self'"


def resolve_within_root(root: Path, request_path: str) -> Path | None:
    """Resolve a URL path to a file path inside root.

    Args:
        root: Directory files may be served from.
        request_path: URL path (query string already removed).

    Returns:
        The resolved path, or None if it would escape root.
    """
    relative = unquote(request_path).lstrip("/")
    if "\x00" in relative:
        return None

    base = root.resolve()
    candidate = (base / relative).resolve()

    if candidate != base and base not in candidate.parents:
        logger.warning("Blocked path outside web root: %s", request_path)
        return None

    return candidate
