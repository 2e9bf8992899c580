"""Tests for the HTTP host."""

import re
import socket
import time
import urllib.error
import urllib.request
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pwahost._assets import OFFLINE_HTML
from pwahost.config import Config, PwaConfig, ServerConfig
from pwahost.endpoints import PwaEndpoints
from pwahost.resources import ResourceStore
from pwahost.server import REQUEST_TIMEOUT, PwaRequestHandler, PwaServer, ServerError

MANIFEST_TEXT = '{"name": "Example", "short_name": "Ex", "theme_color": "#336699"}'

INDEX_HTML = """<!DOCTYPE html>
<html>
<head><title>Home</title></head>
<body>
<h1>Home</h1>
<script nonce="__CSP_NONCE__">console.log('page');</script>
</body>
</html>
"""


def get_free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """Create a small site."""
    (tmp_path / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (tmp_path / "fragment.html").write_text("<div>partial</div>", encoding="utf-8")
    (tmp_path / "manifest.json").write_text(MANIFEST_TEXT, encoding="utf-8")
    (tmp_path / "app.js").write_text("console.log('app');", encoding="utf-8")
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "index.html").write_text("<html><body>Docs</body></html>", encoding="utf-8")
    return tmp_path


def make_config(web_root: Path | None, environment: str = "production", **pwa) -> Config:
    """Create a config bound to a free port."""
    return Config(
        pwa=PwaConfig(**pwa),
        server=ServerConfig(port=get_free_port(), web_root=str(web_root) if web_root else None),
        environment=environment,
    )


def fetch(server: PwaServer, path: str, headers: dict | None = None) -> tuple[int, dict, bytes]:
    """Make a GET request and return (status, headers, body)."""
    url = f"http://localhost:{server.config.server.port}{path}"
    request = urllib.request.Request(url, headers=headers or {})
    try:
        with urllib.request.urlopen(request, timeout=5) as response:
            return response.status, dict(response.headers), response.read()
    except urllib.error.HTTPError as e:
        return e.code, dict(e.headers), e.read()


@pytest.fixture
def start_server():
    """Start servers on demand and stop them after the test."""
    servers = []

    def _start(config: Config, **kwargs) -> PwaServer:
        server = PwaServer(config, **kwargs)
        server.start()
        time.sleep(0.1)
        servers.append(server)
        return server

    yield _start

    for server in servers:
        server.stop()


class TestPwaServer:
    """Tests for PwaServer lifecycle."""

    def test_starts_and_stops(self, web_root: Path) -> None:
        """Server starts and stops without errors."""
        server = PwaServer(make_config(web_root))

        server.start()
        assert server.is_running

        server.stop()
        assert not server.is_running

    def test_start_twice_is_safe(self, web_root: Path) -> None:
        """Calling start() twice doesn't cause errors."""
        server = PwaServer(make_config(web_root))
        try:
            server.start()
            server.start()
            assert server.is_running
        finally:
            server.stop()

    def test_stop_without_start_is_safe(self, web_root: Path) -> None:
        """Calling stop() without start() doesn't cause errors."""
        PwaServer(make_config(web_root)).stop()

    def test_raises_on_port_conflict(self, web_root: Path) -> None:
        """Raises ServerError when port is already in use."""
        config = make_config(web_root)
        server1 = PwaServer(config)
        server2 = PwaServer(config)

        try:
            server1.start()
            with pytest.raises(ServerError, match="already in use"):
                server2.start()
        finally:
            server1.stop()
            server2.stop()

    def test_raises_on_missing_certificate(self, tmp_path: Path) -> None:
        """Unreadable TLS material raises ServerError."""
        config = Config(
            server=ServerConfig(
                port=get_free_port(),
                certfile=str(tmp_path / "missing.pem"),
                keyfile=str(tmp_path / "missing.key"),
            )
        )
        server = PwaServer(config)

        with pytest.raises(ServerError):
            server.start()
        assert not server.is_running

    def test_idle_connection_does_not_block_other_requests(self, start_server, web_root: Path) -> None:
        """A client that connects and sends nothing does not stall the host."""
        server = start_server(make_config(web_root))

        idle = socket.create_connection(("localhost", server.config.server.port))
        try:
            status, _, _ = fetch(server, "/serviceworker")
        finally:
            idle.close()

        assert status == 200

    def test_slow_request_does_not_block_other_requests(self, start_server, web_root: Path) -> None:
        """A half-sent request line does not stall the host."""
        server = start_server(make_config(web_root))

        slow = socket.create_connection(("localhost", server.config.server.port))
        try:
            slow.sendall(b"GET /offline")
            status, _, _ = fetch(server, "/offline.html")
        finally:
            slow.close()

        assert status == 200

    def test_handler_has_request_timeout(self) -> None:
        """Connections are dropped after the idle timeout."""
        assert PwaRequestHandler.timeout == REQUEST_TIMEOUT
        assert REQUEST_TIMEOUT > 0

    def test_handler_class_attributes_unset_by_default(self) -> None:
        """Unbound handler carries no shared collaborators."""
        assert PwaRequestHandler.config is None
        assert PwaRequestHandler.endpoints is None
        assert PwaRequestHandler.processors is None


class TestPwaRoutes:
    """Integration tests for the PWA endpoints."""

    def test_service_worker(self, start_server, web_root: Path) -> None:
        """Service worker is served with script type and cache-control."""
        server = start_server(make_config(web_root, service_worker_max_age=120, routes_to_precache="/, /docs/"))

        status, headers, body = fetch(server, "/serviceworker")

        assert status == 200
        assert headers["Content-Type"] == "application/javascript; charset=utf-8"
        assert headers["Cache-Control"] == "max-age=120"
        text = body.decode("utf-8")
        assert "'v1.0::cache_first_safe'" in text
        assert "['/','/docs/']" in text
        assert "{version}" not in text

    def test_service_worker_is_byte_identical(self, start_server, web_root: Path) -> None:
        """Repeated requests return the same script."""
        server = start_server(make_config(web_root))

        _, _, first = fetch(server, "/serviceworker")
        _, _, second = fetch(server, "/serviceworker")

        assert first == second

    def test_offline_page(self, start_server, web_root: Path) -> None:
        """Offline page is served verbatim as HTML."""
        server = start_server(make_config(web_root))

        status, headers, body = fetch(server, "/offline.html")

        assert status == 200
        assert headers["Content-Type"] == "text/html"
        assert "Cache-Control" not in headers
        assert body == OFFLINE_HTML.encode("utf-8")

    def test_manifest(self, start_server, web_root: Path) -> None:
        """Manifest is served as the raw document."""
        server = start_server(make_config(web_root, manifest_max_age=300))

        status, headers, body = fetch(server, "/manifest.webmanifest")

        assert status == 200
        assert headers["Content-Type"] == "application/manifest+json; charset=utf-8"
        assert headers["Cache-Control"] == "max-age=300"
        assert body == MANIFEST_TEXT.encode("utf-8")

    def test_manifest_missing_returns_empty_404(self, start_server, tmp_path: Path) -> None:
        """No manifest document gives 404 with an empty body."""
        server = start_server(make_config(tmp_path))

        status, headers, body = fetch(server, "/manifest.webmanifest")

        assert status == 404
        assert body == b""
        assert "Content-Type" not in headers

    def test_routes_under_base_route(self, start_server, web_root: Path) -> None:
        """PWA routes move with the base route."""
        server = start_server(make_config(web_root, base_route="/app"))

        assert fetch(server, "/app/serviceworker")[0] == 200
        assert fetch(server, "/app/offline.html")[0] == 200
        assert fetch(server, "/app/manifest.webmanifest")[0] == 200
        assert fetch(server, "/serviceworker")[0] == 404

    def test_missing_custom_template_is_server_error(self, start_server, tmp_path: Path) -> None:
        """A missing custom template surfaces as a 500, not a 404."""
        server = start_server(make_config(tmp_path, strategy="custom"))

        status, _, body = fetch(server, "/serviceworker")

        assert status == 500
        assert body == b"Internal server error"

    def test_missing_builtin_template_is_server_error(self, start_server, web_root: Path) -> None:
        """Broken packaging surfaces as a 500."""
        config = make_config(web_root)
        endpoints = PwaEndpoints(config.pwa, ResourceStore({}), MagicMock(), MagicMock())
        server = start_server(config, endpoints=endpoints)

        assert fetch(server, "/serviceworker")[0] == 500

    def test_head_request(self, start_server, web_root: Path) -> None:
        """HEAD returns headers without a body."""
        server = start_server(make_config(web_root))
        url = f"http://localhost:{server.config.server.port}/serviceworker"
        request = urllib.request.Request(url, method="HEAD")

        with urllib.request.urlopen(request, timeout=5) as response:
            assert response.status == 200
            assert response.headers["Content-Type"] == "application/javascript; charset=utf-8"
            assert response.read() == b""


class TestPageInjection:
    """Integration tests for HTML pages served from the web root."""

    def test_no_registration_over_http_in_production(self, start_server, web_root: Path) -> None:
        """Plain HTTP in production does not register the service worker."""
        server = start_server(make_config(web_root))

        status, headers, body = fetch(server, "/")

        assert status == 200
        assert headers["Content-Type"] == "text/html; charset=utf-8"
        assert b"navigator.serviceWorker.register" not in body

    def test_registration_with_allow_http(self, start_server, web_root: Path) -> None:
        """allow_http injects the registration script before </body>."""
        server = start_server(make_config(web_root, allow_http=True))

        _, _, body = fetch(server, "/")
        text = body.decode("utf-8")

        assert "navigator.serviceWorker.register('/serviceworker', { scope: '/' })</script></body>" in text

    def test_registration_in_development(self, start_server, web_root: Path) -> None:
        """Development environment injects over plain HTTP."""
        server = start_server(make_config(web_root, environment="development"))

        _, _, body = fetch(server, "/")

        assert b"navigator.serviceWorker.register" in body

    def test_registration_behind_trusted_proxy(self, start_server, web_root: Path) -> None:
        """X-Forwarded-Proto: https from a trusted proxy counts as secure."""
        config = Config(
            server=ServerConfig(port=get_free_port(), web_root=str(web_root), trust_forwarded_proto=True),
        )
        server = start_server(config)

        _, _, body = fetch(server, "/", headers={"X-Forwarded-Proto": "https"})

        assert b"navigator.serviceWorker.register" in body

    def test_registration_disabled(self, start_server, web_root: Path) -> None:
        """register_service_worker off wins over every other setting."""
        server = start_server(
            make_config(web_root, environment="development", allow_http=True, register_service_worker=False)
        )

        _, _, body = fetch(server, "/")

        assert b"navigator.serviceWorker.register" not in body

    def test_fragment_is_not_modified(self, start_server, web_root: Path) -> None:
        """HTML without a closing body tag is served unchanged."""
        server = start_server(make_config(web_root, allow_http=True))

        _, _, body = fetch(server, "/fragment.html")

        assert body == b"<div>partial</div>"

    def test_directory_serves_index(self, start_server, web_root: Path) -> None:
        """Directories serve their index.html."""
        server = start_server(make_config(web_root, allow_http=True))

        status, _, body = fetch(server, "/docs/")

        assert status == 200
        assert b"Docs" in body
        assert b"navigator.serviceWorker.register" in body

    def test_manifest_link_in_head(self, start_server, web_root: Path) -> None:
        """Pages link the manifest and its theme color."""
        server = start_server(make_config(web_root))

        _, _, body = fetch(server, "/")
        text = body.decode("utf-8")

        assert '<link rel="manifest" href="/manifest.webmanifest" />' in text
        assert '<meta name="theme-color" content="#336699" />' in text
        assert text.index("rel=\"manifest\"") < text.index("</head>")

    def test_csp_nonce(self, start_server, web_root: Path) -> None:
        """CSP header, page scripts and injected script share one nonce."""
        server = start_server(make_config(web_root, allow_http=True, enable_csp_nonce=True))

        _, headers, body = fetch(server, "/")
        text = body.decode("utf-8")

        match = re.search(r"'nonce-([^']+)'", headers["Content-Security-Policy"])
        assert match is not None
        nonce = match.group(1)
        assert text.count(f'nonce="{nonce}"') == 2
        assert "__CSP_NONCE__" not in text

    def test_csp_nonce_changes_per_response(self, start_server, web_root: Path) -> None:
        """Each page response gets its own nonce."""
        server = start_server(make_config(web_root, allow_http=True, enable_csp_nonce=True))

        first = fetch(server, "/")[1]["Content-Security-Policy"]
        second = fetch(server, "/")[1]["Content-Security-Policy"]

        assert first != second

    def test_no_csp_header_without_nonce(self, start_server, web_root: Path) -> None:
        """CSP header is only sent when nonces are enabled."""
        server = start_server(make_config(web_root, allow_http=True))

        _, headers, _ = fetch(server, "/")

        assert "Content-Security-Policy" not in headers

    def test_non_html_served_verbatim(self, start_server, web_root: Path) -> None:
        """Other files are served unchanged with a guessed type."""
        server = start_server(make_config(web_root, allow_http=True))

        status, headers, body = fetch(server, "/app.js")

        assert status == 200
        assert "javascript" in headers["Content-Type"]
        assert body == b"console.log('app');"

    def test_unknown_path_returns_404(self, start_server, web_root: Path) -> None:
        """Unknown files return 404."""
        server = start_server(make_config(web_root))
        assert fetch(server, "/missing.html")[0] == 404

    def test_traversal_returns_404(self, start_server, web_root: Path) -> None:
        """Paths escaping the web root return 404."""
        server = start_server(make_config(web_root / "docs"))
        assert fetch(server, "/%2e%2e/manifest.json")[0] == 404

    def test_without_web_root_only_pwa_routes(self, start_server) -> None:
        """No web root: PWA routes work, everything else is 404."""
        server = start_server(make_config(None))

        assert fetch(server, "/serviceworker")[0] == 200
        assert fetch(server, "/offline.html")[0] == 200
        assert fetch(server, "/manifest.webmanifest")[0] == 404
        assert fetch(server, "/")[0] == 404

    def test_non_utf8_page_is_served(self, start_server, tmp_path: Path) -> None:
        """Pages in other encodings keep their bytes and still get the script."""
        (tmp_path / "legacy.html").write_bytes("<html><body>café</body></html>".encode("latin-1"))
        server = start_server(make_config(tmp_path, allow_http=True))

        status, _, body = fetch(server, "/legacy.html")

        assert status == 200
        assert body.startswith(b"<html><body>caf\xe9")
        assert body.endswith(b"</script></body></html>")
        assert b"navigator.serviceWorker.register" in body

    def test_invalid_manifest_does_not_break_pages(self, start_server, web_root: Path) -> None:
        """A broken manifest only fails the manifest route."""
        (web_root / "manifest.json").write_text("{not json", encoding="utf-8")
        server = start_server(make_config(web_root, allow_http=True))

        status, _, body = fetch(server, "/")

        assert status == 200
        assert b'rel="manifest"' not in body
        assert b"navigator.serviceWorker.register" in body
        assert fetch(server, "/manifest.webmanifest")[0] == 500
