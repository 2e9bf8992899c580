"""HTTP host serving the PWA endpoints and the site's pages."""

import logging
import mimetypes
import ssl
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Optional

from .config import Config
from .endpoints import PwaEndpoints
from .injection import (
    ManifestLinkInjector,
    NoncePlaceholderProcessor,
    PageContext,
    RegistrationInjector,
    render_page,
)
from .models import PwaResponse
from .resources import FileManifestProvider, FileTemplateProvider, ResourceStore
from .security import build_csp_header, generate_csp_nonce, is_secure_request, resolve_within_root

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"
# Seconds a connection may sit idle (including the TLS handshake) before it is dropped
REQUEST_TIMEOUT = 10
HTML_SUFFIXES = (".html", ".htm")


class ServerError(Exception):
    """Raised when the HTTP host fails to start."""

    pass


def build_endpoints(config: Config) -> PwaEndpoints:
    """Wire the PWA endpoints to the default file-backed collaborators."""
    web_root = config.server.web_root
    return PwaEndpoints(
        config.pwa,
        ResourceStore(),
        FileTemplateProvider(web_root),
        FileManifestProvider(web_root, config.pwa.manifest_file),
    )


def build_processors(config: Config) -> list:
    """Build the page processors applied to served HTML."""
    manifests = FileManifestProvider(config.server.web_root, config.pwa.manifest_file)
    return [
        RegistrationInjector(config.pwa),
        ManifestLinkInjector(config.pwa, manifests),
        NoncePlaceholderProcessor(),
    ]


class PwaRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for PWA endpoints and static pages."""

    # Class-level references set by factory
    config: Optional[Config] = None
    endpoints: Optional[PwaEndpoints] = None
    processors: Optional[list] = None

    timeout = REQUEST_TIMEOUT

    def log_message(self, format: str, *args: Any) -> None:
        """Override to use Python logging instead of stderr."""
        logger.debug("HTTP %s - %s", self.address_string(), format % args)

    def _send(self, response: PwaResponse, head_only: bool = False) -> None:
        """Write a complete response."""
        self.send_response(response.status)
        if response.content_type is not None:
            self.send_header("Content-Type", response.content_type)
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(response.body)))
        self.send_header("Connection", "close")
        self.end_headers()
        if not head_only:
            self.wfile.write(response.body)

    def _send_error_text(self, code: int, message: str, head_only: bool = False) -> None:
        """Send a plain text error response."""
        self._send(
            PwaResponse(status=code, body=message.encode("utf-8"), content_type="text/plain; charset=utf-8"),
            head_only,
        )

    def do_GET(self) -> None:
        """Handle GET requests."""
        self._dispatch(head_only=False)

    def do_HEAD(self) -> None:
        """Handle HEAD requests."""
        self._dispatch(head_only=True)

    def _dispatch(self, head_only: bool) -> None:
        try:
            response = self.endpoints.handle(self.path) if self.endpoints is not None else None
            if response is None:
                response = self._handle_static()
            self._send(response, head_only)
        except Exception as e:
            logger.exception("Error handling request %s: %s", self.path, e)
            self._send_error_text(500, "Internal server error", head_only)

    def _page_context(self) -> PageContext:
        nonce = generate_csp_nonce() if self.config.pwa.enable_csp_nonce else None
        return PageContext(
            is_secure=is_secure_request(self.connection, self.headers, self.config.server.trust_forwarded_proto),
            is_development=self.config.is_development,
            nonce=nonce,
        )

    def _handle_static(self) -> PwaResponse:
        """Serve a file from the web root; HTML goes through the page processors."""
        not_found = PwaResponse(status=404, body=b"Not found", content_type="text/plain; charset=utf-8")

        web_root = self.config.server.web_root
        if web_root is None:
            return not_found

        path = resolve_within_root(Path(web_root), self.path.split("?", 1)[0])
        if path is None:
            return not_found
        if path.is_dir():
            path = path / INDEX_FILE
        if not path.is_file():
            return not_found

        if path.suffix.lower() in HTML_SUFFIXES:
            page = self._page_context()
            # Bytes outside UTF-8 pass through the processors untouched
            source = path.read_bytes().decode("utf-8", errors="surrogateescape")
            document = render_page(source, self.processors or [], page)
            headers = {"Cache-Control": "no-cache"}
            if page.nonce is not None:
                headers["Content-Security-Policy"] = build_csp_header(page.nonce)
            return PwaResponse(
                status=200,
                body=document.encode("utf-8", errors="surrogateescape"),
                content_type="text/html; charset=utf-8",
                headers=headers,
            )

        content_type, _ = mimetypes.guess_type(path.name)
        return PwaResponse(
            status=200,
            body=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )


def _create_handler_class(config: Config, endpoints: PwaEndpoints, processors: list) -> type:
    """Create a handler class with the configuration and collaborators bound."""

    class BoundPwaRequestHandler(PwaRequestHandler):
        pass

    BoundPwaRequestHandler.config = config
    BoundPwaRequestHandler.endpoints = endpoints
    BoundPwaRequestHandler.processors = processors
    return BoundPwaRequestHandler


class PwaServer:
    """Threaded HTTP host for the PWA endpoints and site pages."""

    def __init__(
        self,
        config: Config,
        endpoints: Optional[PwaEndpoints] = None,
        processors: Optional[list] = None,
    ) -> None:
        """Initialize the server.

        Args:
            config: Full configuration.
            endpoints: PWA endpoints; defaults to file-backed collaborators.
            processors: Page processors; defaults to build_processors(config).
        """
        self.config = config
        self.endpoints = endpoints if endpoints is not None else build_endpoints(config)
        self.processors = processors if processors is not None else build_processors(config)
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._shutdown_event = threading.Event()

    def start(self) -> None:
        """Start the server in a background thread.

        Raises:
            ServerError: If the server fails to start.
        """
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Server is already running")
            return

        port = self.config.server.port
        try:
            handler_class = _create_handler_class(self.config, self.endpoints, self.processors)
            self._server = ThreadingHTTPServer((self.config.server.host, port), handler_class)
            self._server.daemon_threads = True
            self._server.timeout = 1.0  # Allow periodic shutdown checks

            if self.config.server.tls_enabled:
                context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
                context.load_cert_chain(self.config.server.certfile, self.config.server.keyfile)
                self._server.socket = context.wrap_socket(
                    self._server.socket,
                    server_side=True,
                    do_handshake_on_connect=False,
                )

            self._shutdown_event.clear()
            self._thread = threading.Thread(
                target=self._serve_forever,
                name="pwa-server",
                daemon=True,
            )
            self._thread.start()

            scheme = "https" if self.config.server.tls_enabled else "http"
            logger.info("PWA host started on port %d (%s)", port, scheme)

        except OSError as e:
            if self._server is not None:
                self._server.server_close()
                self._server = None
            # Provide specific guidance based on error type
            if e.errno == 98 or e.errno == 48:  # EADDRINUSE (Linux=98, macOS=48)
                raise ServerError(
                    f"Port {port} is already in use. "
                    f"Another process may be using this port, or pwahost is already running."
                )
            elif e.errno == 13:  # EACCES - Permission denied
                raise ServerError(
                    f"Permission denied for port {port}. "
                    f"Ports below 1024 require root privileges. "
                    f"Use a port >= 1024 or run with elevated permissions."
                )
            else:
                raise ServerError(f"Failed to start server on port {port}: {e}")

    def _serve_forever(self) -> None:
        """Server loop that checks for shutdown."""
        while not self._shutdown_event.is_set():
            if self._server:
                try:
                    self._server.handle_request()
                except (OSError, ValueError):
                    # Socket closed by stop()
                    break

    def stop(self) -> None:
        """Stop the server gracefully."""
        if self._thread is None:
            return

        logger.info("Stopping PWA host...")
        self._shutdown_event.set()

        if self._server:
            self._server.server_close()

        if self._thread.is_alive():
            self._thread.join(timeout=5.0)

        self._server = None
        self._thread = None
        logger.info("PWA host stopped")

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._thread is not None and self._thread.is_alive()
