"""Configuration loader with type-safe dataclasses."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


# Built-in service worker strategies, each shipped as an embedded "<name>.js" template
BUILTIN_STRATEGIES = (
    "cache_first_safe",
    "cache_fingerprinted",
    "cache_first",
    "network_first",
    "minimal",
)

# Sentinel strategy: the template is read from the web root instead
CUSTOM_STRATEGY = "custom"

# 30 days, for both the service worker and the manifest
DEFAULT_MAX_AGE = 60 * 60 * 24 * 30


@dataclass(frozen=True)
class PwaConfig:
    """Configuration for the PWA endpoints and page injection.

    Route suffixes are always served under base_route:
    - base_route: Prefix for every PWA route, e.g. "/app" (empty for the site root).
    - service_worker_route / offline_route / manifest_route: Suffixes starting with "/".

    Service worker template:
    - strategy: One of BUILTIN_STRATEGIES, or "custom" to use custom_strategy_file.
    - cache_id: Cache identifier; combined with the strategy to version browser caches.
    - routes_to_precache / routes_to_ignore: Comma-separated route lists.

    Page injection:
    - register_service_worker: Append the registration script to served HTML.
    - allow_http: Register even when the request is not HTTPS.
    - enable_csp_nonce: Add a nonce attribute to the injected script element.
    - register_webmanifest: Add the manifest link to the page head.
    """

    base_route: str = ""
    service_worker_route: str = "/serviceworker"
    offline_route: str = "/offline.html"
    manifest_route: str = "/manifest.webmanifest"
    strategy: str = "cache_first_safe"
    custom_strategy_file: str = "customserviceworker.js"
    service_worker_max_age: int = DEFAULT_MAX_AGE
    manifest_max_age: int = DEFAULT_MAX_AGE
    cache_id: str = "v1.0"
    routes_to_precache: str = ""
    routes_to_ignore: str = ""
    allow_http: bool = False
    enable_csp_nonce: bool = False
    register_service_worker: bool = True
    register_webmanifest: bool = True
    manifest_file: str = "manifest.json"

    def __post_init__(self) -> None:
        if self.base_route:
            if not self.base_route.startswith("/"):
                raise ConfigError(f"Base route must start with '/' (got '{self.base_route}')")
            if self.base_route.endswith("/"):
                raise ConfigError(f"Base route must not end with '/' (got '{self.base_route}')")
        for name in ("service_worker_route", "offline_route", "manifest_route"):
            route = getattr(self, name)
            if not route.startswith("/"):
                raise ConfigError(f"{name} must start with '/' (got '{route}')")
        routes = (self.service_worker_route, self.offline_route, self.manifest_route)
        if len(set(routes)) != len(routes):
            raise ConfigError(f"PWA routes must be distinct (got {routes})")
        if self.strategy != CUSTOM_STRATEGY and self.strategy not in BUILTIN_STRATEGIES:
            raise ConfigError(
                f"Invalid strategy '{self.strategy}'. Must be one of: {BUILTIN_STRATEGIES + (CUSTOM_STRATEGY,)}"
            )
        if self.strategy == CUSTOM_STRATEGY and not self.custom_strategy_file:
            raise ConfigError("custom_strategy_file is required when strategy is 'custom'")
        if self.service_worker_max_age < 0:
            raise ConfigError(f"Service worker max age must be non-negative (got {self.service_worker_max_age})")
        if self.manifest_max_age < 0:
            raise ConfigError(f"Manifest max age must be non-negative (got {self.manifest_max_age})")
        if not self.cache_id:
            raise ConfigError("Cache id cannot be empty")

    @property
    def service_worker_path(self) -> str:
        """Return the full path the service worker is served at."""
        return self.base_route + self.service_worker_route

    @property
    def offline_path(self) -> str:
        """Return the full path of the offline fallback page."""
        return self.base_route + self.offline_route

    @property
    def manifest_path(self) -> str:
        """Return the full path of the web app manifest."""
        return self.base_route + self.manifest_route

    @property
    def scope(self) -> str:
        """Return the service worker registration scope."""
        return self.base_route + "/"


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for the HTTP host."""

    host: str = ""
    port: int = 8080
    web_root: str | None = None  # directory with pages, manifest and custom templates
    certfile: str | None = None
    keyfile: str | None = None
    trust_forwarded_proto: bool = False  # honour X-Forwarded-Proto from a reverse proxy

    def __post_init__(self) -> None:
        if self.port < 1 or self.port > 65535:
            raise ConfigError(f"Server port must be between 1 and 65535, got {self.port}")
        if (self.certfile is None) != (self.keyfile is None):
            raise ConfigError("Both certfile and keyfile are required to enable HTTPS")

    @property
    def tls_enabled(self) -> bool:
        return self.certfile is not None


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    pwa: PwaConfig = field(default_factory=PwaConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    environment: str = "production"

    def __post_init__(self) -> None:
        if not self.environment:
            raise ConfigError("Environment cannot be empty")

    @property
    def is_development(self) -> bool:
        """Return True when running in the development environment."""
        return self.environment.lower() == "development"


def _parse_bool(value: object, name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"'{name}' must be true or false")


def _parse_str(value: object, name: str, optional: bool = False) -> str:
    """Return a scalar YAML value as text.

    Numbers are accepted ("cache_id: 2" gives "2"); lists, mappings and
    booleans are not. A null value is only allowed for optional fields, which
    then become "".
    """
    if value is None:
        if optional:
            return ""
        raise ConfigError(f"'{name}' must not be empty")
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigError(f"'{name}' must be a string (got {type(value).__name__})")
    return str(value)


def _parse_pwa_config(data: dict | None) -> PwaConfig:
    """Parse pwa configuration section."""
    if data is None:
        return PwaConfig()
    if not isinstance(data, dict):
        raise ConfigError("'pwa' section must be a dictionary")

    defaults = PwaConfig()
    try:
        return PwaConfig(
            base_route=_parse_str(data.get("base_route", defaults.base_route), "pwa.base_route", optional=True),
            service_worker_route=_parse_str(
                data.get("service_worker_route", defaults.service_worker_route), "pwa.service_worker_route"
            ),
            offline_route=_parse_str(data.get("offline_route", defaults.offline_route), "pwa.offline_route"),
            manifest_route=_parse_str(data.get("manifest_route", defaults.manifest_route), "pwa.manifest_route"),
            strategy=_parse_str(data.get("strategy", defaults.strategy), "pwa.strategy"),
            custom_strategy_file=_parse_str(
                data.get("custom_strategy_file", defaults.custom_strategy_file), "pwa.custom_strategy_file"
            ),
            service_worker_max_age=int(data.get("service_worker_max_age", defaults.service_worker_max_age)),
            manifest_max_age=int(data.get("manifest_max_age", defaults.manifest_max_age)),
            cache_id=_parse_str(data.get("cache_id", defaults.cache_id), "pwa.cache_id"),
            routes_to_precache=_parse_str(data.get("routes_to_precache"), "pwa.routes_to_precache", optional=True),
            routes_to_ignore=_parse_str(data.get("routes_to_ignore"), "pwa.routes_to_ignore", optional=True),
            allow_http=_parse_bool(data.get("allow_http", defaults.allow_http), "pwa.allow_http"),
            enable_csp_nonce=_parse_bool(
                data.get("enable_csp_nonce", defaults.enable_csp_nonce), "pwa.enable_csp_nonce"
            ),
            register_service_worker=_parse_bool(
                data.get("register_service_worker", defaults.register_service_worker),
                "pwa.register_service_worker",
            ),
            register_webmanifest=_parse_bool(
                data.get("register_webmanifest", defaults.register_webmanifest), "pwa.register_webmanifest"
            ),
            manifest_file=_parse_str(data.get("manifest_file", defaults.manifest_file), "pwa.manifest_file"),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in 'pwa' section: {e}")


def _parse_server_config(data: dict | None) -> ServerConfig:
    """Parse server configuration section."""
    if data is None:
        return ServerConfig()
    if not isinstance(data, dict):
        raise ConfigError("'server' section must be a dictionary")

    web_root = data.get("web_root")
    certfile = data.get("certfile")
    keyfile = data.get("keyfile")

    try:
        port = int(data.get("port", 8080))
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid server port: {data.get('port')}")

    return ServerConfig(
        host=_parse_str(data.get("host", ""), "server.host", optional=True),
        port=port,
        web_root=_parse_str(web_root, "server.web_root") if web_root is not None else None,
        certfile=_parse_str(certfile, "server.certfile") if certfile is not None else None,
        keyfile=_parse_str(keyfile, "server.keyfile") if keyfile is not None else None,
        trust_forwarded_proto=_parse_bool(
            data.get("trust_forwarded_proto", False), "server.trust_forwarded_proto"
        ),
    )


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - PWAHOST_ENVIRONMENT: Override environment
    - PWAHOST_PORT: Override server.port
    - PWAHOST_WEB_ROOT: Override server.web_root
    - PWAHOST_BASE_ROUTE: Override pwa.base_route
    - PWAHOST_STRATEGY: Override pwa.strategy
    - PWAHOST_ALLOW_HTTP: Override pwa.allow_http (true/false)
    """
    if config_data.get("server") is None:
        config_data["server"] = {}
    if config_data.get("pwa") is None:
        config_data["pwa"] = {}

    environment = os.environ.get("PWAHOST_ENVIRONMENT")
    if environment is not None:
        config_data["environment"] = environment

    port = os.environ.get("PWAHOST_PORT")
    if port is not None:
        config_data["server"]["port"] = port

    web_root = os.environ.get("PWAHOST_WEB_ROOT")
    if web_root is not None:
        config_data["server"]["web_root"] = web_root

    base_route = os.environ.get("PWAHOST_BASE_ROUTE")
    if base_route is not None:
        config_data["pwa"]["base_route"] = base_route

    strategy = os.environ.get("PWAHOST_STRATEGY")
    if strategy is not None:
        config_data["pwa"]["strategy"] = strategy

    allow_http = os.environ.get("PWAHOST_ALLOW_HTTP")
    if allow_http is not None:
        config_data["pwa"]["allow_http"] = allow_http.lower() in ("true", "1", "yes")

    return config_data


def load_config(config_path: str) -> Config:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    data = _apply_env_overrides(data)

    return Config(
        pwa=_parse_pwa_config(data.get("pwa")),
        server=_parse_server_config(data.get("server")),
        environment=_parse_str(data.get("environment", "production"), "environment"),
    )
