"""Placeholder substitution for service worker templates.

Templates carry four literal placeholders, replaced on every request:

    {version}       cache id and strategy, e.g. "v1.0::cache_first"
    {routes}        pre-cache routes as a JS array body: 'a','b'
    {offlineRoute}  full path of the offline page
    {ignoreRoutes}  ignored routes as a JS array body

The placeholder tokens are disjoint, so the replacements are independent.
"""

from dataclasses import dataclass

from .config import PwaConfig

VERSION_PLACEHOLDER = "{version}"
ROUTES_PLACEHOLDER = "{routes}"
OFFLINE_ROUTE_PLACEHOLDER = "{offlineRoute}"
IGNORE_ROUTES_PLACEHOLDER = "{ignoreRoutes}"

PLACEHOLDERS = (
    VERSION_PLACEHOLDER,
    ROUTES_PLACEHOLDER,
    OFFLINE_ROUTE_PLACEHOLDER,
    IGNORE_ROUTES_PLACEHOLDER,
)


@dataclass(frozen=True)
class SubstitutionContext:
    """Replacement values for the template placeholders."""

    version: str
    routes: str
    offline_route: str
    ignore_routes: str


def split_route_list(value: str) -> list[str]:
    """Split a comma-separated route list into trimmed, non-empty entries.

    Malformed lists are tolerated: empty segments and surrounding whitespace
    are dropped, so "a, ,b," gives ["a", "b"]. Segments that are blank only
    after trimming are dropped too; splitting first and trimming afterwards
    would keep them as '' entries in the generated array.
    """
    routes = []
    for segment in value.split(","):
        route = segment.strip()
        if route:
            routes.append(route)
    return routes


def format_route_list(value: str) -> str:
    """Format a comma-separated route list as quoted JavaScript array items.

    Example: "a, b ,c" -> "'a','b','c'". An empty list gives "".
    """
    return ",".join(f"'{route}'" for route in split_route_list(value))


def build_context(config: PwaConfig) -> SubstitutionContext:
    """Compute the replacement values for the current configuration."""
    return SubstitutionContext(
        version=f"{config.cache_id}::{config.strategy}",
        routes=format_route_list(config.routes_to_precache),
        offline_route=config.offline_path,
        ignore_routes=format_route_list(config.routes_to_ignore),
    )


def substitute(template: str, context: SubstitutionContext) -> str:
    """Replace every placeholder occurrence in template."""
    return (
        template.replace(VERSION_PLACEHOLDER, context.version)
        .replace(ROUTES_PLACEHOLDER, context.routes)
        .replace(OFFLINE_ROUTE_PLACEHOLDER, context.offline_route)
        .replace(IGNORE_ROUTES_PLACEHOLDER, context.ignore_routes)
    )
