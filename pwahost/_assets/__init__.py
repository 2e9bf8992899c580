"""Embedded PWA assets.

This package contains the built-in service worker strategy templates and the
offline fallback page, embedded as string constants so they ship with the
package and need no data files.

Assets are looked up by logical key:
- "<strategy>.js" for each built-in strategy
- "offline.html" for the offline page
"""

from ._cache_fingerprinted import CACHE_FINGERPRINTED_JS
from ._cache_first import CACHE_FIRST_JS
from ._cache_first_safe import CACHE_FIRST_SAFE_JS
from ._minimal import MINIMAL_JS
from ._network_first import NETWORK_FIRST_JS
from ._offline import OFFLINE_HTML

OFFLINE_PAGE_KEY = "offline.html"

BUILTIN_RESOURCES = {
    "cache_first_safe.js": CACHE_FIRST_SAFE_JS,
    "cache_fingerprinted.js": CACHE_FINGERPRINTED_JS,
    "cache_first.js": CACHE_FIRST_JS,
    "network_first.js": NETWORK_FIRST_JS,
    "minimal.js": MINIMAL_JS,
    OFFLINE_PAGE_KEY: OFFLINE_HTML,
}

__all__ = [
    "BUILTIN_RESOURCES",
    "OFFLINE_PAGE_KEY",
    "OFFLINE_HTML",
]
