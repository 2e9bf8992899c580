"""Cache-first-safe service worker strategy.

Handles caching strategy:
- HTML navigations: Network-first, cached copy or offline page as fallback
- Fingerprinted assets (?v=...): Cache-first, the URL changes when the file does
- Other same-origin assets: Network-first with cache fallback
"""

# SERVICE WORKER: CACHE FIRST SAFE
# Placeholders {version}, {routes}, {offlineRoute} and {ignoreRoutes} are
# replaced per request by the substitution engine.

CACHE_FIRST_SAFE_JS = """(function () {
    'use strict';

    var version = '{version}';
    var offlineUrl = '{offlineRoute}';
    var routesToPreCache = [{routes}];
    var routesToIgnore = [{ignoreRoutes}];

    function isIgnored(url) {
        return routesToIgnore.some(function (route) {
            return url.pathname.indexOf(route) === 0;
        });
    }

    function isFingerprinted(url) {
        return url.searchParams.has('v');
    }

    function addToCache(request, response) {
        if (response.ok) {
            var copy = response.clone();
            caches.open(version).then(function (cache) {
                cache.put(request, copy);
            });
        }
        return response;
    }

    function serveOffline(request) {
        return caches.match(request).then(function (cached) {
            return cached || caches.match(offlineUrl);
        });
    }

    // Install event - cache the offline page and pre-cached routes
    self.addEventListener('install', function (event) {
        event.waitUntil(
            caches.open(version)
                .then(function (cache) {
                    return cache.addAll([offlineUrl].concat(routesToPreCache));
                })
                .then(function () {
                    return self.skipWaiting();
                })
        );
    });

    // Activate event - remove caches from previous versions
    self.addEventListener('activate', function (event) {
        event.waitUntil(
            caches.keys()
                .then(function (keys) {
                    return Promise.all(keys
                        .filter(function (key) { return key !== version; })
                        .map(function (key) { return caches.delete(key); }));
                })
                .then(function () {
                    return self.clients.claim();
                })
        );
    });

    self.addEventListener('fetch', function (event) {
        var request = event.request;
        var url = new URL(request.url);

        if (request.method !== 'GET' || url.origin !== self.location.origin || isIgnored(url)) {
            return;
        }

        // HTML: network-first
        if (request.mode === 'navigate' || (request.headers.get('Accept') || '').indexOf('text/html') !== -1) {
            event.respondWith(
                fetch(request)
                    .then(function (response) { return addToCache(request, response); })
                    .catch(function () { return serveOffline(request); })
            );
            return;
        }

        // Fingerprinted assets: cache-first
        if (isFingerprinted(url)) {
            event.respondWith(
                caches.match(request).then(function (cached) {
                    return cached || fetch(request).then(function (response) {
                        return addToCache(request, response);
                    });
                })
            );
            return;
        }

        event.respondWith(
            fetch(request)
                .then(function (response) { return addToCache(request, response); })
                .catch(function () { return caches.match(request); })
        );
    });
})();
"""
