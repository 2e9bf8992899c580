"""Cache-fingerprinted service worker strategy.

Only fingerprinted assets (?v=...) are cached, cache-first. Everything else
goes to the network; navigations fall back to the offline page.
"""

# SERVICE WORKER: CACHE FINGERPRINTED

CACHE_FINGERPRINTED_JS = """(function () {
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

        if (url.searchParams.has('v')) {
            event.respondWith(
                caches.match(request).then(function (cached) {
                    return cached || fetch(request).then(function (response) {
                        if (response.ok) {
                            var copy = response.clone();
                            caches.open(version).then(function (cache) {
                                cache.put(request, copy);
                            });
                        }
                        return response;
                    });
                })
            );
            return;
        }

        if (request.mode === 'navigate') {
            event.respondWith(
                fetch(request).catch(function () {
                    return caches.match(offlineUrl);
                })
            );
        }
    });
})();
"""
