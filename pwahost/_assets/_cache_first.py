"""Cache-first service worker strategy.

Every same-origin GET is served from cache when present and cached on first
fetch. Navigations that miss both cache and network get the offline page.
"""

# SERVICE WORKER: CACHE FIRST

CACHE_FIRST_JS = """(function () {
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

        event.respondWith(
            caches.match(request).then(function (cached) {
                if (cached) {
                    return cached;
                }
                return fetch(request)
                    .then(function (response) {
                        if (response.ok) {
                            var copy = response.clone();
                            caches.open(version).then(function (cache) {
                                cache.put(request, copy);
                            });
                        }
                        return response;
                    })
                    .catch(function () {
                        if (request.mode === 'navigate') {
                            return caches.match(offlineUrl);
                        }
                    });
            })
        );
    });
})();
"""
