"""Minimal service worker strategy.

Nothing but the offline page (and any pre-cached routes) is cached; failed
navigations fall back to it.
"""

# SERVICE WORKER: MINIMAL

MINIMAL_JS = """(function () {
    'use strict';

    var version = '{version}';
    var offlineUrl = '{offlineRoute}';
    var routesToPreCache = [{routes}];
    var routesToIgnore = [{ignoreRoutes}];

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
        var ignored = routesToIgnore.some(function (route) {
            return url.pathname.indexOf(route) === 0;
        });

        if (request.mode !== 'navigate' || ignored) {
            return;
        }

        event.respondWith(
            fetch(request).catch(function () {
                return caches.match(offlineUrl);
            })
        );
    });
})();
"""
