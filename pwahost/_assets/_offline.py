"""Offline fallback page.

Served verbatim at the offline route and pre-cached by every strategy so the
service worker can show it when a navigation fails.
"""

# OFFLINE PAGE
# Self-contained: no external stylesheets or scripts, since it is shown
# exactly when nothing else can be fetched.

OFFLINE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>You are offline</title>
    <style>
        body {
            font-family: system-ui, -apple-system, "Segoe UI", Roboto, sans-serif;
            display: flex;
            justify-content: center;
            align-items: center;
            min-height: 100vh;
            margin: 0;
            background: #f5f5f5;
            color: #333;
        }
        main {
            text-align: center;
            padding: 2rem;
        }
        h1 {
            font-size: 1.75rem;
            margin-bottom: 0.5rem;
        }
        p {
            opacity: 0.7;
        }
    </style>
</head>
<body>
    <main>
        <h1>You are offline</h1>
        <p>This page is not available without a network connection. Please try again once you are back online.</p>
    </main>
</body>
</html>
"""
