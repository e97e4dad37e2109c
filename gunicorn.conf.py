"""Gunicorn config for container deployment of the Rental Analytics API."""
import os

# Bind to the platform's PORT or default 8000
bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Uvicorn async workers. Each worker holds its own dataset registry, so a year
# loaded in one worker is fetched again by the other. Tune via WEB_CONCURRENCY.
worker_class = "uvicorn.workers.UvicornWorker"
workers = int(os.environ.get("WEB_CONCURRENCY", "2"))

# Large uploads are parsed in a worker process; allow them time to finish
timeout = 120

graceful_timeout = 30

# Keep-alive must exceed the proxy keep-alive (default 60s)
keepalive = 65

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"

wsgi_app = "rental_analytics.main:app"
