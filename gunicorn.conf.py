"""
Gunicorn configuration for the RestCache ASGI app (``wsgi:app``).

The in-memory cache store is per worker process; run a single worker or use
the Redis store (REST_API_CACHE_STORE=redis) to share entries across workers.
"""

import multiprocessing
import os

# Server socket
bind = f"{os.getenv('HOST', '0.0.0.0')}:{os.getenv('PORT', '8080')}"

# Worker processes
store_backend = os.getenv("REST_API_CACHE_STORE", "memory").lower()
if store_backend == "memory":
    workers = 1
else:
    workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 1000
max_requests_jitter = 50
timeout = 60
graceful_timeout = 30
keepalive = 5

proc_name = "restcache"

# Logging
accesslog = os.getenv("ACCESS_LOG", "-")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
errorlog = os.getenv("ERROR_LOG", "-")
loglevel = os.getenv("LOG_LEVEL", "info").lower()
capture_output = True


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    server.log.info(f"Worker spawned (pid: {worker.pid}, cache store: {store_backend})")


def on_exit(server):
    """Called just before exiting."""
    server.log.info("Shutting down RestCache")
