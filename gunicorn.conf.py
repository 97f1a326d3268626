"""Gunicorn settings for serving threadboard.gateway.app:app in production.

    gunicorn -c gunicorn.conf.py threadboard.gateway.app:app

Tunables (environment):
    GATEWAY_WORKERS      worker count, default 2 * CPUs + 1 capped at 9
    GUNICORN_BIND        listen address, default 0.0.0.0:8001
    GUNICORN_TIMEOUT     seconds before a silent worker is restarted, default 60
    GUNICORN_LOG_LEVEL   gunicorn's own log level, default info
    FORWARDED_ALLOW_IPS  proxies trusted for X-Forwarded-For, default 127.0.0.1
"""

import multiprocessing
import os

from prometheus_client import multiprocess

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8001")

workers = int(os.environ.get("GATEWAY_WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 9)))
worker_class = "uvicorn.workers.UvicornWorker"

# Upload requests stream up to 5 MB through the worker
timeout = int(os.environ.get("GUNICORN_TIMEOUT", 60))
graceful_timeout = 30
keepalive = 5

# The auth rate limit keys on the client address, so it must survive the proxy
forwarded_allow_ips = os.environ.get("FORWARDED_ALLOW_IPS", "127.0.0.1")

accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")

proc_name = "threadboard-gateway"

# Engines and Redis clients are created lazily inside each worker
preload_app = True

worker_tmp_dir = "/dev/shm"


def child_exit(server, worker):  # noqa: ARG001
    """Drop a dead worker's metric files when multiprocess metrics are on."""
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        multiprocess.mark_process_dead(worker.pid)
