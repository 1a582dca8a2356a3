"""
Gunicorn settings for the Shipping Aid community site.

Every value can be overridden from the environment (GUNICORN_*), so the
same file serves local runs and the hosted container.
"""
import multiprocessing
import os


def _env_int(name, default):
    value = os.getenv(name)
    return int(value) if value else default


wsgi_app = "shippingaid.wsgi:application"
bind = os.getenv("GUNICORN_BIND", f"0.0.0.0:{os.getenv('PORT', '8000')}")

# Requests are short and synchronous; sync workers match the ORM usage.
worker_class = "sync"
workers = _env_int("GUNICORN_WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 4))
timeout = _env_int("GUNICORN_TIMEOUT", 60)
graceful_timeout = _env_int("GUNICORN_GRACEFUL_TIMEOUT", 30)

# Recycle workers to bound memory growth from long-lived DB connections
max_requests = _env_int("GUNICORN_MAX_REQUESTS", 800)
max_requests_jitter = 80

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
proc_name = "shippingaid-community"

# HTTPS terminates at the platform proxy
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "*")
