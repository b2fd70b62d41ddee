# Gunicorn settings for the bundle lint service (containers / PaaS).
# Logs go to stdout/stderr so the platform collects them.
import os

bind = f"0.0.0.0:{os.getenv('PORT', '10000')}"
worker_class = "uvicorn.workers.UvicornWorker"
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
threads = 4
# /api/assist waits for the AI service up to ANTHROPIC_HTTP_TIMEOUT_S
timeout = int(os.getenv("ANTHROPIC_HTTP_TIMEOUT_S", "60")) + 30

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
capture_output = True
