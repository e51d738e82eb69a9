import os

bind = f"0.0.0.0:{os.getenv('PORT', 8000)}"
workers = int(os.getenv('WEB_CONCURRENCY', 2))
worker_class = "uvicorn.workers.UvicornWorker"
# Receipt uploads can be slow on mobile connections
timeout = int(os.getenv('GUNICORN_TIMEOUT', 120))
graceful_timeout = 30
max_requests = 1000
max_requests_jitter = 100
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
accesslog = "-"
preload_app = True
