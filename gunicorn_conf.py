import multiprocessing
import os

# Gunicorn configuration file
# Run with: gunicorn taskhub.main:app -c gunicorn_conf.py

bind = os.getenv("BIND", "0.0.0.0:8000")

# Standard formula: (2 x num_cores) + 1
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"

# Requests are short CRUD calls; nothing should come close to this
timeout = 30
keepalive = 5

# Logging: access lines come from the app's request middleware
accesslog = None
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

name = "taskhub_api"
reload = False  # Set to True for development only
