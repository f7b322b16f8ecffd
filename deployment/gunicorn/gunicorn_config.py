import os

# Single process so the in-memory rate limit counters stay consistent;
# requests are served concurrently on threads.
bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"
workers = 1
worker_class = "gthread"
threads = int(os.getenv('GUNICORN_THREADS', 8))
worker_tmp_dir = "/dev/shm"
timeout = 120
keepalive = 5

wsgi_app = "core.wsgi:application"

# Logging
accesslog = os.getenv('GUNICORN_ACCESS_LOG', '-')
errorlog = os.getenv('GUNICORN_ERROR_LOG', '-')
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "contact-backend"

# Server mechanics
daemon = False

# Server hooks
def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting Gunicorn server")

def when_ready(server):
    """Called just after the server is started."""
    server.log.info(f"Gunicorn server is ready on {bind}")

def worker_int(worker):
    """Called when a worker receives the SIGINT or SIGQUIT signal."""
    worker.log.info("Worker received SIGINT or SIGQUIT signal")

def worker_abort(worker):
    """Called when a worker receives the SIGABRT signal."""
    worker.log.info("Worker received SIGABRT signal")
