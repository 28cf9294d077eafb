#!/usr/bin/env python3
"""
Celery worker script for the checkout service.
Runs the best-effort side effects: cart cleanup and audit log appends.
"""

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

if __name__ == "__main__":
    import models  # noqa: F401
    from core.celery import celery_app
    from core.logger import configure_logging

    configure_logging()

    # Start Celery worker
    celery_app.start([
        "worker",
        "--loglevel=info",
        "--concurrency=4",
        "--without-gossip",
        "--without-mingle",
        "--without-heartbeat",
    ])
