"""
Pytest bootstrap.
Settings are read at import time, so the test environment is fixed here
before any application module is imported.
"""
import os

os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ["USE_CELERY"] = "False"
os.environ.setdefault("LOG_LEVEL", "WARNING")
