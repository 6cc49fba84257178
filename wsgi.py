"""
ASGI entry point for Gunicorn/Uvicorn (``wsgi:app``).
"""

import sys

from dotenv import load_dotenv
from fastapi import FastAPI

from restcache.config import Settings
from restcache.domain.exceptions import ConfigurationError
from restcache.interfaces.http.app import create_app

load_dotenv()


def create_application() -> FastAPI:
    """Load settings and build the app, exiting on configuration errors."""
    try:
        return create_app(Settings())
    except ConfigurationError as e:
        key = f" ({e.config_key})" if e.config_key else ""
        print(f"\nConfiguration Error{key}:\n{e}", file=sys.stderr)
        raise SystemExit(1)


app = create_application()
