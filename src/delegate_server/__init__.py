"""Proxy server for the Delegate website assistant.

The package provides a FastAPI application factory named ``create_app``
inside ``delegate_server/server.py`` (see :func:`create_app`). The app
exposes ``POST /api/chat`` (relay to the hosted LLM API) and
``GET /api/health``.

Typical usage
-------------
from delegate_server import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --host 127.0.0.1 --port 3000
"""

from __future__ import annotations

from .server import create_app

__all__ = ["create_app", "__version__", "get_version"]

__version__ = "0.1.0"


def get_version() -> str:
    """Return the package version."""
    return __version__
