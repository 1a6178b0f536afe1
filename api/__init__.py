"""FastAPI backend for the ctxzip session compactor."""

from api.main import app, create_app
from api.routes import sessions

__all__ = [
    "app",
    "create_app",
    "sessions",
]
