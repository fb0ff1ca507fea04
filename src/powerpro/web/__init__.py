"""FastAPI JSON API for powerpro."""

from .app import create_app

__all__ = ["create_app"]
