"""Admin web app."""

from .app import create_app

__all__ = ["create_app"]
