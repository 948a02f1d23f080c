"""HTTP+JSON surface over the marketplace."""

from .main import create_app

__all__ = ["create_app"]
