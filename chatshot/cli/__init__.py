"""Command-line interface for chatshot."""

from .main import app

__all__ = ["app"]
