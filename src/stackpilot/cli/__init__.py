"""Command line interface for stackpilot."""

from .app import app

__all__ = ["app"]
