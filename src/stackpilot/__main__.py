"""stackpilot CLI entry point."""

from __future__ import annotations

from stackpilot.cli.app import app

if __name__ == "__main__":
    app()
