"""
CLI module for web-grab.

Provides command-line interface using Typer:
- get: Download a single file
- batch: Download a list of files concurrently
- mirror: Mirror a website
"""

from web_grab.cli.main import app

__all__ = ["app"]
