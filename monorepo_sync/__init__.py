"""
monorepo_sync package

Provides the CLI entrypoint (`python -m monorepo_sync`) that mirrors a merged
pull request from a package repository into its directory in the monorepo.
"""

from .cli import main

__all__ = ["main"]
