# stashcache/utils/__init__.py
"""Utility helpers for stashcache (logging setup)."""

from .logger import setup_logging

__all__ = ["setup_logging"]
