"""Lyricast - video companion queue for a lyrics display."""

from lyricast.__about__ import __version__

__all__ = ["__version__"]
