"""Disk-based caching of completion values for heroku_command.

This package provides :class:`CompletionCache`, which stores the value
lists produced by :mod:`heroku_command.completions` on disk using
:mod:`diskcache`, each with its own time-to-live.
"""

from heroku_command.cache.cache import CompletionCache

__all__ = ["CompletionCache"]
