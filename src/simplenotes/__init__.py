"""
simplenotes - a small single-user note-taking web application.

Notes carry a body, a timestamp and a set of free-text tags. Tags that are
no longer referenced by any note are reclaimed automatically.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("simplenotes")
except PackageNotFoundError:
    __version__ = "0.1.0"
