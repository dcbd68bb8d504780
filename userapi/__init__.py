"""In-memory user directory service."""

from __future__ import annotations

from typing import Any

from .config import Settings, load_settings
from .store import InMemoryUserStore, UserStore
from .users import UserManager

__version__ = "1.0.0"


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "InMemoryUserStore",
    "Settings",
    "UserManager",
    "UserStore",
    "create_app",
    "load_settings",
]
