"""Identifier generation for new user records."""

from __future__ import annotations

import uuid
from typing import Callable

IdentifierFactory = Callable[[], str]


def generate_user_id() -> str:
    """Return a random UUID4 in its canonical hyphenated text form."""

    return str(uuid.uuid4())


__all__ = ["IdentifierFactory", "generate_user_id"]
