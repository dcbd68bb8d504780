"""User resource manager enforcing the directory's invariants."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Generic, List, Optional, TypeVar, Union

from .identifiers import IdentifierFactory, generate_user_id
from .models import User, utcnow
from .store import UserStore

logger = logging.getLogger("userapi.users")

USER_NOT_FOUND = "User not found"
FIELDS_REQUIRED = "Name and email are required"
EMAIL_TAKEN = "User with this email already exists"

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Expected failure categories surfaced by :class:`UserManager`."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str


Result = Union[Ok[T], Err]


def _is_present(value: object) -> bool:
    return isinstance(value, str) and value != ""


class UserManager:
    """Serve list/get/create/update/delete over a :class:`UserStore`.

    Every operation runs under a single lock so the existence check, the
    email conflict check and the mutation are observed as one step by
    concurrent callers.
    """

    def __init__(
        self,
        store: UserStore,
        *,
        id_factory: IdentifierFactory = generate_user_id,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._id_factory = id_factory
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def store(self) -> UserStore:
        return self._store

    def list(self) -> List[User]:
        with self._lock:
            return self._store.all()

    def get(self, user_id: str) -> Result[User]:
        with self._lock:
            user = self._store.get(user_id)
        if user is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        return Ok(user)

    def create(self, name: Optional[str], email: Optional[str]) -> Result[User]:
        if not (_is_present(name) and _is_present(email)):
            return Err(ErrorKind.VALIDATION, FIELDS_REQUIRED)

        with self._lock:
            if self._store.find_by_email(email) is not None:
                logger.debug("Rejected new user with duplicate email %s", email)
                return Err(ErrorKind.CONFLICT, EMAIL_TAKEN)
            user = User(
                id=self._id_factory(),
                name=name,
                email=email,
                created_at=self._clock(),
            )
            self._store.add(user)

        logger.info("Created user %s", user.id)
        return Ok(user)

    def update(self, user_id: str, name: Optional[str], email: Optional[str]) -> Result[User]:
        with self._lock:
            existing = self._store.get(user_id)
            if existing is None:
                return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)

            if not (_is_present(name) and _is_present(email)):
                return Err(ErrorKind.VALIDATION, FIELDS_REQUIRED)

            holder = self._store.find_by_email(email)
            if holder is not None and holder.id != user_id:
                logger.debug("Rejected update of user %s to duplicate email %s", user_id, email)
                return Err(ErrorKind.CONFLICT, EMAIL_TAKEN)

            updated = replace(existing, name=name, email=email, updated_at=self._clock())
            self._store.replace(updated)

        logger.info("Updated user %s", user_id)
        return Ok(updated)

    def delete(self, user_id: str) -> Result[User]:
        with self._lock:
            removed = self._store.remove(user_id)
        if removed is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        logger.info("Deleted user %s", user_id)
        return Ok(removed)


__all__ = [
    "EMAIL_TAKEN",
    "Err",
    "ErrorKind",
    "FIELDS_REQUIRED",
    "Ok",
    "Result",
    "USER_NOT_FOUND",
    "UserManager",
]
