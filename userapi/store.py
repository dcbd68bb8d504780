"""Storage backends for user records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .models import User


class UserStore(ABC):
    """Ordered collection of user records keyed by id.

    Stores are not responsible for enforcing uniqueness rules; callers are
    expected to serialise access and validate before mutating.
    """

    @abstractmethod
    def all(self) -> List[User]:
        """Return every record in insertion order."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    def add(self, user: User) -> None:
        ...

    @abstractmethod
    def replace(self, user: User) -> None:
        """Swap the stored record sharing ``user.id`` for ``user``, keeping its position."""

    @abstractmethod
    def remove(self, user_id: str) -> Optional[User]:
        ...

    def __len__(self) -> int:
        return len(self.all())


class InMemoryUserStore(UserStore):
    """Keeps user records in a process-local list."""

    def __init__(self, users: Iterable[User] = ()) -> None:
        self._users: List[User] = []
        for user in users:
            self.add(user)

    def all(self) -> List[User]:
        return list(self._users)

    def get(self, user_id: str) -> Optional[User]:
        index = self._index_of(user_id)
        if index is None:
            return None
        return self._users[index]

    def find_by_email(self, email: str) -> Optional[User]:
        for user in self._users:
            if user.email == email:
                return user
        return None

    def add(self, user: User) -> None:
        if self._index_of(user.id) is not None:
            raise ValueError(f"User '{user.id}' is already stored")
        self._users.append(user)

    def replace(self, user: User) -> None:
        index = self._index_of(user.id)
        if index is None:
            raise KeyError(f"Unknown user '{user.id}'")
        self._users[index] = user

    def remove(self, user_id: str) -> Optional[User]:
        index = self._index_of(user_id)
        if index is None:
            return None
        return self._users.pop(index)

    def __len__(self) -> int:
        return len(self._users)

    def _index_of(self, user_id: str) -> Optional[int]:
        for index, user in enumerate(self._users):
            if user.id == user_id:
                return index
        return None


__all__ = ["InMemoryUserStore", "UserStore"]
