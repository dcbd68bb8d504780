from __future__ import annotations

import threading
from datetime import datetime, timezone
from itertools import count

import pytest

from userapi.models import User
from userapi.store import InMemoryUserStore
from userapi.users import (
    EMAIL_TAKEN,
    FIELDS_REQUIRED,
    USER_NOT_FOUND,
    Err,
    ErrorKind,
    Ok,
    UserManager,
)

CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)
LATER = datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture()
def store() -> InMemoryUserStore:
    return InMemoryUserStore(
        [
            User(id="1", name="John Doe", email="john@example.com", created_at=CREATED),
            User(id="2", name="Jane Smith", email="jane@example.com", created_at=CREATED),
        ]
    )


@pytest.fixture()
def manager(store: InMemoryUserStore) -> UserManager:
    ids = count(100)
    return UserManager(store, id_factory=lambda: f"user-{next(ids)}", clock=lambda: LATER)


def test_create_assigns_id_and_timestamp(manager: UserManager) -> None:
    result = manager.create("Alice", "alice@example.com")

    assert isinstance(result, Ok)
    user = result.value
    assert user.id == "user-100"
    assert user.created_at == LATER
    assert user.updated_at is None
    assert manager.get(user.id) == Ok(user)
    assert [u.id for u in manager.list()] == ["1", "2", "user-100"]


def test_create_uses_uuid_ids_by_default(store: InMemoryUserStore) -> None:
    manager = UserManager(store)
    first = manager.create("A", "a@x.com")
    second = manager.create("B", "b@x.com")

    assert isinstance(first, Ok) and isinstance(second, Ok)
    assert len(first.value.id) == 36
    assert first.value.id != second.value.id


@pytest.mark.parametrize(
    "name,email",
    [(None, "a@x.com"), ("Alice", None), ("", "a@x.com"), ("Alice", ""), (None, None), (42, "a@x.com")],
)
def test_create_requires_name_and_email(manager: UserManager, name, email) -> None:
    assert manager.create(name, email) == Err(ErrorKind.VALIDATION, FIELDS_REQUIRED)
    assert len(manager.list()) == 2


def test_create_rejects_duplicate_email_regardless_of_name(manager: UserManager) -> None:
    result = manager.create("Someone Else", "john@example.com")

    assert result == Err(ErrorKind.CONFLICT, EMAIL_TAKEN)
    assert len(manager.list()) == 2


def test_email_comparison_is_case_sensitive(manager: UserManager) -> None:
    assert isinstance(manager.create("John Again", "JOHN@example.com"), Ok)


def test_get_unknown_user(manager: UserManager) -> None:
    assert manager.get("999") == Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)


def test_update_replaces_fields_and_preserves_identity(manager: UserManager) -> None:
    result = manager.update("1", "Johnny", "johnny@example.com")

    assert isinstance(result, Ok)
    updated = result.value
    assert updated.id == "1"
    assert updated.name == "Johnny"
    assert updated.email == "johnny@example.com"
    assert updated.created_at == CREATED
    assert updated.updated_at == LATER
    assert [u.id for u in manager.list()] == ["1", "2"]
    assert manager.get("1") == Ok(updated)


def test_update_checks_existence_before_payload(manager: UserManager) -> None:
    assert manager.update("999", None, "") == Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)


def test_update_requires_name_and_email(manager: UserManager) -> None:
    assert manager.update("1", "", "john@example.com") == Err(ErrorKind.VALIDATION, FIELDS_REQUIRED)
    assert manager.update("1", "John", None) == Err(ErrorKind.VALIDATION, FIELDS_REQUIRED)


def test_update_rejects_email_owned_by_another_user(manager: UserManager) -> None:
    result = manager.update("1", "X", "jane@example.com")

    assert result == Err(ErrorKind.CONFLICT, EMAIL_TAKEN)
    current = manager.get("1")
    assert isinstance(current, Ok)
    assert current.value.email == "john@example.com"
    assert current.value.updated_at is None


def test_update_keeping_own_email_succeeds(manager: UserManager) -> None:
    result = manager.update("2", "Jane Doe", "jane@example.com")

    assert isinstance(result, Ok)
    assert result.value.name == "Jane Doe"


def test_delete_removes_and_returns_user(manager: UserManager) -> None:
    result = manager.delete("2")

    assert isinstance(result, Ok)
    assert result.value.email == "jane@example.com"
    assert manager.get("2") == Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
    assert manager.delete("2") == Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
    assert isinstance(manager.create("Jane", "jane@example.com"), Ok)


def test_list_count_matches_retrievable_users(manager: UserManager) -> None:
    manager.create("A", "a@x.com")
    manager.delete("1")
    manager.update("2", "B", "b@x.com")

    users = manager.list()
    assert len(users) == 2
    assert all(isinstance(manager.get(user.id), Ok) for user in users)


def test_list_returns_a_copy(manager: UserManager) -> None:
    users = manager.list()
    users.clear()
    assert len(manager.list()) == 2


def test_concurrent_creates_with_same_email_admit_one(store: InMemoryUserStore) -> None:
    manager = UserManager(store)
    barrier = threading.Barrier(8)
    results = []
    results_lock = threading.Lock()

    def worker(index: int) -> None:
        barrier.wait()
        result = manager.create(f"User {index}", "race@example.com")
        with results_lock:
            results.append(result)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(isinstance(result, Ok) for result in results) == 1
    assert sum(result == Err(ErrorKind.CONFLICT, EMAIL_TAKEN) for result in results) == 7
    assert len([u for u in manager.list() if u.email == "race@example.com"]) == 1
