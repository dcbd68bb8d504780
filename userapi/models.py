"""Domain models for the user directory service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as an ISO-8601 UTC string with millisecond precision."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


@dataclass(frozen=True)
class User:
    """Represents a user record held by the directory."""

    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, str]:
        payload = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.updated_at is not None:
            payload["updatedAt"] = format_timestamp(self.updated_at)
        return payload


__all__ = ["User", "format_timestamp", "utcnow"]
