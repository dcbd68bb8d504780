"""Configuration management for the user directory service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Set, Tuple

import yaml

DEFAULT_ENVIRONMENT = "development"
DEFAULT_VERSION = "1.0.0"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000


@dataclass(frozen=True)
class SeedUser:
    """A user record loaded into the directory at startup."""

    id: str
    name: str
    email: str

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SeedUser":
        """Create a :class:`SeedUser` from raw dictionary data."""
        required_fields = {"id", "name", "email"}
        missing = sorted(key for key in required_fields if data.get(key) is None)
        if missing:
            raise ValueError(f"Missing required seed user fields: {', '.join(missing)}")

        values: Dict[str, str] = {}
        for key in required_fields:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ValueError(f"Seed user field '{key}' must be a string")
            values[key] = str(value).strip()
        empty = sorted(key for key, value in values.items() if not value)
        if empty:
            raise ValueError(f"Seed user fields must not be empty: {', '.join(empty)}")
        return SeedUser(**values)


DEFAULT_SEED_USERS: Tuple[SeedUser, ...] = (
    SeedUser(id="1", name="John Doe", email="john@example.com"),
    SeedUser(id="2", name="Jane Smith", email="jane@example.com"),
)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP service."""

    environment: str = DEFAULT_ENVIRONMENT
    version: str = DEFAULT_VERSION
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: Tuple[str, ...] = ("*",)
    seed_users: Tuple[SeedUser, ...] = field(default=DEFAULT_SEED_USERS)

    @property
    def verbose_errors(self) -> bool:
        return self.environment == "development"


def _parse_port(value: object) -> int:
    try:
        port = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid port value: {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port


def _split_origins(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _apply_file_values(settings: Settings, raw: Mapping[str, object]) -> Settings:
    updates: Dict[str, object] = {}
    for key in ("environment", "version", "host"):
        if raw.get(key) is not None:
            updates[key] = str(raw[key]).strip()
    if raw.get("port") is not None:
        updates["port"] = _parse_port(raw["port"])

    origins = raw.get("cors_origins")
    if origins is not None:
        if isinstance(origins, str):
            updates["cors_origins"] = _split_origins(origins)
        elif isinstance(origins, list):
            updates["cors_origins"] = tuple(str(item).strip() for item in origins if str(item).strip())
        else:
            raise ValueError("cors_origins must be a string or a list of strings")

    seeds = raw.get("seed_users")
    if seeds is not None:
        if not isinstance(seeds, list):
            raise ValueError("seed_users must be a list of user mappings")
        parsed = []
        seen_ids: Set[str] = set()
        seen_emails: Set[str] = set()
        for item in seeds:
            if not isinstance(item, dict):
                raise ValueError("seed_users entries must be mappings")
            seed = SeedUser.from_dict(item)
            if seed.id in seen_ids:
                raise ValueError(f"Duplicate seed user id: {seed.id}")
            if seed.email in seen_emails:
                raise ValueError(f"Duplicate seed user email: {seed.email}")
            seen_ids.add(seed.id)
            seen_emails.add(seed.email)
            parsed.append(seed)
        updates["seed_users"] = tuple(parsed)

    return replace(settings, **updates)


def _apply_env_values(settings: Settings, environ: Mapping[str, str]) -> Settings:
    updates: Dict[str, object] = {}
    for key, env_name in (
        ("environment", "USERAPI_ENV"),
        ("version", "USERAPI_VERSION"),
        ("host", "USERAPI_HOST"),
    ):
        value = environ.get(env_name)
        if value is not None and value.strip():
            updates[key] = value.strip()
    port = environ.get("USERAPI_PORT")
    if port is not None and port.strip():
        updates["port"] = _parse_port(port)
    origins = environ.get("USERAPI_CORS_ORIGINS")
    if origins is not None:
        updates["cors_origins"] = _split_origins(origins)
    return replace(settings, **updates)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "settings.yaml").resolve(strict=False)
    return candidate


def load_settings_file(config_path: Path) -> Dict[str, object]:
    """Load raw settings from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    return raw


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from defaults, the YAML file and the environment."""
    env = os.environ if environ is None else environ
    settings = Settings()

    explicit_path = env.get("USERAPI_CONFIG")
    config_path = resolve_config_path(explicit_path)
    if config_path.exists():
        settings = _apply_file_values(settings, load_settings_file(config_path))
    elif explicit_path:
        raise ValueError(f"Configuration file not found: {config_path}")

    return _apply_env_values(settings, env)


__all__ = [
    "DEFAULT_SEED_USERS",
    "SeedUser",
    "Settings",
    "load_settings",
    "load_settings_file",
    "resolve_config_path",
]
