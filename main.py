"""Command-line interface for the user directory service."""

from __future__ import annotations
import argparse
import logging
import sys
from typing import TYPE_CHECKING, Sequence

import httpx

from userapi.config import Settings, load_settings

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger("userapi.main")

_DEFAULT_SERVICE_URL = "http://localhost:3000"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User directory service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: USERAPI_HOST or 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listening port (default: USERAPI_PORT or 3000)",
    )
    serve_parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level passed to uvicorn",
    )

    for name, help_text in (
        ("check", "Query the health endpoint of a running service"),
        ("users", "List the users held by a running service"),
    ):
        client_parser = subparsers.add_parser(name, help=help_text)
        client_parser.add_argument(
            "--service-url",
            default=_DEFAULT_SERVICE_URL,
            help=f"Base URL of a running service (default: {_DEFAULT_SERVICE_URL})",
        )
        client_parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "check", "users"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _build_application() -> tuple[Settings, FastAPI]:
    from userapi.api import create_app

    try:
        settings = load_settings()
        return settings, create_app(settings=settings)
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc


def _serve(
    app: FastAPI,
    settings: Settings,
    *,
    host: str | None,
    port: int | None,
    log_level: str,
) -> None:
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info(
        "Starting user directory %s (%s) on http://%s:%s",
        settings.version,
        settings.environment,
        bind_host,
        bind_port,
    )
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=log_level)


def _get_json(service_url: str, path: str, timeout: float) -> dict | None:
    endpoint = service_url.rstrip("/") + path
    try:
        response = httpx.get(endpoint, timeout=timeout)
    except httpx.HTTPError as exc:
        print(f"Failed to contact user directory service: {exc}")
        return None

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return None

    try:
        payload = response.json()
    except ValueError:
        print("Service returned an unexpected response format.")
        return None
    if not isinstance(payload, dict):
        print("Service returned an unexpected response format.")
        return None
    return payload


def _check_health(service_url: str, timeout: float) -> int:
    payload = _get_json(service_url, "/api/health", timeout)
    if payload is None:
        return 1
    print(
        f"{payload.get('status', 'unknown')}: environment={payload.get('environment', '?')} "
        f"version={payload.get('version', '?')} uptime={payload.get('uptime', '?')}s"
    )
    return 0 if payload.get("status") == "healthy" else 1


def _list_users(service_url: str, timeout: float) -> int:
    payload = _get_json(service_url, "/api/users", timeout)
    if payload is None:
        return 1
    users = payload.get("data", [])
    if not users:
        print("No users are currently registered.")
        return 0
    print(f"{payload.get('count', len(users))} user(s) found:")
    print(f"{'ID':<36}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 120)
    for user in users:
        print(
            f"{user.get('id', '?'):<36}  {user.get('name', ''):<24}  "
            f"{user.get('email', ''):<32}  {user.get('createdAt', '')}"
        )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)

    if args.command == "serve":
        settings, app = _build_application()
        _serve(app, settings, host=args.host, port=args.port, log_level=args.log_level)
        return 0
    if args.command == "check":
        return _check_health(args.service_url, args.timeout)
    if args.command == "users":
        return _list_users(args.service_url, args.timeout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
