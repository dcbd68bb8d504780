"""FastAPI application exposing the user directory over JSON."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .models import User, format_timestamp, utcnow
from .store import InMemoryUserStore, UserStore
from .users import Err, ErrorKind, Result, UserManager

logger = logging.getLogger("userapi.api")

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


class UserPayload(BaseModel):
    """Body accepted by the create and update endpoints."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("name", "email", mode="before")
    @classmethod
    def _drop_non_strings(cls, value: object) -> Optional[str]:
        # Stored records hold text only, so truthy numbers or objects that a
        # bare presence check would let through are read as absent here.
        if isinstance(value, str):
            return value
        return None


async def read_user_payload(request: Request) -> UserPayload:
    """Parse the request body, treating anything but a JSON object as empty."""

    try:
        raw = await request.json()
    except ValueError:
        raw = None
    if not isinstance(raw, dict):
        raw = {}
    return UserPayload.model_validate(raw)


def seed_store(settings: Settings) -> InMemoryUserStore:
    emails = [seed.email for seed in settings.seed_users]
    if len(set(emails)) != len(emails):
        raise ValueError("Seed users must have unique email addresses")
    created_at = utcnow()
    return InMemoryUserStore(
        User(id=seed.id, name=seed.name, email=seed.email, created_at=created_at)
        for seed in settings.seed_users
    )


def error_response(result: Err) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_BY_KIND[result.kind],
        content={"success": False, "error": result.message},
    )


def user_response(
    result: Result[User],
    *,
    status_code: int = status.HTTP_200_OK,
    message: Optional[str] = None,
) -> JSONResponse:
    """Translate a manager result into the JSON envelope and status code."""

    if isinstance(result, Err):
        return error_response(result)
    content: Dict[str, Any] = {"success": True}
    if message is not None:
        content["message"] = message
    content["data"] = result.value.to_dict()
    return JSONResponse(status_code=status_code, content=content)


def build_users_router(manager: UserManager) -> APIRouter:
    # Each route is also served with a trailing slash instead of redirecting.
    router = APIRouter(prefix="/users")

    @router.get("")
    @router.get("/", include_in_schema=False)
    def list_users() -> JSONResponse:
        users = manager.list()
        return JSONResponse(
            content={
                "success": True,
                "data": [user.to_dict() for user in users],
                "count": len(users),
            }
        )

    @router.get("/{user_id}")
    @router.get("/{user_id}/", include_in_schema=False)
    def read_user(user_id: str) -> JSONResponse:
        return user_response(manager.get(user_id))

    @router.post("")
    @router.post("/", include_in_schema=False)
    def create_user(payload: UserPayload = Depends(read_user_payload)) -> JSONResponse:
        result = manager.create(payload.name, payload.email)
        return user_response(result, status_code=status.HTTP_201_CREATED)

    @router.put("/{user_id}")
    @router.put("/{user_id}/", include_in_schema=False)
    def update_user(user_id: str, payload: UserPayload = Depends(read_user_payload)) -> JSONResponse:
        return user_response(manager.update(user_id, payload.name, payload.email))

    @router.delete("/{user_id}")
    @router.delete("/{user_id}/", include_in_schema=False)
    def delete_user(user_id: str) -> JSONResponse:
        return user_response(manager.delete(user_id), message="User deleted successfully")

    return router


def install_error_handlers(app: FastAPI, *, verbose_errors: bool) -> None:
    """Register the unmatched-route fallback and the generic 500 responder."""

    # Unknown routes answer {"error": ...} without the "success" flag carried
    # by resource-level 404s.
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Route not found"})
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error while serving %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Something went wrong!",
                "message": str(exc) if verbose_errors else "Internal server error",
            },
        )


def create_app(
    *,
    settings: Settings | None = None,
    store: UserStore | None = None,
    manager: UserManager | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the user directory."""

    if settings is None:
        settings = Settings()
    if manager is None:
        manager = UserManager(store if store is not None else seed_store(settings))

    started = time.monotonic()

    app = FastAPI(
        title="User Directory API",
        description="In-memory CRUD service for user records",
        version=settings.version,
    )
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.state.settings = settings
    app.state.manager = manager

    if settings.verbose_errors:
        logger.warning(
            "Verbose error responses are enabled (environment=%s). Internal error"
            " messages will be returned to clients.",
            settings.environment,
        )
    install_error_handlers(app, verbose_errors=settings.verbose_errors)

    @app.get("/api/health")
    def healthcheck() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": format_timestamp(utcnow()),
            "uptime": time.monotonic() - started,
            "environment": settings.environment,
            "version": settings.version,
        }

    app.include_router(build_users_router(manager), prefix="/api")

    return app


__all__ = [
    "UserPayload",
    "build_users_router",
    "create_app",
    "install_error_handlers",
    "read_user_payload",
    "seed_store",
    "user_response",
]
