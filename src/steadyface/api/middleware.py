"""Middleware: optional shared-key authentication for overlay clients."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

if TYPE_CHECKING:
    from steadyface.config import Settings

_bearer_scheme = HTTPBearer(auto_error=False)
_header_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_request_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def _matches(candidate: str | None, expected: str) -> bool:
    return candidate is not None and secrets.compare_digest(candidate.encode(), expected.encode())


async def verify_api_key(
    request: Request,
    bearer: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
    header_key: Annotated[str | None, Depends(_header_scheme)],
) -> None:
    """Require the configured key when STEADYFACE_API_KEY is set.

    The key may be sent as 'Authorization: Bearer <key>' or as an
    'X-API-Key' header (handy for browser overlays polling the state).
    """
    expected = get_request_settings(request).api_key
    if expected is None:
        return

    token = bearer.credentials if bearer is not None else None
    if _matches(token, expected) or _matches(header_key, expected):
        return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing API key",
        headers={"WWW-Authenticate": "Bearer"},
    )
