"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session token travels in the Authorization: Bearer <token> header.

get_bearer_token() extracts it (None when absent).
get_current_principal() requires any live session: HTTP 401 otherwise.
require_roles(*roles) builds a dependency that also enforces the role set:
  HTTP 401 without a session, HTTP 403 with the wrong role.

All of them go through AuthenticationService.verify_user(), the single
authorization gate; this module only translates its exceptions to HTTP.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. Nothing else in auth/ does.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.exceptions import Forbidden, Unauthorized
from auth.models import Principal, Role
from auth.service import DEFAULT_ROLES, AuthenticationService


def get_auth_service(request: Request) -> AuthenticationService:
    return request.app.state.auth_service


def get_bearer_token(request: Request) -> str | None:
    """Return the bearer token from the Authorization header, or None."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def _verify(request: Request, roles: frozenset[Role]) -> Principal:
    service = get_auth_service(request)
    try:
        return service.verify_user(get_bearer_token(request), roles)
    except Unauthorized:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Forbidden:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Insufficient role."},
        )


def get_current_principal(request: Request) -> Principal:
    """Require a live session with any role.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    return _verify(request, DEFAULT_ROLES)


def require_roles(*roles: Role) -> Callable[[Request], Principal]:
    """Return a dependency that requires a live session with one of roles.

    Use as a FastAPI dependency:
        @router.post("/admin-only")
        def route(principal: Principal = Depends(require_roles(Role.ADMIN))): ...
    """
    allowed = frozenset(roles)

    def dependency(request: Request) -> Principal:
        return _verify(request, allowed)

    return dependency
