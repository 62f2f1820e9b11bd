"""
api/routes/v1/auth.py -- Session and user management REST endpoints.

Routes:
  POST /api/v1/auth/login   -- password login; returns a bearer token
  POST /api/v1/auth/logout  -- deletes the presented token; 200
  GET  /api/v1/auth/me      -- current principal (requires auth)
  POST /api/v1/auth/users   -- create user (admin only)

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  Wrong username and wrong password return the same "bad_credentials" error.
  Cache-Control: no-store on login responses.
  Logout only revokes the durable token; a cached validation may keep the
  token usable for up to TOKEN_CACHE_TTL_SECONDS afterwards.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_limit
from api.models import LoginRequest, LoginResponse, PrincipalResponse, UserCreate
from auth.dependencies import get_auth_service, get_bearer_token, get_current_principal, require_roles
from auth.models import Principal, Role
from auth.service import AuthenticationService

logger = logging.getLogger("sessionvault.api.auth")

# Auth policy:
# - POST /api/v1/auth/login:   public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:  public -- idempotent; revokes whatever token is presented
# - GET  /api/v1/auth/me:      requires auth (get_current_principal)
# - POST /api/v1/auth/users:   requires admin (require_roles(Role.ADMIN))
router = APIRouter()


@limiter.limit(login_limit)  # brute-force mitigation -- must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a new session token."""
    service: AuthenticationService = get_auth_service(request)
    session = service.login(body.username, body.password)
    if session is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            username=session.principal.username,
            role=session.principal.role.value,
            token=session.token,
            expires_in=service.settings.token_expire_seconds,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
def logout(request: Request) -> JSONResponse:
    """Revoke the bearer token, if any. Always succeeds."""
    token = get_bearer_token(request)
    if token:
        get_auth_service(request).logout(token)
    return JSONResponse(content={"message": "Logged out."})


@router.get("/auth/me", response_model=PrincipalResponse)
def me(principal: Principal = Depends(get_current_principal)) -> PrincipalResponse:
    return PrincipalResponse(username=principal.username, role=principal.role.value)


@router.post("/auth/users", response_model=PrincipalResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    admin: Principal = Depends(require_roles(Role.ADMIN)),
) -> PrincipalResponse:
    """Create a credential. 409 if the username already exists."""
    service = get_auth_service(request)
    try:
        service.create_user(Role(body.role.value), body.username, body.password)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail={"code": "username_taken", "message": "A user with that username already exists."},
        )
    logger.info("User %r created by %r", body.username, admin.username)
    return PrincipalResponse(username=body.username, role=body.role)
