"""
api/routes/v1/auth.py -- End-user authentication endpoints.

Routes:
  POST /api/v1/auth/register   -- create role=user account; returns first session
  POST /api/v1/auth/login      -- email/password login; returns access + refresh tokens
  POST /api/v1/auth/logout     -- clears the stored refresh hash (requires auth)
  POST /api/v1/auth/refresh    -- rotate refresh token; returns a new pair
  GET  /api/v1/auth/profile    -- current account (requires auth)
  GET  /api/v1/auth/verify     -- access token validity check (requires auth)

Security:
  Rate limits (settings): register 3/min, login 5/min, refresh 10/min per IP.
  Authenticator.validate() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on every response that carries tokens.
  Handlers are plain `def` so bcrypt and signing run in FastAPI's threadpool
  instead of blocking the event loop.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter, login_limit, refresh_limit, register_limit
from api.models import (
    LoginRequest,
    MessageResponse,
    PrincipalResponse,
    RefreshRequest,
    RegisterRequest,
    SessionResponse,
    TokenPairResponse,
    VerifyResponse,
)
from auth.authenticator import Authenticator
from auth.dependencies import get_current_principal, get_token_claims, verify_refresh_token
from auth.models import Principal, TokenClaims
from auth.sessions import SessionManager

# Auth policy:
# - POST /auth/register:  public
# - POST /auth/login:     public
# - POST /auth/refresh:   refresh token in body (signature/expiry/kind, then stored hash)
# - POST /auth/logout:    requires access token
# - GET  /auth/profile:   requires access token
# - GET  /auth/verify:    requires access token
router = APIRouter()


@router.post("/auth/register", response_model=SessionResponse, status_code=201)
@limiter.limit(register_limit)
def register(request: Request, response: Response, body: RegisterRequest) -> SessionResponse:
    """Register a new user account and open its first session. 409 on duplicate email/username."""
    sessions: SessionManager = request.app.state.sessions
    session = sessions.register(body.username, body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return SessionResponse.from_session(session)


@router.post("/auth/login", response_model=SessionResponse)
@limiter.limit(login_limit)
def login(request: Request, response: Response, body: LoginRequest) -> SessionResponse:
    """Authenticate with email and password.

    Wrong email and wrong password produce the same 401 body.
    """
    authenticator: Authenticator = request.app.state.authenticator
    sessions: SessionManager = request.app.state.sessions
    principal = authenticator.validate(body.email, body.password)
    session = sessions.login(principal)
    response.headers["Cache-Control"] = "no-store"
    return SessionResponse.from_session(session)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, principal: Principal = Depends(get_current_principal)) -> MessageResponse:
    """Invalidate the refresh token. The access token expires naturally."""
    sessions: SessionManager = request.app.state.sessions
    sessions.logout(principal.id)
    return MessageResponse(message="Logged out successfully")


@router.post("/auth/refresh", response_model=TokenPairResponse)
@limiter.limit(refresh_limit)
def refresh(request: Request, response: Response, body: RefreshRequest) -> TokenPairResponse:
    """Exchange a refresh token for a new access/refresh pair.

    401 if the token fails signature, expiry, or kind checks. 403 if it is
    valid but no longer the account's current refresh token.
    """
    claims = verify_refresh_token(request, body.refresh_token)
    sessions: SessionManager = request.app.state.sessions
    pair = sessions.refresh(claims.user_id, body.refresh_token, admin=claims.admin, email=claims.email)
    response.headers["Cache-Control"] = "no-store"
    return TokenPairResponse.from_pair(pair)


@router.get("/auth/profile", response_model=PrincipalResponse)
def profile(principal: Principal = Depends(get_current_principal)) -> PrincipalResponse:
    """Return the authenticated account."""
    return PrincipalResponse.from_principal(principal)


@router.get("/auth/verify", response_model=VerifyResponse)
def verify(claims: TokenClaims = Depends(get_token_claims)) -> VerifyResponse:
    """Report that the presented access token is valid, with its claims."""
    return VerifyResponse(
        user_id=claims.user_id,
        email=claims.email,
        role=claims.role,
        expires_at=claims.expires_at,
    )
