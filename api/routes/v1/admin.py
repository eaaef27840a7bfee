"""
api/routes/v1/admin.py -- Administrative authentication and account management.

Routes:
  POST   /api/v1/admin/auth/login             -- admin/super_admin login (public)
  POST   /api/v1/admin/auth/create-admin      -- create admin account (super_admin)
  GET    /api/v1/admin/auth/profile           -- current admin account (admin, super_admin)
  GET    /api/v1/admin/auth/users             -- list all accounts (admin, super_admin)
  DELETE /api/v1/admin/auth/users/{id}        -- delete account (super_admin)
  PATCH  /api/v1/admin/auth/users/{id}/role   -- change role (super_admin)

Security:
  Every protected route declares its RoleAuthorizer explicitly through
  require_roles(). The principal (and its role) is re-loaded from the store
  on every request, so a demotion takes effect on the next request even
  though the demoted account's access token still carries the old role.
  AdminAccountManager re-checks the store-backed role for every mutation.
  Admin login answers 401 for bad credentials and 403 only after the password
  was confirmed correct for a non-admin account.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import create_admin_limit, limiter, login_limit
from api.models import CreateAdminRequest, LoginRequest, MessageResponse, PrincipalResponse, RoleUpdate, SessionResponse
from auth.admin import AdminAccountManager
from auth.authorizer import ADMIN_ROLES, SUPER_ADMIN_ONLY
from auth.dependencies import require_roles
from auth.models import Principal

# Auth policy:
# - POST   /admin/auth/login:            public
# - POST   /admin/auth/create-admin:     SUPER_ADMIN_ONLY
# - GET    /admin/auth/profile:          ADMIN_ROLES
# - GET    /admin/auth/users:            ADMIN_ROLES
# - DELETE /admin/auth/users/{id}:       SUPER_ADMIN_ONLY
# - PATCH  /admin/auth/users/{id}/role:  SUPER_ADMIN_ONLY
router = APIRouter()


@router.post("/admin/auth/login", response_model=SessionResponse)
@limiter.limit(login_limit)
def admin_login(request: Request, response: Response, body: LoginRequest) -> SessionResponse:
    """Authenticate an admin or super_admin. Tokens carry the advisory admin marker."""
    admin_accounts: AdminAccountManager = request.app.state.admin_accounts
    session = admin_accounts.login_admin(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return SessionResponse.from_session(session)


@router.post("/admin/auth/create-admin", response_model=SessionResponse, status_code=201)
@limiter.limit(create_admin_limit)
def create_admin(
    request: Request,
    response: Response,
    body: CreateAdminRequest,
    requester: Principal = Depends(require_roles(SUPER_ADMIN_ONLY)),
) -> SessionResponse:
    """Create an admin (or super_admin) account and return its first session."""
    admin_accounts: AdminAccountManager = request.app.state.admin_accounts
    session = admin_accounts.create_admin(
        requester.role,
        username=body.username,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    response.headers["Cache-Control"] = "no-store"
    return SessionResponse.from_session(session)


@router.get("/admin/auth/profile", response_model=PrincipalResponse)
def admin_profile(principal: Principal = Depends(require_roles(ADMIN_ROLES))) -> PrincipalResponse:
    return PrincipalResponse.from_principal(principal)


@router.get("/admin/auth/users", response_model=list[PrincipalResponse])
def list_users(
    request: Request,
    principal: Principal = Depends(require_roles(ADMIN_ROLES)),
) -> list[PrincipalResponse]:
    """List every account. Secret fields are never selected from the store."""
    admin_accounts: AdminAccountManager = request.app.state.admin_accounts
    return [PrincipalResponse.from_principal(p) for p in admin_accounts.list_users()]


@router.delete("/admin/auth/users/{user_id}", response_model=MessageResponse)
def delete_user(
    request: Request,
    user_id: int,
    requester: Principal = Depends(require_roles(SUPER_ADMIN_ONLY)),
) -> MessageResponse:
    admin_accounts: AdminAccountManager = request.app.state.admin_accounts
    admin_accounts.delete_user(requester.role, user_id)
    return MessageResponse(message="User deleted successfully")


@router.patch("/admin/auth/users/{user_id}/role", response_model=PrincipalResponse)
def update_user_role(
    request: Request,
    user_id: int,
    body: RoleUpdate,
    requester: Principal = Depends(require_roles(SUPER_ADMIN_ONLY)),
) -> PrincipalResponse:
    """Change an account's role. The account's refresh token is revoked."""
    admin_accounts: AdminAccountManager = request.app.state.admin_accounts
    updated = admin_accounts.update_role(requester.role, user_id, body.role)
    return PrincipalResponse.from_principal(updated)
