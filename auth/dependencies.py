"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and authorization.

Request pipeline for protected routes:
  1. Authorization: Bearer <token> is read from the request.
  2. TokenIssuer.verify(token, ACCESS) checks signature, expiry, and kind.
  3. The principal is re-loaded from the store by the token's subject. A
     deleted account stops authenticating immediately, and the role used for
     authorization is the stored one, not the claim.
  4. require_roles(authorizer) applies the route's RoleAuthorizer.

Steps 1-3 fail with Unauthorized (401); step 4 fails with Forbidden (403).

Services live on app.state (built in api/main.py lifespan):
  user_store, token_issuer, sessions, admin_accounts.

Layer rule: no imports from api/. This module may import from fastapi
because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.authorizer import RoleAuthorizer
from auth.errors import Unauthorized
from auth.models import Principal, TokenClaims, TokenKind


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_token_claims(request: Request) -> TokenClaims:
    """Require a valid access token. Raises Unauthorized if absent or invalid."""
    token = _bearer_token(request)
    if token is None:
        raise Unauthorized("Authentication required.")
    return request.app.state.token_issuer.verify(token, TokenKind.ACCESS)


def get_current_principal(request: Request) -> Principal:
    """Require authentication and return the store-backed, sanitized principal.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    claims = get_token_claims(request)
    principal = request.app.state.user_store.find_by_id(claims.user_id)
    # The email claim pins the token to the account it was issued to.
    if principal is None or principal.email != claims.email:
        raise Unauthorized("Authentication required.")
    return principal.public()


def require_roles(authorizer: RoleAuthorizer) -> Callable[[Request], Principal]:
    """Build a dependency that authenticates, then admits only authorizer's roles.

    Use as a FastAPI dependency:
        @router.get("/admin-only")
        def route(principal: Principal = Depends(require_roles(ADMIN_ROLES))): ...
    """

    def dependency(request: Request) -> Principal:
        principal = get_current_principal(request)
        authorizer.check(principal.role)
        return principal

    dependency.__name__ = f"require_roles_{'_'.join(sorted(r.value for r in authorizer.allowed))}"
    return dependency


def verify_refresh_token(request: Request, token: str) -> TokenClaims:
    """Run a body-supplied refresh token through signature, expiry, and kind checks.

    Must pass before SessionManager.refresh() binds the token to the stored hash.
    """
    return request.app.state.token_issuer.verify(token, TokenKind.REFRESH)
