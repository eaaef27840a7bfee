"""
api/routes/v1/users.py -- Account lookups for authenticated callers.

Routes:
  GET /api/v1/users/me    -- the authenticated account
  GET /api/v1/users/{id}  -- any account's public fields

Both require a valid access token (any role). Responses are built from
Principal.public(); secret fields never reach this layer.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import PrincipalResponse
from auth.authorizer import ANY_ROLE
from auth.dependencies import require_roles
from auth.errors import NotFound
from auth.models import Principal
from auth.store import UserStore

router = APIRouter()


@router.get("/users/me", response_model=PrincipalResponse)
def get_me(principal: Principal = Depends(require_roles(ANY_ROLE))) -> PrincipalResponse:
    return PrincipalResponse.from_principal(principal)


@router.get("/users/{user_id}", response_model=PrincipalResponse)
def get_user(
    request: Request,
    user_id: int,
    principal: Principal = Depends(require_roles(ANY_ROLE)),
) -> PrincipalResponse:
    """Return a user's public fields by id. 404 if the id does not exist."""
    user_store: UserStore = request.app.state.user_store
    user = user_store.find_by_id(user_id)
    if user is None:
        raise NotFound()
    return PrincipalResponse.from_principal(user.public())
