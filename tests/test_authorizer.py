"""Unit tests for auth/authorizer.py -- RoleAuthorizer decisions."""

import pytest

from auth.authorizer import ADMIN_ROLES, ANY_ROLE, SUPER_ADMIN_ONLY, RoleAuthorizer
from auth.errors import Forbidden
from auth.models import Role


@pytest.mark.parametrize(
    ("authorizer", "role", "admitted"),
    [
        (ANY_ROLE, Role.USER, True),
        (ANY_ROLE, Role.SUPER_ADMIN, True),
        (ADMIN_ROLES, Role.USER, False),
        (ADMIN_ROLES, Role.ADMIN, True),
        (ADMIN_ROLES, Role.SUPER_ADMIN, True),
        (SUPER_ADMIN_ONLY, Role.USER, False),
        (SUPER_ADMIN_ONLY, Role.ADMIN, False),
        (SUPER_ADMIN_ONLY, Role.SUPER_ADMIN, True),
    ],
)
def test_admits_iff_role_in_set(authorizer: RoleAuthorizer, role: Role, admitted: bool) -> None:
    assert authorizer.admits(role) is admitted


def test_check_raises_forbidden() -> None:
    with pytest.raises(Forbidden) as exc:
        SUPER_ADMIN_ONLY.check(Role.ADMIN)
    assert exc.value.status_code == 403


def test_check_passes_silently() -> None:
    assert ADMIN_ROLES.check(Role.ADMIN) is None


def test_membership_not_hierarchy() -> None:
    """An explicit set admits exactly its members, even below a higher role."""
    users_only = RoleAuthorizer({Role.USER})
    assert users_only.admits(Role.USER)
    assert not users_only.admits(Role.SUPER_ADMIN)


def test_accepts_raw_strings() -> None:
    authorizer = RoleAuthorizer(["admin"])
    assert authorizer.admits("admin")
    assert not authorizer.admits("root")


def test_empty_set_refused() -> None:
    with pytest.raises(ValueError):
        RoleAuthorizer([])


def test_role_order() -> None:
    assert Role.SUPER_ADMIN.at_least(Role.ADMIN)
    assert Role.ADMIN.at_least(Role.USER)
    assert not Role.USER.at_least(Role.ADMIN)
    assert sorted(Role, key=lambda r: r.rank) == [Role.USER, Role.ADMIN, Role.SUPER_ADMIN]
