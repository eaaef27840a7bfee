"""Unit tests for auth/store.py -- UserStore persistence.

Covers:
- create assigns ids and returns the stored principal
- email lookups are case-insensitive; username/email uniqueness -> Conflict
- list_all never carries secret fields
- refresh-token hash slot: overwrite, clear, unknown id
- role update, delete, count_by_role, has_users, ping
"""

import pytest

from auth.errors import Conflict
from auth.models import Role
from auth.store import UserStore


class TestCreateAndFind:
    def test_create_assigns_id(self, store: UserStore) -> None:
        p = store.create("alice", "alice@x.com", "hash-1")
        assert p.id is not None
        assert p.role is Role.USER
        assert p.created_at and p.updated_at

    def test_find_by_email_and_id(self, store: UserStore) -> None:
        created = store.create("alice", "alice@x.com", "hash-1")
        by_email = store.find_by_email("alice@x.com")
        by_id = store.find_by_id(created.id)
        assert by_email == by_id
        assert by_email.password_hash == "hash-1"

    def test_email_is_normalized(self, store: UserStore) -> None:
        store.create("alice", "  Alice@X.com ", "hash-1")
        found = store.find_by_email("ALICE@x.COM")
        assert found is not None
        assert found.email == "alice@x.com"

    def test_find_by_username(self, store: UserStore) -> None:
        store.create("alice", "alice@x.com", "hash-1")
        assert store.find_by_username("alice").email == "alice@x.com"
        assert store.find_by_username("bob") is None

    def test_missing_lookups_return_none(self, store: UserStore) -> None:
        assert store.find_by_email("ghost@x.com") is None
        assert store.find_by_id(999) is None

    def test_duplicate_email_conflict(self, store: UserStore) -> None:
        store.create("alice", "alice@x.com", "hash-1")
        with pytest.raises(Conflict, match="Email"):
            store.create("alice2", "ALICE@x.com", "hash-2")

    def test_duplicate_username_conflict(self, store: UserStore) -> None:
        store.create("alice", "alice@x.com", "hash-1")
        with pytest.raises(Conflict, match="Username"):
            store.create("alice", "other@x.com", "hash-2")

    def test_create_with_role(self, store: UserStore) -> None:
        p = store.create("boss", "boss@x.com", "hash", Role.SUPER_ADMIN)
        assert store.find_by_id(p.id).role is Role.SUPER_ADMIN


class TestListAll:
    def test_list_all_has_no_secrets(self, store: UserStore) -> None:
        a = store.create("alice", "alice@x.com", "hash-1")
        store.create("bob", "bob@x.com", "hash-2", Role.ADMIN)
        store.update_refresh_token_hash(a.id, "rt-hash")
        users = store.list_all()
        assert [u.username for u in users] == ["alice", "bob"]
        assert all(u.password_hash is None and u.refresh_token_hash is None for u in users)

    def test_count_by_role(self, store: UserStore) -> None:
        store.create("a", "a@x.com", "h", Role.SUPER_ADMIN)
        store.create("b", "b@x.com", "h", Role.SUPER_ADMIN)
        store.create("c", "c@x.com", "h", Role.ADMIN)
        assert store.count_by_role(Role.SUPER_ADMIN) == 2
        assert store.count_by_role(Role.ADMIN) == 1
        assert store.count_by_role(Role.USER) == 0

    def test_has_users_and_ping(self, store: UserStore) -> None:
        assert store.has_users() is False
        store.create("a", "a@x.com", "h")
        assert store.has_users() is True
        assert store.ping() is True


class TestMutations:
    def test_refresh_hash_overwrite_and_clear(self, store: UserStore) -> None:
        p = store.create("alice", "alice@x.com", "hash-1")
        assert store.find_by_id(p.id).refresh_token_hash is None
        assert store.update_refresh_token_hash(p.id, "first") is True
        assert store.update_refresh_token_hash(p.id, "second") is True
        assert store.find_by_id(p.id).refresh_token_hash == "second"
        assert store.update_refresh_token_hash(p.id, None) is True
        assert store.find_by_id(p.id).refresh_token_hash is None

    def test_refresh_hash_unknown_id(self, store: UserStore) -> None:
        assert store.update_refresh_token_hash(404, "x") is False

    def test_update_role(self, store: UserStore) -> None:
        p = store.create("alice", "alice@x.com", "hash-1")
        assert store.update_role(p.id, Role.ADMIN) is True
        assert store.find_by_id(p.id).role is Role.ADMIN
        assert store.update_role(404, Role.ADMIN) is False

    def test_delete(self, store: UserStore) -> None:
        p = store.create("alice", "alice@x.com", "hash-1")
        assert store.delete(p.id) is True
        assert store.find_by_id(p.id) is None
        assert store.delete(p.id) is False

    def test_ids_not_reused_after_delete(self, store: UserStore) -> None:
        store.create("alice", "alice@x.com", "hash-1")
        victim = store.create("victim", "victim@x.com", "hash-2")
        store.delete(victim.id)
        newcomer = store.create("newbie", "newbie@x.com", "hash-3")
        assert newcomer.id > victim.id


class TestRefreshHashCompareAndSwap:
    def test_matching_expected_hash_swaps(self, store: UserStore) -> None:
        p = store.create("alice", "alice@x.com", "hash-1")
        store.update_refresh_token_hash(p.id, "first")
        assert store.update_refresh_token_hash(p.id, "second", expected_hash="first") is True
        assert store.find_by_id(p.id).refresh_token_hash == "second"

    def test_stale_expected_hash_changes_nothing(self, store: UserStore) -> None:
        p = store.create("alice", "alice@x.com", "hash-1")
        store.update_refresh_token_hash(p.id, "first")
        store.update_refresh_token_hash(p.id, "second", expected_hash="first")
        assert store.update_refresh_token_hash(p.id, "third", expected_hash="first") is False
        assert store.find_by_id(p.id).refresh_token_hash == "second"


class TestLastSuperAdminGuard:
    def test_guarded_delete_refuses_last_super_admin(self, store: UserStore) -> None:
        root = store.create("root", "root@x.com", "h", Role.SUPER_ADMIN)
        assert store.delete(root.id, keep_last_super_admin=True) is False
        assert store.find_by_id(root.id) is not None

    def test_guarded_delete_allows_one_of_two(self, store: UserStore) -> None:
        first = store.create("root", "root@x.com", "h", Role.SUPER_ADMIN)
        second = store.create("root2", "root2@x.com", "h", Role.SUPER_ADMIN)
        assert store.delete(first.id, keep_last_super_admin=True) is True
        assert store.delete(second.id, keep_last_super_admin=True) is False
        assert store.count_by_role(Role.SUPER_ADMIN) == 1

    def test_guarded_delete_ignores_other_roles(self, store: UserStore) -> None:
        store.create("root", "root@x.com", "h", Role.SUPER_ADMIN)
        alice = store.create("alice", "alice@x.com", "h")
        assert store.delete(alice.id, keep_last_super_admin=True) is True

    def test_guarded_demotion_refuses_last_super_admin(self, store: UserStore) -> None:
        root = store.create("root", "root@x.com", "h", Role.SUPER_ADMIN)
        assert store.update_role(root.id, Role.ADMIN, keep_last_super_admin=True) is False
        assert store.find_by_id(root.id).role is Role.SUPER_ADMIN

    def test_unguarded_delete_removes_last_super_admin(self, store: UserStore) -> None:
        root = store.create("root", "root@x.com", "h", Role.SUPER_ADMIN)
        assert store.delete(root.id) is True
