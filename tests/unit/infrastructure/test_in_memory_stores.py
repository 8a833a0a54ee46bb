"""
Name: In-Memory Store Tests

Responsibilities:
  - Same constraint behavior as Postgres: partial unique indexes, foreign
    keys, ON DELETE SET NULL
  - transaction() restores every table when the block raises
  - Stored rows are private copies
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from saas_starter.crosscutting.exceptions import ConflictError, NotFoundError, ValidationError
from saas_starter.domain.entities import (
    Account,
    Membership,
    MembershipRole,
    User,
)
from saas_starter.domain.repositories import FindRequest
from saas_starter.identity.claims import INTERNAL_CLAIMS

pytestmark = pytest.mark.unit


def _user(email="a@x.test", now=None) -> User:
    return User(
        id=uuid4(),
        name="A",
        email=email,
        password_salt="s",
        password_hash="h",
        created_at=now,
        updated_at=now,
    )


def _account(name="Acme", **kwargs) -> Account:
    return Account(id=uuid4(), name=name, **kwargs)


def _membership(user_id, account_id, now=None) -> Membership:
    return Membership(
        id=uuid4(),
        user_id=user_id,
        account_id=account_id,
        roles=[MembershipRole.USER],
        created_at=now,
        updated_at=now,
    )


class TestUniqueness:
    def test_live_email_is_unique(self, users_repo):
        users_repo.insert(_user())
        with pytest.raises(ValidationError) as exc_info:
            users_repo.insert(_user())
        assert exc_info.value.field_names() == ["email"]

    def test_archived_email_can_be_reused(self, users_repo, now):
        first = users_repo.insert(_user())
        users_repo.archive(first.id, now)

        users_repo.insert(_user())

        assert users_repo.email_taken("a@x.test")

    def test_one_live_membership_per_pair(self, users_repo, accounts_repo, memberships_repo):
        user = users_repo.insert(_user())
        account = accounts_repo.insert(_account())
        memberships_repo.insert(_membership(user.id, account.id))

        with pytest.raises(ValidationError):
            memberships_repo.insert(_membership(user.id, account.id))


class TestForeignKeys:
    def test_membership_requires_existing_parties(self, users_repo, memberships_repo):
        user = users_repo.insert(_user())
        with pytest.raises(ConflictError):
            memberships_repo.insert(_membership(user.id, uuid4()))

    def test_referenced_user_cannot_be_deleted(
        self, users_repo, accounts_repo, memberships_repo
    ):
        user = users_repo.insert(_user())
        account = accounts_repo.insert(_account())
        memberships_repo.insert(_membership(user.id, account.id))

        with pytest.raises(ConflictError):
            users_repo.delete(user.id)

    def test_deleting_user_nulls_signup_and_billing(self, users_repo, accounts_repo):
        user = users_repo.insert(_user())
        account = accounts_repo.insert(
            _account(signup_user_id=user.id, billing_user_id=user.id)
        )

        users_repo.delete(user.id)

        reloaded = accounts_repo.get(INTERNAL_CLAIMS, account.id)
        assert reloaded.signup_user_id is None
        assert reloaded.billing_user_id is None

    def test_update_of_missing_row_is_not_found(self, users_repo):
        with pytest.raises(NotFoundError):
            users_repo.update(_user())


class TestTransaction:
    def test_rollback_restores_all_tables(self, db, tx, users_repo, accounts_repo):
        kept = users_repo.insert(_user("kept@x.test"))

        with pytest.raises(RuntimeError):
            with tx.transaction():
                users_repo.insert(_user("lost@x.test"))
                accounts_repo.insert(_account())
                raise RuntimeError("boom")

        assert set(db.users) == {kept.id}
        assert db.accounts == {}

    def test_commit_keeps_changes(self, db, tx, users_repo):
        with tx.transaction():
            users_repo.insert(_user())
        assert len(db.users) == 1


class TestFind:
    def test_rows_are_copies(self, users_repo):
        user = users_repo.insert(_user())
        fetched = users_repo.get(INTERNAL_CLAIMS, user.id)
        fetched.name = "Mutated"

        assert users_repo.get(INTERNAL_CLAIMS, user.id).name == "A"

    def test_default_order_is_created_at_then_id(self, users_repo, now):
        later = users_repo.insert(_user("b@x.test", now + timedelta(seconds=1)))
        earlier = users_repo.insert(_user("a@x.test", now))

        rows = users_repo.find(INTERNAL_CLAIMS, FindRequest())
        assert [r.id for r in rows] == [earlier.id, later.id]

    def test_order_limit_offset(self, users_repo, now):
        for i, name in enumerate(["c", "a", "b"]):
            u = _user(f"{name}@x.test", now + timedelta(seconds=i))
            u.name = name
            users_repo.insert(u)

        rows = users_repo.find(
            INTERNAL_CLAIMS, FindRequest(order=("name desc",), limit=2, offset=1)
        )
        assert [r.name for r in rows] == ["b", "a"]

    def test_raw_where_is_postgres_only(self, users_repo):
        with pytest.raises(NotImplementedError):
            users_repo.find(INTERNAL_CLAIMS, FindRequest(where="name = %s", args=("A",)))

    def test_list_for_user_skips_archived_and_orders_by_created_at(
        self, users_repo, accounts_repo, memberships_repo, now
    ):
        user = users_repo.insert(_user())
        first = accounts_repo.insert(_account("First"))
        second = accounts_repo.insert(_account("Second"))
        gone = accounts_repo.insert(_account("Gone"))
        memberships_repo.insert(_membership(user.id, second.id, now + timedelta(seconds=2)))
        memberships_repo.insert(_membership(user.id, first.id, now))
        archived = memberships_repo.insert(_membership(user.id, gone.id, now))
        memberships_repo.archive(archived.id, now)

        rows = memberships_repo.list_for_user(user.id)
        assert [m.account_id for m in rows] == [first.id, second.id]
