"""
Name: ACL Predicate and Role Gate Tests

Responsibilities:
  - Check the SQL shape of the read predicate per target
  - Check the Python evaluation used by the in-memory stores
  - Check the admin gates for account-scoped mutations
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from saas_starter.crosscutting.exceptions import ForbiddenError
from saas_starter.domain.entities import Membership, MembershipRole
from saas_starter.identity import acl
from saas_starter.identity.acl import Target, read_predicate, visible_ids
from saas_starter.identity.claims import INTERNAL_CLAIMS, Claims

pytestmark = pytest.mark.unit

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _claims(*roles: MembershipRole, subject=None, audience=None) -> Claims:
    return Claims(
        subject=subject or uuid4(),
        audience=audience or uuid4(),
        roles=tuple(roles),
    )


def _membership(user_id, account_id, *roles, archived=False) -> Membership:
    return Membership(
        id=uuid4(),
        user_id=user_id,
        account_id=account_id,
        roles=list(roles) or [MembershipRole.USER],
        archived_at=NOW if archived else None,
    )


class TestReadPredicate:
    def test_internal_claims_have_no_predicate(self):
        for target in Target:
            assert read_predicate(INTERNAL_CLAIMS, target) is None

    def test_project_predicate_uses_subquery_on_account_id(self):
        claims = _claims(MembershipRole.USER)
        predicate = read_predicate(claims, Target.PROJECT)

        assert predicate.sql == (
            "account_id IN (SELECT account_id FROM users_accounts "
            "WHERE archived_at IS NULL AND (account_id = %s OR user_id = %s))"
        )
        assert predicate.params == (claims.audience, claims.subject)
        assert "JOIN" not in predicate.sql.upper()

    def test_user_predicate_also_admits_own_row(self):
        claims = _claims(MembershipRole.USER)
        predicate = read_predicate(claims, Target.USER)

        assert predicate.sql.startswith("(id IN (SELECT user_id FROM users_accounts")
        assert predicate.sql.endswith(" OR id = %s)")
        assert predicate.params == (claims.audience, claims.subject, claims.subject)

    def test_membership_predicate_projects_user_id(self):
        predicate = read_predicate(_claims(), Target.MEMBERSHIP)
        assert predicate.sql.startswith("user_id IN (SELECT user_id FROM users_accounts")

    def test_alias_prefixes_outer_column(self):
        predicate = read_predicate(_claims(), Target.ACCOUNT, alias="a")
        assert predicate.sql.startswith("a.id IN (SELECT account_id")

    def test_missing_audience_binds_null(self):
        claims = Claims(subject=uuid4())
        predicate = read_predicate(claims, Target.ACCOUNT)
        assert predicate.params == (None, claims.subject)


class TestVisibleIds:
    def test_internal_claims_are_unrestricted(self):
        assert visible_ids(INTERNAL_CLAIMS, Target.ACCOUNT, []) is None

    def test_accounts_visible_through_own_and_audience_memberships(self):
        me, other = uuid4(), uuid4()
        home, side, foreign = uuid4(), uuid4(), uuid4()
        rows = [
            _membership(me, home),
            _membership(me, side),
            _membership(other, foreign),
        ]
        claims = Claims(subject=me, audience=home)

        assert visible_ids(claims, Target.ACCOUNT, rows) == {home, side}

    def test_archived_memberships_do_not_grant_visibility(self):
        me, home = uuid4(), uuid4()
        rows = [_membership(me, home, archived=True)]
        claims = Claims(subject=me, audience=uuid4())

        assert visible_ids(claims, Target.ACCOUNT, rows) == set()

    def test_users_of_the_audience_account_are_visible(self):
        me, teammate, stranger = uuid4(), uuid4(), uuid4()
        home, foreign = uuid4(), uuid4()
        rows = [
            _membership(me, home),
            _membership(teammate, home),
            _membership(stranger, foreign),
        ]
        claims = Claims(subject=me, audience=home)

        assert visible_ids(claims, Target.USER, rows) == {me, teammate}

    def test_user_target_includes_self_without_memberships(self):
        me = uuid4()
        claims = Claims(subject=me, audience=uuid4())
        assert visible_ids(claims, Target.USER, []) == {me}


class TestAdminGate:
    def test_internal_claims_pass(self):
        acl.require_admin_membership(INTERNAL_CLAIMS, uuid4(), lambda u, a: None)

    def test_audience_account_uses_token_roles(self):
        account = uuid4()
        admin = _claims(MembershipRole.ADMIN, audience=account)
        user = _claims(MembershipRole.USER, audience=account)

        acl.ensure_can_modify_account(admin, account, lambda u, a: None)
        with pytest.raises(ForbiddenError):
            acl.ensure_can_modify_account(user, account, lambda u, a: None)

    def test_other_account_uses_membership_lookup(self):
        me, other_account = uuid4(), uuid4()
        claims = _claims(MembershipRole.USER, subject=me)
        admin_row = _membership(me, other_account, MembershipRole.ADMIN)

        acl.ensure_can_modify_project(claims, other_account, lambda u, a: admin_row)

        user_row = _membership(me, other_account, MembershipRole.USER)
        with pytest.raises(ForbiddenError):
            acl.ensure_can_modify_project(claims, other_account, lambda u, a: user_row)

    def test_archived_admin_membership_is_rejected(self):
        me, other_account = uuid4(), uuid4()
        claims = _claims(MembershipRole.ADMIN, subject=me)
        row = _membership(me, other_account, MembershipRole.ADMIN, archived=True)

        with pytest.raises(ForbiddenError):
            acl.ensure_can_modify_membership(claims, other_account, lambda u, a: row)

    def test_user_may_modify_self_but_not_others_without_admin(self):
        claims = _claims(MembershipRole.USER)
        acl.ensure_can_modify_user(claims, claims.subject)
        with pytest.raises(ForbiddenError):
            acl.ensure_can_modify_user(claims, uuid4())

    def test_create_gates_require_admin(self):
        acl.ensure_can_create_user(_claims(MembershipRole.ADMIN))
        acl.ensure_can_create_account(INTERNAL_CLAIMS)
        with pytest.raises(ForbiddenError):
            acl.ensure_can_create_account(_claims(MembershipRole.USER))
