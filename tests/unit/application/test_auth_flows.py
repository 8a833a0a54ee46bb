"""
Name: Auth Flow Tests (signup, login, switch, password reset, invitations)
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from saas_starter.application.usecases import narrow_roles
from saas_starter.crosscutting.exceptions import (
    AuthenticationFailure,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from saas_starter.domain.entities import (
    AccountStatus,
    MembershipRole,
    MembershipStatus,
)
from saas_starter.identity.claims import INTERNAL_CLAIMS
from saas_starter.identity.passwords import verify_password

from factories import PASSWORD, SESSION_TTL, signup_payload

pytestmark = pytest.mark.unit


# ============================================================================
# Signup
# ============================================================================


class TestSignup:
    def test_structural_errors_are_reported_per_field(self, signup_use_case, now):
        payload = signup_payload("Acme")
        payload["user"]["email"] = "not-an-email"
        payload["user"]["password_confirm"] = "different"
        del payload["account"]["name"]

        with pytest.raises(ValidationError) as exc_info:
            signup_use_case.execute(payload, now)

        assert set(exc_info.value.field_names()) == {
            "account.name",
            "user.email",
            "user.password_confirm",
        }

    def test_uniqueness_errors_name_both_fields(self, make_tenant, signup_use_case, now):
        make_tenant("Acme")

        with pytest.raises(ValidationError) as exc_info:
            signup_use_case.execute(signup_payload("Acme"), now)

        assert set(exc_info.value.field_names()) == {"user.email", "account.name"}

    def test_email_race_reports_user_email(
        self, make_tenant, signup_use_case, user_service, db, monkeypatch, now
    ):
        make_tenant("Acme")
        # R: a concurrent signup slips past the pre-check; the store still refuses
        monkeypatch.setattr(user_service, "ensure_unique_email", lambda email, exclude_id=None: None)
        payload = signup_payload("Other")
        payload["user"]["email"] = signup_payload("Acme")["user"]["email"]

        with pytest.raises(ValidationError) as exc_info:
            signup_use_case.execute(payload, now)

        assert exc_info.value.field_names() == ["user.email"]
        assert len(db.users) == 1 and len(db.accounts) == 1

    def test_account_name_race_reports_account_name(
        self, make_tenant, signup_use_case, account_service, db, monkeypatch, now
    ):
        make_tenant("Acme")
        monkeypatch.setattr(account_service, "ensure_unique_name", lambda name, exclude_id=None: None)
        payload = signup_payload("Acme")
        payload["user"]["email"] = "fresh@x.test"

        with pytest.raises(ValidationError) as exc_info:
            signup_use_case.execute(payload, now)

        assert exc_info.value.field_names() == ["account.name"]
        assert len(db.users) == 1 and len(db.accounts) == 1

    def test_failure_mid_signup_leaves_nothing_behind(
        self, signup_use_case, memberships_repo, db, monkeypatch, now
    ):
        def boom(membership):
            raise RuntimeError("membership insert failed")

        monkeypatch.setattr(memberships_repo, "insert", boom)

        with pytest.raises(RuntimeError):
            signup_use_case.execute(signup_payload("Acme"), now)

        assert db.users == {} and db.accounts == {} and db.memberships == {}


# ============================================================================
# Authenticate
# ============================================================================


class TestAuthenticate:
    def test_wrong_password_and_unknown_email_look_the_same(self, make_tenant, authenticate, now):
        tenant = make_tenant("Acme")

        with pytest.raises(AuthenticationFailure) as wrong:
            authenticate.execute(tenant.user.email, "nope", SESSION_TTL, now)
        with pytest.raises(AuthenticationFailure) as unknown:
            authenticate.execute("ghost@x.test", PASSWORD, SESSION_TTL, now)

        assert type(wrong.value) is type(unknown.value)
        assert wrong.value.message == unknown.value.message

    def test_email_is_normalized(self, make_tenant, login):
        tenant = make_tenant("Acme")
        assert login("  ACME@X.TEST ").subject == tenant.user.id

    def test_expiry_is_now_plus_session_ttl(self, make_tenant, authenticate, now):
        tenant = make_tenant("Acme")
        result = authenticate.execute(tenant.user.email, PASSWORD, SESSION_TTL, now)
        assert result.claims.expires_at - result.claims.issued_at == SESSION_TTL

    def test_inactive_account_is_skipped_for_default_audience(
        self, make_tenant, membership_service, account_service, login, now
    ):
        home = make_tenant("Home")
        other = make_tenant("Other")
        membership_service.add(
            INTERNAL_CLAIMS,
            {"user_id": other.user.id, "account_id": home.account.id, "roles": ["user"]},
            now + timedelta(seconds=1),
        )
        account_service.update(
            INTERNAL_CLAIMS, {"id": other.account.id, "status": "disabled"}, now
        )

        claims = login(other.user.email)
        assert claims.audience == home.account.id
        assert set(claims.account_ids) == {home.account.id, other.account.id}

    def test_requested_account_must_be_usable(self, make_tenant, login):
        tenant = make_tenant("Acme")
        make_tenant("Other")

        assert login(tenant.user.email, account_id=tenant.account.id).audience == tenant.account.id
        with pytest.raises(AuthenticationFailure):
            login(tenant.user.email, account_id=uuid4())

    def test_no_active_membership_fails(self, make_tenant, account_service, login, now):
        tenant = make_tenant("Acme")
        account_service.update(
            INTERNAL_CLAIMS, {"id": tenant.account.id, "status": "pending"}, now
        )
        with pytest.raises(AuthenticationFailure):
            login(tenant.user.email)

    def test_scopes_narrow_roles(self, make_tenant, login):
        tenant = make_tenant("Acme")
        assert login(tenant.user.email, scopes=["user"]).roles == (MembershipRole.USER,)
        assert login(tenant.user.email).roles == (MembershipRole.ADMIN,)


class TestNarrowRoles:
    def test_no_scopes_keeps_granted_roles(self):
        assert narrow_roles([MembershipRole.USER], []) == [MembershipRole.USER]

    def test_ungranted_or_unknown_scope_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            narrow_roles([MembershipRole.USER], ["admin"])
        with pytest.raises(ForbiddenError):
            narrow_roles([MembershipRole.ADMIN], ["root"])

    def test_duplicates_collapse(self):
        assert narrow_roles([MembershipRole.ADMIN], ["admin", "admin", "user"]) == [
            MembershipRole.ADMIN,
            MembershipRole.USER,
        ]


# ============================================================================
# Switch account
# ============================================================================


class TestSwitchAccount:
    def test_target_outside_account_ids_fails(self, make_tenant, login, switch_account, now):
        tenant = make_tenant("Acme")
        other = make_tenant("Other")
        claims = login(tenant.user.email)

        with pytest.raises(AuthenticationFailure):
            switch_account.execute(claims, other.account.id, SESSION_TTL, now)

    def test_revoked_membership_fails(
        self, make_tenant, login, membership_service, switch_account, now
    ):
        home = make_tenant("Home")
        other = make_tenant("Other")
        membership_service.add(
            INTERNAL_CLAIMS,
            {"user_id": home.user.id, "account_id": other.account.id, "roles": ["user"]},
            now + timedelta(seconds=1),
        )
        claims = login(home.user.email)
        membership_service.archive(
            INTERNAL_CLAIMS, {"user_id": home.user.id, "account_id": other.account.id}, now
        )

        with pytest.raises(AuthenticationFailure):
            switch_account.execute(claims, other.account.id, SESSION_TTL, now)

    def test_internal_claims_cannot_switch(self, switch_account, now):
        with pytest.raises(AuthenticationFailure):
            switch_account.execute(INTERNAL_CLAIMS, uuid4(), SESSION_TTL, now)


# ============================================================================
# Password reset
# ============================================================================


class TestPasswordReset:
    def _confirm(self, password_reset, reset_hash, now, password="n3w!Secret"):
        return password_reset.confirm(
            {"reset_hash": reset_hash, "password": password, "password_confirm": password},
            now,
        )

    def test_request_then_confirm(self, make_tenant, password_reset, login, now):
        tenant = make_tenant("Acme")
        reset_hash = password_reset.request(tenant.user.email, now=now)

        user = self._confirm(password_reset, reset_hash, now + timedelta(minutes=5))

        assert user.password_reset is None
        assert verify_password("n3w!Secret", user.password_salt, user.password_hash)
        assert login(tenant.user.email, "n3w!Secret").subject == tenant.user.id
        with pytest.raises(AuthenticationFailure):
            login(tenant.user.email)

    def test_unknown_email_returns_none(self, password_reset, now):
        assert password_reset.request("ghost@x.test", now=now) is None

    def test_hash_is_single_use(self, make_tenant, password_reset, now):
        tenant = make_tenant("Acme")
        reset_hash = password_reset.request(tenant.user.email, now=now)
        self._confirm(password_reset, reset_hash, now)

        with pytest.raises(ValidationError) as exc_info:
            self._confirm(password_reset, reset_hash, now)
        assert exc_info.value.field_names() == ["reset_hash"]

    def test_newer_request_supersedes_older_hash(self, make_tenant, password_reset, now):
        tenant = make_tenant("Acme")
        first = password_reset.request(tenant.user.email, now=now)
        password_reset.request(tenant.user.email, now=now)

        with pytest.raises(ValidationError):
            self._confirm(password_reset, first, now)

    def test_expired_hash_is_rejected(self, make_tenant, password_reset, now):
        tenant = make_tenant("Acme")
        reset_hash = password_reset.request(
            tenant.user.email, ttl=timedelta(minutes=1), now=now
        )
        with pytest.raises(ValidationError):
            self._confirm(password_reset, reset_hash, now + timedelta(minutes=2))

    def test_update_password_requires_self_or_admin(
        self, make_tenant, login, user_service, membership_service, now
    ):
        first = make_tenant("First")
        second = make_tenant("Second")
        claims = login(first.user.email)
        body = {"id": first.user.id, "password": "n3w!Secret", "password_confirm": "n3w!Secret"}

        updated = user_service.update_password(claims, body, now)
        assert verify_password("n3w!Secret", updated.password_salt, updated.password_hash)

        with pytest.raises(NotFoundError):
            user_service.update_password(claims, {**body, "id": second.user.id}, now)


# ============================================================================
# Invitations
# ============================================================================


class TestInvite:
    def _send(self, invite, claims, account_id, emails, now, roles=("user",)):
        return invite.send(
            claims,
            {"account_id": account_id, "emails": list(emails), "roles": list(roles)},
            now=now,
        )

    def _accept(self, invite, invite_hash, now, name="Invitee"):
        return invite.accept(
            {
                "invite_hash": invite_hash,
                "name": name,
                "password": PASSWORD,
                "password_confirm": PASSWORD,
                "timezone": "America/Juneau",
            },
            now,
        )

    def test_invite_new_user_then_accept(self, make_tenant, login, invite, users_repo, now):
        tenant = make_tenant("Acme")
        admin = login(tenant.user.email)

        sent = self._send(invite, admin, tenant.account.id, ["new@x.test"], now)
        assert [r.email for r in sent] == ["new@x.test"]

        with pytest.raises(AuthenticationFailure):
            login("new@x.test")

        result = self._accept(invite, sent[0].invite_hash, now)
        assert result.membership.status == MembershipStatus.ACTIVE
        assert result.user.name == "Invitee"
        assert result.user.timezone == "America/Juneau"

        claims = login("new@x.test")
        assert claims.audience == tenant.account.id
        assert claims.roles == (MembershipRole.USER,)

    def test_invited_user_has_no_usable_password(self, make_tenant, login, invite, users_repo, now):
        tenant = make_tenant("Acme")
        self._send(invite, login(tenant.user.email), tenant.account.id, ["new@x.test"], now)

        invited = users_repo.get_by_email("new@x.test")
        assert invited is not None and not invited.has_password

    def test_invite_cannot_replace_a_foreign_users_password(
        self, make_tenant, login, invite, users_repo, memberships_repo, now
    ):
        victim = make_tenant("Victim")
        intruder = make_tenant("Intruder")
        sent = self._send(
            invite, login(intruder.user.email), intruder.account.id, [victim.user.email], now
        )

        with pytest.raises(ValidationError) as exc_info:
            invite.accept(
                {
                    "invite_hash": sent[0].invite_hash,
                    "name": "Taken Over",
                    "password": "n3w!Secret",
                    "password_confirm": "n3w!Secret",
                },
                now,
            )
        assert exc_info.value.field_names() == ["invite_hash"]

        user = users_repo.get_by_email(victim.user.email)
        assert user.name == victim.user.name
        assert user.password_hash == victim.user.password_hash
        with pytest.raises(AuthenticationFailure):
            login(victim.user.email, "n3w!Secret")
        assert login(victim.user.email).audience == victim.account.id
        pending = memberships_repo.get_by_pair(victim.user.id, intruder.account.id)
        assert pending.status == MembershipStatus.INVITED

    def test_existing_user_accepts_with_own_password(
        self, make_tenant, login, invite, users_repo, now
    ):
        home = make_tenant("Home")
        other = make_tenant("Other")
        sent = self._send(invite, login(other.user.email), other.account.id, [home.user.email], now)

        result = self._accept(invite, sent[0].invite_hash, now, name="Ignored")

        assert result.membership.status == MembershipStatus.ACTIVE
        assert result.user.name == home.user.name
        assert users_repo.get_by_email(home.user.email).password_hash == home.user.password_hash
        assert login(home.user.email, account_id=other.account.id).audience == other.account.id

    def test_existing_active_member_is_skipped(self, make_tenant, login, invite, now):
        tenant = make_tenant("Acme")
        admin = login(tenant.user.email)

        sent = self._send(invite, admin, tenant.account.id, [tenant.user.email, "x@x.test"], now)
        assert [r.email for r in sent] == ["x@x.test"]

    def test_hash_cannot_be_accepted_twice(self, make_tenant, login, invite, now):
        tenant = make_tenant("Acme")
        sent = self._send(invite, login(tenant.user.email), tenant.account.id, ["n@x.test"], now)
        self._accept(invite, sent[0].invite_hash, now)

        with pytest.raises(ValidationError) as exc_info:
            self._accept(invite, sent[0].invite_hash, now)
        assert exc_info.value.field_names() == ["invite_hash"]

    def test_non_admin_cannot_invite(self, make_tenant, login, invite, membership_service, db, now):
        tenant = make_tenant("Acme")
        sent = self._send(invite, login(tenant.user.email), tenant.account.id, ["m@x.test"], now)
        self._accept(invite, sent[0].invite_hash, now)
        member = login("m@x.test")
        users_before = len(db.users)

        with pytest.raises(ForbiddenError):
            self._send(invite, member, tenant.account.id, ["later@x.test"], now)
        assert len(db.users) == users_before

    def test_foreign_account_is_not_found(self, make_tenant, login, invite, now):
        tenant = make_tenant("Acme")
        other = make_tenant("Other")

        with pytest.raises(NotFoundError):
            self._send(invite, login(tenant.user.email), other.account.id, ["n@x.test"], now)

    def test_expired_invite_is_rejected(self, make_tenant, login, invite, now):
        tenant = make_tenant("Acme")
        sent = invite.send(
            login(tenant.user.email),
            {"account_id": tenant.account.id, "emails": ["n@x.test"], "roles": ["user"]},
            ttl=timedelta(hours=1),
            now=now,
        )
        with pytest.raises(ValidationError):
            self._accept(invite, sent[0].invite_hash, now + timedelta(hours=2))

    def test_invited_account_is_not_a_login_target(self, make_tenant, login, invite, now):
        tenant = make_tenant("Acme")
        other = make_tenant("Other")
        self._send(invite, login(other.user.email), other.account.id, [tenant.user.email], now)

        claims = login(tenant.user.email)
        assert claims.audience == tenant.account.id
        with pytest.raises(AuthenticationFailure):
            login(tenant.user.email, account_id=other.account.id)

    def test_account_status_default_is_pending_outside_signup(self, account_service, now):
        account = account_service.create(INTERNAL_CLAIMS, {"name": "Solo"}, now)
        assert account.status == AccountStatus.PENDING
