"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Force the test environment (in-memory stores and keys, no .env)
  - Wire stores, key store, services and use cases around one
    InMemoryDatabase per test
  - Provide a signup factory for tenant scenarios

Notes:
  - Use @pytest.fixture(scope="function") for per-test isolation
  - `now` is a fixed instant with sub-millisecond noise so timestamp
    truncation is always exercised
"""

import os
from datetime import datetime, timedelta, timezone

os.environ["APP_ENV"] = "test"

import pytest  # noqa: E402
from cryptography.fernet import Fernet  # noqa: E402

from saas_starter.application.services import (  # noqa: E402
    AccountService,
    MembershipService,
    ProjectService,
    UserService,
)
from saas_starter.application.usecases import (  # noqa: E402
    AuthenticateUseCase,
    ImpersonateUseCase,
    InviteUseCase,
    PasswordResetUseCase,
    SignupUseCase,
    SwitchAccountUseCase,
)
from saas_starter.crosscutting import config as app_config  # noqa: E402
from saas_starter.identity.authenticator import Authenticator  # noqa: E402
from saas_starter.identity.keystore import KeyStore  # noqa: E402
from saas_starter.identity.one_time import OneTimeHashCodec  # noqa: E402
from saas_starter.infrastructure.keys import InMemoryKeySource  # noqa: E402
from saas_starter.infrastructure.repositories import (  # noqa: E402
    InMemoryAccountRepository,
    InMemoryDatabase,
    InMemoryMembershipRepository,
    InMemoryProjectRepository,
    InMemoryTransactionManager,
    InMemoryUserRepository,
)

app_config.Settings.model_config["env_file"] = None

from factories import KEY_EXPIRATION, PASSWORD, SESSION_TTL, signup_payload  # noqa: E402


def pytest_configure(config) -> None:
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (require Postgres)")


# ============================================================================
# Clock
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """R: Fixed instant with microseconds so truncation is observable."""
    return datetime(2026, 3, 14, 15, 9, 26, 535897, tzinfo=timezone.utc)


# ============================================================================
# Stores
# ============================================================================


@pytest.fixture
def db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def tx(db):
    return InMemoryTransactionManager(db)


@pytest.fixture
def users_repo(db):
    return InMemoryUserRepository(db)


@pytest.fixture
def accounts_repo(db):
    return InMemoryAccountRepository(db)


@pytest.fixture
def memberships_repo(db):
    return InMemoryMembershipRepository(db)


@pytest.fixture
def projects_repo(db):
    return InMemoryProjectRepository(db)


# ============================================================================
# Keys / tokens
# ============================================================================


@pytest.fixture
def key_source() -> InMemoryKeySource:
    return InMemoryKeySource()


@pytest.fixture
def key_store(key_source, now) -> KeyStore:
    return KeyStore(key_source, KEY_EXPIRATION, now=now)


@pytest.fixture
def authenticator(key_store) -> Authenticator:
    return Authenticator(key_store)


@pytest.fixture
def codec() -> OneTimeHashCodec:
    return OneTimeHashCodec(Fernet.generate_key())


# ============================================================================
# Services / use cases
# ============================================================================


@pytest.fixture
def user_service(users_repo, memberships_repo, tx) -> UserService:
    return UserService(users_repo, memberships_repo, tx)


@pytest.fixture
def account_service(accounts_repo, memberships_repo, projects_repo, tx) -> AccountService:
    return AccountService(accounts_repo, memberships_repo, projects_repo, tx)


@pytest.fixture
def membership_service(memberships_repo, users_repo, accounts_repo) -> MembershipService:
    return MembershipService(memberships_repo, users_repo, accounts_repo)


@pytest.fixture
def project_service(projects_repo, accounts_repo, memberships_repo) -> ProjectService:
    return ProjectService(projects_repo, accounts_repo, memberships_repo)


@pytest.fixture
def signup_use_case(user_service, account_service, membership_service, tx) -> SignupUseCase:
    return SignupUseCase(user_service, account_service, membership_service, tx)


@pytest.fixture
def authenticate(users_repo, memberships_repo, accounts_repo, authenticator):
    return AuthenticateUseCase(users_repo, memberships_repo, accounts_repo, authenticator)


@pytest.fixture
def switch_account(memberships_repo, authenticator) -> SwitchAccountUseCase:
    return SwitchAccountUseCase(memberships_repo, authenticator)


@pytest.fixture
def impersonate(users_repo, memberships_repo, accounts_repo, authenticator) -> ImpersonateUseCase:
    return ImpersonateUseCase(users_repo, memberships_repo, accounts_repo, authenticator)


@pytest.fixture
def password_reset(users_repo, user_service, codec) -> PasswordResetUseCase:
    return PasswordResetUseCase(users_repo, user_service, codec, timedelta(hours=1))


@pytest.fixture
def invite(
    users_repo,
    memberships_repo,
    user_service,
    account_service,
    membership_service,
    tx,
    codec,
) -> InviteUseCase:
    return InviteUseCase(
        users_repo,
        memberships_repo,
        user_service,
        account_service,
        membership_service,
        tx,
        codec,
        timedelta(days=7),
    )


# ============================================================================
# Tenant factories
# ============================================================================


@pytest.fixture
def make_tenant(signup_use_case, now):
    """R: Signup factory -> SignupResult(account, user, membership)."""

    def _make(tag: str):
        return signup_use_case.execute(signup_payload(tag), now)

    return _make


@pytest.fixture
def login(authenticate, now):
    """R: Password login -> Claims for the given email."""

    def _login(email: str, password: str = PASSWORD, **kwargs):
        return authenticate.execute(email, password, SESSION_TTL, now, **kwargs).claims

    return _login
