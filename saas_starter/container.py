"""
Name: Dependency Injection Container

Responsibilities:
  - Wire stores, key store, authenticator, services and use cases
  - Pick in-memory stores and an in-memory key source in the test env
  - Provide factory functions consumed by FastAPI Depends()

Collaborators:
  - crosscutting.config.get_settings
  - infrastructure.repositories (Postgres / in-memory stores)
  - infrastructure.keys (file, Secrets Manager, in-memory key sources)
  - application.services / application.usecases

Constraints:
  - Manual DI (no library like dependency-injector)
  - Singletons via functools.lru_cache
  - The core never reads the environment; everything arrives via Settings

Notes:
  - This is the composition root (where dependencies are wired)
  - reset_container() clears every singleton (tests)
"""

from functools import lru_cache

from cryptography.fernet import Fernet

from .application.services import (
    AccountService,
    MembershipService,
    ProjectService,
    UserService,
)
from .application.usecases import (
    AuthenticateUseCase,
    ImpersonateUseCase,
    InviteUseCase,
    PasswordResetUseCase,
    SignupUseCase,
    SwitchAccountUseCase,
)
from .crosscutting.config import get_settings
from .crosscutting.exceptions import KeyStoreError
from .crosscutting.logger import logger
from .domain.repositories import (
    AccountRepository,
    MembershipRepository,
    ProjectRepository,
    TransactionManager,
    UserRepository,
)
from .identity.authenticator import Authenticator
from .identity.keystore import KeySource, KeyStore
from .identity.one_time import OneTimeHashCodec
from .infrastructure.db import PostgresTransactionManager
from .infrastructure.keys import FileKeySource, InMemoryKeySource, SecretsManagerKeySource
from .infrastructure.repositories import (
    InMemoryAccountRepository,
    InMemoryDatabase,
    InMemoryMembershipRepository,
    InMemoryProjectRepository,
    InMemoryTransactionManager,
    InMemoryUserRepository,
    PostgresAccountRepository,
    PostgresMembershipRepository,
    PostgresProjectRepository,
    PostgresUserRepository,
)


def _is_test_env() -> bool:
    return get_settings().is_test


# =========================================================
# Stores
# =========================================================
@lru_cache
def get_in_memory_database() -> InMemoryDatabase:
    return InMemoryDatabase()


@lru_cache
def get_transaction_manager() -> TransactionManager:
    if _is_test_env():
        return InMemoryTransactionManager(get_in_memory_database())
    return PostgresTransactionManager()


@lru_cache
def get_user_repository() -> UserRepository:
    """R: Get singleton instance of the users store."""
    if _is_test_env():
        return InMemoryUserRepository(get_in_memory_database())
    return PostgresUserRepository()


@lru_cache
def get_account_repository() -> AccountRepository:
    if _is_test_env():
        return InMemoryAccountRepository(get_in_memory_database())
    return PostgresAccountRepository()


@lru_cache
def get_membership_repository() -> MembershipRepository:
    if _is_test_env():
        return InMemoryMembershipRepository(get_in_memory_database())
    return PostgresMembershipRepository()


@lru_cache
def get_project_repository() -> ProjectRepository:
    if _is_test_env():
        return InMemoryProjectRepository(get_in_memory_database())
    return PostgresProjectRepository()


# =========================================================
# Keys / tokens
# =========================================================
@lru_cache
def get_key_source() -> KeySource:
    """
    R: File key wins, then Secrets Manager. In the test env (or a local dev
    run without either) keys live in memory and die with the process.
    """
    settings = get_settings()
    if settings.auth_key_file:
        return FileKeySource(settings.auth_key_file)
    if settings.auth_secret_id:
        return SecretsManagerKeySource(settings.auth_secret_id, region=settings.aws_region)
    if settings.is_test or settings.app_env == "development":
        if not settings.is_test:
            logger.warning("No signing key source configured; using ephemeral in-memory keys")
        return InMemoryKeySource()
    raise KeyStoreError("AUTH_KEY_FILE or AUTH_SECRET_ID must be configured")


@lru_cache
def get_key_store() -> KeyStore:
    return KeyStore(get_key_source(), get_settings().key_expiration)


@lru_cache
def get_authenticator() -> Authenticator:
    return Authenticator(get_key_store())


@lru_cache
def get_one_time_codec() -> OneTimeHashCodec:
    settings = get_settings()
    secret = settings.one_time_secret
    if not secret:
        if settings.is_production:
            raise ValueError("ONE_TIME_SECRET must be configured in production")
        logger.warning("ONE_TIME_SECRET not set; reset/invite hashes will not survive a restart")
        secret = Fernet.generate_key().decode("ascii")
    return OneTimeHashCodec(secret)


# =========================================================
# Services
# =========================================================
@lru_cache
def get_user_service() -> UserService:
    return UserService(
        get_user_repository(), get_membership_repository(), get_transaction_manager()
    )


@lru_cache
def get_account_service() -> AccountService:
    return AccountService(
        get_account_repository(),
        get_membership_repository(),
        get_project_repository(),
        get_transaction_manager(),
    )


@lru_cache
def get_membership_service() -> MembershipService:
    return MembershipService(
        get_membership_repository(), get_user_repository(), get_account_repository()
    )


@lru_cache
def get_project_service() -> ProjectService:
    return ProjectService(
        get_project_repository(), get_account_repository(), get_membership_repository()
    )


# =========================================================
# Use cases
# =========================================================
def get_signup_use_case() -> SignupUseCase:
    return SignupUseCase(
        users=get_user_service(),
        accounts=get_account_service(),
        memberships=get_membership_service(),
        tx=get_transaction_manager(),
    )


def get_authenticate_use_case() -> AuthenticateUseCase:
    return AuthenticateUseCase(
        users=get_user_repository(),
        memberships=get_membership_repository(),
        accounts=get_account_repository(),
        authenticator=get_authenticator(),
    )


def get_switch_account_use_case() -> SwitchAccountUseCase:
    return SwitchAccountUseCase(
        memberships=get_membership_repository(),
        authenticator=get_authenticator(),
    )


def get_impersonate_use_case() -> ImpersonateUseCase:
    return ImpersonateUseCase(
        users=get_user_repository(),
        memberships=get_membership_repository(),
        accounts=get_account_repository(),
        authenticator=get_authenticator(),
    )


def get_password_reset_use_case() -> PasswordResetUseCase:
    return PasswordResetUseCase(
        users=get_user_repository(),
        user_service=get_user_service(),
        codec=get_one_time_codec(),
        ttl=get_settings().password_reset_ttl,
    )


def get_invite_use_case() -> InviteUseCase:
    return InviteUseCase(
        users=get_user_repository(),
        memberships=get_membership_repository(),
        user_service=get_user_service(),
        account_service=get_account_service(),
        membership_service=get_membership_service(),
        tx=get_transaction_manager(),
        codec=get_one_time_codec(),
        ttl=get_settings().invite_ttl,
    )


def reset_container() -> None:
    """R: Drop every cached singleton (settings included)."""
    for factory in (
        get_settings,
        get_in_memory_database,
        get_transaction_manager,
        get_user_repository,
        get_account_repository,
        get_membership_repository,
        get_project_repository,
        get_key_source,
        get_key_store,
        get_authenticator,
        get_one_time_codec,
        get_user_service,
        get_account_service,
        get_membership_service,
        get_project_service,
    ):
        factory.cache_clear()
