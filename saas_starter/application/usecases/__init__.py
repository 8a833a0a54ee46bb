"""Application use cases"""

from .authenticate import AuthenticateUseCase, AuthResult, narrow_roles
from .impersonate import ImpersonateUseCase
from .invite import InviteAcceptResult, InviteResult, InviteUseCase
from .password_reset import PasswordResetUseCase
from .signup import SignupResult, SignupUseCase
from .switch_account import SwitchAccountUseCase

__all__ = [
    "AuthenticateUseCase",
    "AuthResult",
    "narrow_roles",
    "ImpersonateUseCase",
    "InviteUseCase",
    "InviteResult",
    "InviteAcceptResult",
    "PasswordResetUseCase",
    "SignupUseCase",
    "SignupResult",
    "SwitchAccountUseCase",
]
