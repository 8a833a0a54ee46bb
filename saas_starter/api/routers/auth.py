"""
Name: Auth Routes

Responsibilities:
  - POST /v1/signup (no auth)
  - POST /v1/oauth/token (HTTP Basic email:password, optional account_id/scope)
  - PATCH /v1/users/switch-account/{account_id}
  - POST /v1/users/virtual-login, POST /v1/users/virtual-logout (admin
    impersonation)
  - Password reset request/confirm, invitation send/accept

Constraints:
  - Thin adapters: parse, call the use case, shape the response
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ...application.usecases import (
    AuthenticateUseCase,
    ImpersonateUseCase,
    InviteUseCase,
    PasswordResetUseCase,
    SignupUseCase,
    SwitchAccountUseCase,
)
from ...application.validation import (
    ImpersonateRequest,
    InviteSendRequest,
    PasswordResetRequest,
    SignupRequest,
)
from ...container import (
    get_authenticate_use_case,
    get_impersonate_use_case,
    get_invite_use_case,
    get_password_reset_use_case,
    get_signup_use_case,
    get_switch_account_use_case,
)
from ...crosscutting.config import get_settings
from ...crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from ...identity.claims import Claims
from ..dependencies import basic_credentials, require_claims
from ..schemas import (
    AccountOut,
    InviteAcceptBody,
    InviteAcceptOut,
    InviteOut,
    MembershipOut,
    PasswordResetConfirmBody,
    PasswordResetOut,
    SignupOut,
    TokenOut,
    UserOut,
)

router = APIRouter(tags=["auth"], responses=OPENAPI_ERROR_RESPONSES)


@router.post("/signup", response_model=SignupOut, status_code=status.HTTP_201_CREATED)
def signup(
    req: SignupRequest,
    use_case: SignupUseCase = Depends(get_signup_use_case),
):
    result = use_case.execute(req)
    return SignupOut(
        account=AccountOut.model_validate(result.account),
        user=UserOut.model_validate(result.user),
    )


@router.post("/oauth/token", response_model=TokenOut)
def token(
    credentials: tuple[str, str] = Depends(basic_credentials),
    account_id: Optional[UUID] = Query(None),
    scope: Optional[str] = Query(None, description="Space separated roles"),
    use_case: AuthenticateUseCase = Depends(get_authenticate_use_case),
):
    email, password = credentials
    result = use_case.execute(
        email,
        password,
        get_settings().session_ttl,
        account_id=account_id,
        scopes=(scope or "").split(),
    )
    return TokenOut(token=result.token, expires_at=result.claims.expires_at)


@router.patch("/users/switch-account/{account_id}", response_model=TokenOut)
def switch_account(
    account_id: str,
    claims: Claims = Depends(require_claims),
    use_case: SwitchAccountUseCase = Depends(get_switch_account_use_case),
):
    result = use_case.execute(claims, account_id, get_settings().session_ttl)
    return TokenOut(token=result.token, expires_at=result.claims.expires_at)


@router.post("/users/virtual-login", response_model=TokenOut)
def virtual_login(
    req: ImpersonateRequest,
    scope: Optional[str] = Query(None, description="Space separated roles"),
    claims: Claims = Depends(require_claims),
    use_case: ImpersonateUseCase = Depends(get_impersonate_use_case),
):
    result = use_case.login(
        claims, req, get_settings().session_ttl, scopes=(scope or "").split()
    )
    return TokenOut(token=result.token, expires_at=result.claims.expires_at)


@router.post("/users/virtual-logout", response_model=TokenOut)
def virtual_logout(
    claims: Claims = Depends(require_claims),
    use_case: ImpersonateUseCase = Depends(get_impersonate_use_case),
):
    result = use_case.logout(claims, get_settings().session_ttl)
    return TokenOut(token=result.token, expires_at=result.claims.expires_at)


@router.post(
    "/users/password-reset",
    response_model=PasswordResetOut,
    status_code=status.HTTP_202_ACCEPTED,
)
def request_password_reset(
    req: PasswordResetRequest,
    use_case: PasswordResetUseCase = Depends(get_password_reset_use_case),
):
    reset_hash = use_case.request(req.model_dump())
    if get_settings().is_production:
        return PasswordResetOut()
    return PasswordResetOut(reset_hash=reset_hash)


@router.post("/users/password-reset/{reset_hash}", response_model=UserOut)
def confirm_password_reset(
    reset_hash: str,
    body: PasswordResetConfirmBody,
    use_case: PasswordResetUseCase = Depends(get_password_reset_use_case),
):
    user = use_case.confirm({"reset_hash": reset_hash, **body.model_dump()})
    return UserOut.model_validate(user)


@router.post(
    "/users/invite",
    response_model=List[InviteOut],
    status_code=status.HTTP_201_CREATED,
)
def send_invites(
    req: InviteSendRequest,
    claims: Claims = Depends(require_claims),
    use_case: InviteUseCase = Depends(get_invite_use_case),
):
    results = use_case.send(claims, req)
    # R: invite hashes are echoed to the inviter only outside production
    echo = not get_settings().is_production
    return [
        InviteOut(
            email=r.email, user_id=r.user_id, invite_hash=r.invite_hash if echo else None
        )
        for r in results
    ]


@router.post("/users/invite/{invite_hash}", response_model=InviteAcceptOut)
def accept_invite(
    invite_hash: str,
    body: InviteAcceptBody,
    use_case: InviteUseCase = Depends(get_invite_use_case),
):
    result = use_case.accept({"invite_hash": invite_hash, **body.model_dump()})
    return InviteAcceptOut(
        user=UserOut.model_validate(result.user),
        membership=MembershipOut.model_validate(result.membership),
    )
