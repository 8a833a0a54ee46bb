"""
Name: Account Routes

Endpoints:
  GET    /v1/accounts
  POST   /v1/accounts
  GET    /v1/accounts/{id}
  PATCH  /v1/accounts
  PATCH  /v1/accounts/archive
  DELETE /v1/accounts/{id}
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from ...application.services import AccountService
from ...application.validation import AccountCreateRequest, AccountUpdateRequest
from ...container import get_account_service
from ...crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from ...domain.repositories import FindRequest
from ...identity.claims import Claims
from ..dependencies import find_request, require_claims
from ..schemas import AccountOut, IdBody

router = APIRouter(prefix="/accounts", tags=["accounts"], responses=OPENAPI_ERROR_RESPONSES)


@router.get("", response_model=List[AccountOut])
def find_accounts(
    req: FindRequest = Depends(find_request),
    claims: Claims = Depends(require_claims),
    service: AccountService = Depends(get_account_service),
):
    return [AccountOut.model_validate(a) for a in service.find(claims, req)]


@router.post("", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def create_account(
    req: AccountCreateRequest,
    claims: Claims = Depends(require_claims),
    service: AccountService = Depends(get_account_service),
):
    return AccountOut.model_validate(service.create(claims, req))


@router.patch("", status_code=status.HTTP_204_NO_CONTENT)
def update_account(
    req: AccountUpdateRequest,
    claims: Claims = Depends(require_claims),
    service: AccountService = Depends(get_account_service),
):
    service.update(claims, req)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/archive", status_code=status.HTTP_204_NO_CONTENT)
def archive_account(
    req: IdBody,
    claims: Claims = Depends(require_claims),
    service: AccountService = Depends(get_account_service),
):
    service.archive(claims, req.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{account_id}", response_model=AccountOut)
def read_account(
    account_id: str,
    include_archived: bool = Query(False),
    claims: Claims = Depends(require_claims),
    service: AccountService = Depends(get_account_service),
):
    return AccountOut.model_validate(
        service.read(claims, account_id, include_archived=include_archived)
    )


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: str,
    claims: Claims = Depends(require_claims),
    service: AccountService = Depends(get_account_service),
):
    service.delete(claims, account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
