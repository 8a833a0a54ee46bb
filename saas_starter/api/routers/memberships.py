"""
Name: Membership Routes (users_accounts)

Endpoints:
  GET    /v1/user_accounts
  POST   /v1/user_accounts
  GET    /v1/user_accounts/{user_id}/{account_id}
  PATCH  /v1/user_accounts
  PATCH  /v1/user_accounts/archive
  DELETE /v1/user_accounts
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from ...application.services import MembershipService
from ...application.validation import (
    MembershipCreateRequest,
    MembershipKeyRequest,
    MembershipUpdateRequest,
    parse_id,
)
from ...container import get_membership_service
from ...crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from ...domain.repositories import FindRequest
from ...identity.claims import Claims
from ..dependencies import find_request, require_claims
from ..schemas import MembershipOut

router = APIRouter(
    prefix="/user_accounts", tags=["user_accounts"], responses=OPENAPI_ERROR_RESPONSES
)


@router.get("", response_model=List[MembershipOut])
def find_memberships(
    req: FindRequest = Depends(find_request),
    claims: Claims = Depends(require_claims),
    service: MembershipService = Depends(get_membership_service),
):
    return [MembershipOut.model_validate(m) for m in service.find(claims, req)]


@router.post("", response_model=MembershipOut, status_code=status.HTTP_201_CREATED)
def create_membership(
    req: MembershipCreateRequest,
    claims: Claims = Depends(require_claims),
    service: MembershipService = Depends(get_membership_service),
):
    return MembershipOut.model_validate(service.add(claims, req))


@router.patch("", status_code=status.HTTP_204_NO_CONTENT)
def update_membership(
    req: MembershipUpdateRequest,
    claims: Claims = Depends(require_claims),
    service: MembershipService = Depends(get_membership_service),
):
    service.update(claims, req)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/archive", status_code=status.HTTP_204_NO_CONTENT)
def archive_membership(
    req: MembershipKeyRequest,
    claims: Claims = Depends(require_claims),
    service: MembershipService = Depends(get_membership_service),
):
    service.archive(claims, req)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_membership(
    req: MembershipKeyRequest,
    claims: Claims = Depends(require_claims),
    service: MembershipService = Depends(get_membership_service),
):
    service.delete(claims, req)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}/{account_id}", response_model=MembershipOut)
def read_membership(
    user_id: str,
    account_id: str,
    include_archived: bool = Query(False),
    claims: Claims = Depends(require_claims),
    service: MembershipService = Depends(get_membership_service),
):
    membership = service.read_pair(
        claims,
        parse_id(user_id, "user_id"),
        parse_id(account_id, "account_id"),
        include_archived=include_archived,
    )
    return MembershipOut.model_validate(membership)
