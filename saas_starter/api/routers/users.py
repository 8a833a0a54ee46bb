"""
Name: User Routes

Endpoints:
  GET    /v1/users
  POST   /v1/users
  GET    /v1/users/{id}
  PATCH  /v1/users
  PATCH  /v1/users/password
  PATCH  /v1/users/archive
  DELETE /v1/users/{id}
  GET    /v1/accounts/{account_id}/users
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from ...application.services import UserService
from ...application.validation import (
    UserCreateRequest,
    UserUpdatePasswordRequest,
    UserUpdateRequest,
)
from ...container import get_user_service
from ...crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from ...domain.repositories import FindRequest
from ...identity.claims import Claims
from ..dependencies import find_request, require_claims
from ..schemas import IdBody, UserOut

router = APIRouter(tags=["users"], responses=OPENAPI_ERROR_RESPONSES)


@router.get("/users", response_model=List[UserOut])
def find_users(
    req: FindRequest = Depends(find_request),
    claims: Claims = Depends(require_claims),
    service: UserService = Depends(get_user_service),
):
    return [UserOut.model_validate(u) for u in service.find(claims, req)]


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    req: UserCreateRequest,
    claims: Claims = Depends(require_claims),
    service: UserService = Depends(get_user_service),
):
    return UserOut.model_validate(service.create(claims, req))


@router.patch("/users", status_code=status.HTTP_204_NO_CONTENT)
def update_user(
    req: UserUpdateRequest,
    claims: Claims = Depends(require_claims),
    service: UserService = Depends(get_user_service),
):
    service.update(claims, req)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/users/password", status_code=status.HTTP_204_NO_CONTENT)
def update_password(
    req: UserUpdatePasswordRequest,
    claims: Claims = Depends(require_claims),
    service: UserService = Depends(get_user_service),
):
    service.update_password(claims, req)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/users/archive", status_code=status.HTTP_204_NO_CONTENT)
def archive_user(
    req: IdBody,
    claims: Claims = Depends(require_claims),
    service: UserService = Depends(get_user_service),
):
    service.archive(claims, req.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/{user_id}", response_model=UserOut)
def read_user(
    user_id: str,
    include_archived: bool = Query(False),
    claims: Claims = Depends(require_claims),
    service: UserService = Depends(get_user_service),
):
    return UserOut.model_validate(
        service.read(claims, user_id, include_archived=include_archived)
    )


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    claims: Claims = Depends(require_claims),
    service: UserService = Depends(get_user_service),
):
    service.delete(claims, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/accounts/{account_id}/users", response_model=List[UserOut])
def find_users_by_account(
    account_id: str,
    include_archived: bool = Query(False),
    claims: Claims = Depends(require_claims),
    service: UserService = Depends(get_user_service),
):
    users = service.find_by_account(claims, account_id, include_archived=include_archived)
    return [UserOut.model_validate(u) for u in users]
