"""
Name: Project Routes

Endpoints:
  GET    /v1/projects
  POST   /v1/projects
  GET    /v1/projects/{id}
  PATCH  /v1/projects
  PATCH  /v1/projects/archive
  DELETE /v1/projects/{id}
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from ...application.services import ProjectService
from ...application.validation import ProjectCreateRequest, ProjectUpdateRequest
from ...container import get_project_service
from ...crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from ...domain.repositories import FindRequest
from ...identity.claims import Claims
from ..dependencies import find_request, require_claims
from ..schemas import IdBody, ProjectOut

router = APIRouter(prefix="/projects", tags=["projects"], responses=OPENAPI_ERROR_RESPONSES)


@router.get("", response_model=List[ProjectOut])
def find_projects(
    req: FindRequest = Depends(find_request),
    claims: Claims = Depends(require_claims),
    service: ProjectService = Depends(get_project_service),
):
    return [ProjectOut.model_validate(p) for p in service.find(claims, req)]


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(
    req: ProjectCreateRequest,
    claims: Claims = Depends(require_claims),
    service: ProjectService = Depends(get_project_service),
):
    return ProjectOut.model_validate(service.create(claims, req))


@router.patch("", status_code=status.HTTP_204_NO_CONTENT)
def update_project(
    req: ProjectUpdateRequest,
    claims: Claims = Depends(require_claims),
    service: ProjectService = Depends(get_project_service),
):
    service.update(claims, req)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/archive", status_code=status.HTTP_204_NO_CONTENT)
def archive_project(
    req: IdBody,
    claims: Claims = Depends(require_claims),
    service: ProjectService = Depends(get_project_service),
):
    service.archive(claims, req.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}", response_model=ProjectOut)
def read_project(
    project_id: str,
    include_archived: bool = Query(False),
    claims: Claims = Depends(require_claims),
    service: ProjectService = Depends(get_project_service),
):
    return ProjectOut.model_validate(
        service.read(claims, project_id, include_archived=include_archived)
    )


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: str,
    claims: Claims = Depends(require_claims),
    service: ProjectService = Depends(get_project_service),
):
    service.delete(claims, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
