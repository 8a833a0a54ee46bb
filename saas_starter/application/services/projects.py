"""
===============================================================================
SERVICE: Projects (representative account-scoped resource)
===============================================================================

Class:
    ProjectService

Responsibilities:
    - CRUD scoped by account through the ACL predicate
    - Every mutation requires admin in the project's account
===============================================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union
from uuid import UUID, uuid4

from ...crosscutting.exceptions import NotFoundError
from ...crosscutting.logger import logger
from ...domain.entities import Project, ProjectStatus, truncate_ms
from ...domain.repositories import (
    AccountRepository,
    FindRequest,
    MembershipRepository,
    ProjectRepository,
)
from ...identity import acl
from ...identity.claims import Claims
from ..validation import ProjectCreateRequest, ProjectUpdateRequest, parse_id, validate

Payload = Union[Mapping[str, Any], Any]


class ProjectService:
    def __init__(
        self,
        projects: ProjectRepository,
        accounts: AccountRepository,
        memberships: MembershipRepository,
    ) -> None:
        self._projects = projects
        self._accounts = accounts
        self._memberships = memberships

    def _admin_lookup(self, user_id: UUID, account_id: UUID):
        return self._memberships.get_by_pair(user_id, account_id)

    def find(self, claims: Claims, req: Optional[FindRequest] = None) -> List[Project]:
        return self._projects.find(claims, req or FindRequest())

    def read(
        self, claims: Claims, project_id: Any, *, include_archived: bool = False
    ) -> Project:
        pid = parse_id(project_id, "project_id")
        project = self._projects.get(claims, pid, include_archived=include_archived)
        if project is None:
            raise NotFoundError(f"Project {pid} not found")
        return project

    def create(
        self, claims: Claims, req: Payload, now: Optional[datetime] = None
    ) -> Project:
        data = validate(ProjectCreateRequest, req)
        if self._accounts.get(claims, data.account_id) is None:
            raise NotFoundError(f"Account {data.account_id} not found")
        acl.ensure_can_modify_project(claims, data.account_id, self._admin_lookup)

        now = truncate_ms(now)
        project = self._projects.insert(
            Project(
                id=uuid4(),
                account_id=data.account_id,
                name=data.name,
                status=data.status or ProjectStatus.ACTIVE,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(
            "Project created",
            extra={"project_id": str(project.id), "account_id": str(project.account_id)},
        )
        return project

    def update(
        self, claims: Claims, req: Payload, now: Optional[datetime] = None
    ) -> Project:
        data = validate(ProjectUpdateRequest, req)
        current = self.read(claims, data.id)
        acl.ensure_can_modify_project(claims, current.account_id, self._admin_lookup)

        changes = data.model_dump(exclude={"id"}, exclude_none=True)
        if not changes:
            return current
        return self._projects.update(replace(current, **changes, updated_at=truncate_ms(now)))

    def archive(self, claims: Claims, project_id: Any, now: Optional[datetime] = None) -> None:
        current = self.read(claims, project_id)
        acl.ensure_can_modify_project(claims, current.account_id, self._admin_lookup)
        self._projects.archive(current.id, truncate_ms(now))

    def delete(self, claims: Claims, project_id: Any) -> None:
        current = self.read(claims, project_id, include_archived=True)
        acl.ensure_can_modify_project(claims, current.account_id, self._admin_lookup)
        self._projects.delete(current.id)
