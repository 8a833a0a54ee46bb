"""R: In-memory `projects` table, scoped on account_id like the Postgres store."""

from __future__ import annotations

import copy
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....crosscutting.exceptions import ConflictError, FieldError, NotFoundError, ValidationError
from ....domain.entities import Project
from ....domain.repositories import FindRequest
from ....identity.acl import Target
from ....identity.claims import Claims
from .database import InMemoryDatabase, apply_find

_COLUMNS = (
    "id",
    "account_id",
    "name",
    "status",
    "created_at",
    "updated_at",
    "archived_at",
)


class InMemoryProjectRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def find(self, claims: Claims, req: FindRequest) -> List[Project]:
        with self._db.lock:
            return apply_find(
                self._db.projects.values(),
                claims,
                Target.PROJECT,
                self._db.memberships.values(),
                req,
                _COLUMNS,
            )

    def get(
        self, claims: Claims, project_id: UUID, *, include_archived: bool = False
    ) -> Optional[Project]:
        rows = self.find(
            claims,
            FindRequest(filters={"id": project_id}, include_archived=include_archived),
        )
        return rows[0] if rows else None

    def insert(self, project: Project) -> Project:
        with self._db.lock:
            if project.id in self._db.projects:
                raise ValidationError([FieldError(name="id", message="must be unique")])
            if project.account_id not in self._db.accounts:
                raise ConflictError(f"Referenced account {project.account_id} does not exist")
            self._db.projects[project.id] = copy.deepcopy(project)
            return copy.deepcopy(project)

    def update(self, project: Project) -> Project:
        with self._db.lock:
            if project.id not in self._db.projects:
                raise NotFoundError(f"Project {project.id} does not exist")
            self._db.projects[project.id] = copy.deepcopy(project)
            return copy.deepcopy(project)

    def archive(self, project_id: UUID, now: datetime) -> None:
        with self._db.lock:
            project = self._db.projects.get(project_id)
            if project is not None:
                project.archived_at = now
                project.updated_at = now

    def delete(self, project_id: UUID) -> None:
        with self._db.lock:
            self._db.projects.pop(project_id, None)

    def delete_by_account(self, account_id: UUID) -> int:
        with self._db.lock:
            doomed = [pid for pid, p in self._db.projects.items() if p.account_id == account_id]
            for pid in doomed:
                del self._db.projects[pid]
        return len(doomed)
