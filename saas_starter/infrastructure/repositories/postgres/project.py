"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/project.py
============================================================
Class: PostgresProjectRepository

Responsibilities:
  - Parameterized SQL against `projects`, scoped on account_id by the ACL
    predicate (representative account-scoped resource)
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....domain.entities import Project, ProjectStatus
from ....domain.repositories import FindRequest
from ....identity.acl import Target
from ....identity.claims import Claims
from .base import PostgresStore


class PostgresProjectRepository(PostgresStore):
    _TABLE = "projects"
    _COLUMNS = (
        "id",
        "account_id",
        "name",
        "status",
        "created_at",
        "updated_at",
        "archived_at",
    )
    _SELECT = "id, account_id, name, status::text, created_at, updated_at, archived_at"
    _TARGET = Target.PROJECT

    @staticmethod
    def _row_to_project(row: tuple) -> Project:
        project_id, account_id, name, status, created_at, updated_at, archived_at = row
        return Project(
            id=project_id,
            account_id=account_id,
            name=name,
            status=ProjectStatus(status),
            created_at=created_at,
            updated_at=updated_at,
            archived_at=archived_at,
        )

    def find(self, claims: Claims, req: FindRequest) -> List[Project]:
        rows = self._select(
            claims,
            conditions=[],
            params=[],
            req=req,
            context_msg="PostgresProjectRepository: find failed",
        )
        return [self._row_to_project(r) for r in rows]

    def get(
        self, claims: Claims, project_id: UUID, *, include_archived: bool = False
    ) -> Optional[Project]:
        rows = self._select(
            claims,
            conditions=["id = %s"],
            params=[project_id],
            req=FindRequest(include_archived=include_archived, limit=1),
            context_msg="PostgresProjectRepository: get failed",
        )
        return self._row_to_project(rows[0]) if rows else None

    def insert(self, project: Project) -> Project:
        row = self._fetchone(
            query=f"""
                INSERT INTO projects (
                    id, account_id, name, status, created_at, updated_at, archived_at
                )
                VALUES (%s, %s, %s, %s::project_status_t, %s, %s, %s)
                RETURNING {self._SELECT}
            """,
            params=(
                project.id,
                project.account_id,
                project.name,
                project.status.value,
                project.created_at,
                project.updated_at,
                project.archived_at,
            ),
            context_msg="PostgresProjectRepository: insert failed",
            extra={"project_id": str(project.id), "account_id": str(project.account_id)},
        )
        return self._row_to_project(row)

    def update(self, project: Project) -> Project:
        row = self._fetchone_required(
            query=f"""
                UPDATE projects
                SET name = %s, status = %s::project_status_t,
                    updated_at = %s, archived_at = %s
                WHERE id = %s
                RETURNING {self._SELECT}
            """,
            params=(
                project.name,
                project.status.value,
                project.updated_at,
                project.archived_at,
                project.id,
            ),
            context_msg="PostgresProjectRepository: update failed",
            extra={"project_id": str(project.id)},
        )
        return self._row_to_project(row)

    def archive(self, project_id: UUID, now: datetime) -> None:
        self._execute(
            query="UPDATE projects SET archived_at = %s, updated_at = %s WHERE id = %s",
            params=(now, now, project_id),
            context_msg="PostgresProjectRepository: archive failed",
            extra={"project_id": str(project_id)},
        )

    def delete(self, project_id: UUID) -> None:
        self._execute(
            query="DELETE FROM projects WHERE id = %s",
            params=(project_id,),
            context_msg="PostgresProjectRepository: delete failed",
            extra={"project_id": str(project_id)},
        )

    def delete_by_account(self, account_id: UUID) -> int:
        return self._execute(
            query="DELETE FROM projects WHERE account_id = %s",
            params=(account_id,),
            context_msg="PostgresProjectRepository: delete_by_account failed",
            extra={"account_id": str(account_id)},
        )
