"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/database.py
============================================================
Class: InMemoryDatabase

Responsibilities:
  - Hold the in-memory "tables" shared by the in-memory stores
  - Provide transaction() with snapshot/rollback semantics so cascades
    (account archive, signup) are all-or-nothing in tests too
  - Emulate the Postgres constraints the services rely on (unique indexes,
    foreign keys) so both stores fail the same way

Constraints / Notes:
  - Thread-safe: one reentrant lock; a transaction holds it for its whole
    block (serialized writers are enough for tests / local dev)
  - Rows are stored as private copies; callers never alias stored objects
============================================================
"""

from __future__ import annotations

import copy
from contextlib import contextmanager
from datetime import datetime
from threading import RLock
from typing import Callable, Dict, Iterable, Iterator, List, Optional, TypeVar
from uuid import UUID

from ....crosscutting.exceptions import ValidationError
from ....domain.entities import Account, Membership, Project, User
from ....domain.repositories import FindRequest
from ....identity.acl import Target, is_visible
from ....identity.claims import Claims

T = TypeVar("T")

_TABLES = ("users", "accounts", "memberships", "projects")


class InMemoryDatabase:
    def __init__(self) -> None:
        self.lock = RLock()
        self.users: Dict[UUID, User] = {}
        self.accounts: Dict[UUID, Account] = {}
        self.memberships: Dict[UUID, Membership] = {}
        self.projects: Dict[UUID, Project] = {}

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """R: Snapshot all tables; restore them if the block raises."""
        with self.lock:
            snapshot = {name: copy.deepcopy(getattr(self, name)) for name in _TABLES}
            try:
                yield
            except BaseException:
                for name, table in snapshot.items():
                    setattr(self, name, table)
                raise


class InMemoryTransactionManager:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def transaction(self):
        return self._db.transaction()


# =========================================================
# Shared helpers for the in-memory stores
# =========================================================
def _sort_value(value: object) -> tuple:
    # R: NULLS LAST for ASC, like Postgres
    if value is None:
        return (1, "")
    if isinstance(value, datetime):
        return (0, value.timestamp())
    if hasattr(value, "value"):
        return (0, str(value.value))
    return (0, value if isinstance(value, (int, float)) else str(value))


def apply_find(
    rows: Iterable[T],
    claims: Claims,
    target: Target,
    memberships: Iterable[Membership],
    req: FindRequest,
    columns: tuple[str, ...],
    extra: Optional[Callable[[T], bool]] = None,
) -> List[T]:
    """
    R: Python equivalent of PostgresStore._select:
    filters -> archived filter -> ACL visibility -> ORDER BY -> OFFSET/LIMIT.
    """
    if req.where:
        raise NotImplementedError("Raw SQL where fragments require the Postgres store")

    memberships = list(memberships)
    result: List[T] = []
    for row in rows:
        if extra is not None and not extra(row):
            continue
        ok = True
        for column, value in req.filters.items():
            if column not in columns:
                raise ValidationError.single(column, "unknown filter column")
            current = getattr(row, column)
            current = getattr(current, "value", current)
            wanted = getattr(value, "value", value)
            if current != wanted:
                ok = False
                break
        if not ok:
            continue
        if not req.include_archived and getattr(row, "archived_at") is not None:
            continue
        if not is_visible(claims, target, row, memberships):
            continue
        result.append(row)

    order = list(req.order) or ["created_at asc", "id asc"]
    # R: stable multi-key sort, applied from the least significant key
    for item in reversed(order):
        tokens = item.strip().split()
        column = tokens[0] if tokens else ""
        direction = tokens[1].upper() if len(tokens) > 1 else "ASC"
        if column not in columns or direction not in ("ASC", "DESC") or len(tokens) > 2:
            raise ValidationError.single("order", f"invalid order clause: {item}")
        result.sort(
            key=lambda r, c=column: _sort_value(getattr(r, c)),
            reverse=direction == "DESC",
        )

    offset = max(int(req.offset or 0), 0)
    result = result[offset:]
    if req.limit is not None:
        result = result[: max(int(req.limit), 0)]
    return [copy.deepcopy(r) for r in result]
