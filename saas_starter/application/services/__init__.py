"""Application services (per-entity CRUD with ACL gates)"""

from .accounts import AccountService
from .memberships import MembershipService
from .projects import ProjectService
from .users import UserService

__all__ = ["AccountService", "MembershipService", "ProjectService", "UserService"]
