"""Domain layer exports"""

from .entities import Account, Membership, Project, User
from .repositories import FindRequest

__all__ = ["Account", "Membership", "Project", "User", "FindRequest"]
