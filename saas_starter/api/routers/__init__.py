"""HTTP routers (mounted under /v1)"""

from fastapi import APIRouter

from .accounts import router as accounts_router
from .auth import router as auth_router
from .memberships import router as memberships_router
from .projects import router as projects_router
from .users import router as users_router

router = APIRouter()
# R: auth first so /users/switch-account and /users/invite win over /users/{id}
router.include_router(auth_router)
router.include_router(users_router)
router.include_router(accounts_router)
router.include_router(memberships_router)
router.include_router(projects_router)

__all__ = ["router"]
