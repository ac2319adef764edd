"""Project endpoints.

The project router combines:
- core.py: Project CRUD and slug lookup
- resources.py: Resource assignments (assign, list, available, update, unassign)
- imports.py: Batch import, import preview and export validation
"""

from fastapi import APIRouter

from .core import router as core_router
from .resources import router as resources_router
from .imports import router as imports_router

from ._common import get_project_or_404, unique_slug

router = APIRouter()

router.include_router(core_router)
router.include_router(resources_router)
router.include_router(imports_router)

__all__ = ["router", "get_project_or_404", "unique_slug"]
