"""
Schedule Module - API Endpoints

- Weekly templates (/templates): recurring slots and date-bounded overrides.
  Templates are deactivated, never deleted.
- Class instances (/classes): concrete dated classes generated from the
  templates, listed for members and cancelled by admins.
- Generation (/generate): materializes instances for the coming months.
"""

from fastapi import APIRouter

from app.api.v1.endpoints.schedule import classes, templates

router = APIRouter()

router.include_router(templates.router, prefix="/templates", tags=["schedule-templates"])
router.include_router(classes.router, prefix="/classes", tags=["classes"])
router.include_router(classes.generation_router, prefix="/generate", tags=["schedule-generation"])
