"""
Administrative API routes.

Provides maintenance endpoints that repair data across all users.
"""
import logging
from typing import Dict
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...database.maintenance import repair_projects
from ...database.storage import Storage
from ...auth.dependencies import get_current_admin_user, get_storage, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


class RepairResponse(BaseModel):
    """Project repair result schema."""
    message: str = Field(..., description="Response message")
    stats: Dict[str, int] = Field(..., description="users_processed, projects_created, tasks_migrated")


# PUBLIC_INTERFACE
@router.post("/fix-projects", response_model=RepairResponse,
            summary="Repair projects",
            description="Give every user a personal project and move orphan tasks into it (admin only).")
async def fix_projects(
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    logger.info("Project repair started by admin %s", current_user.user_id)
    stats = repair_projects(storage)
    return RepairResponse(message="Projects repaired successfully", stats=stats)
