"""
Feature Flags Admin Router

Endpoints:
- GET /admin/feature-flags - List flags
- PUT /admin/feature-flags/{name} - Enable or disable (creates the flag if missing)
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import AdminUser, get_current_admin_user
from vulcan.core.database import get_db
from vulcan.modules.audit.repository import record_event
from vulcan.modules.feature_flags import repository

logger = logging.getLogger(__name__)

router = APIRouter()


class FeatureFlagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    enabled: bool
    updated_at: datetime


class FeatureFlagUpdate(BaseModel):
    enabled: bool


@router.get("", response_model=list[FeatureFlagResponse], summary="List Feature Flags")
async def list_flags(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> list[FeatureFlagResponse]:
    return [FeatureFlagResponse.model_validate(f) for f in await repository.list_flags(db)]


@router.put("/{name}", response_model=FeatureFlagResponse, summary="Set Feature Flag")
async def update_flag(
    request: FeatureFlagUpdate,
    name: str = Path(..., pattern=r"^[a-z0-9_]+$"),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> FeatureFlagResponse:
    flag = await repository.set_enabled(db, name, request.enabled)
    await record_event(
        db,
        "feature_flag_updated",
        actor_id=admin.id,
        auditable=flag,
        metadata={"name": name, "enabled": request.enabled},
        commit=True,
    )
    logger.info(f"Admin {admin.id} set feature flag {name}={request.enabled}")
    return FeatureFlagResponse.model_validate(flag)
