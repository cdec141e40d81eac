"""
Rejection Reasons Admin Router

Endpoints:
- GET /admin/rejection-reasons - Reasons grouped by proof type and code (en/es)
- PATCH /admin/rejection-reasons/{id} - Edit the reason text
- POST /admin/rejection-reasons/{id}/mark-synced - Clear the translation flag
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import AdminUser, get_current_admin_user
from vulcan.core.database import get_db
from vulcan.modules.rejection_reasons import service
from vulcan.modules.rejection_reasons.models import RejectionProofType
from vulcan.modules.rejection_reasons.schemas import (
    RejectionReasonGroup,
    RejectionReasonResponse,
    RejectionReasonUpdate,
)
from vulcan.modules.rejection_reasons.service import RejectionReasonServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_service_error(e: RejectionReasonServiceError) -> None:
    raise HTTPException(
        status_code=e.status_code,
        detail={"error": e.error_code, "message": e.message},
    )


@router.get("", response_model=list[RejectionReasonGroup], summary="List Rejection Reasons")
async def list_reasons(
    proof_type: RejectionProofType | None = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> list[RejectionReasonGroup]:
    groups = await service.list_grouped(db, proof_type)
    return [
        RejectionReasonGroup(
            proof_type=group["proof_type"],
            code=group["code"],
            en=RejectionReasonResponse.model_validate(group["en"]) if group["en"] else None,
            es=RejectionReasonResponse.model_validate(group["es"]) if group["es"] else None,
        )
        for group in groups
    ]


@router.patch(
    "/{reason_id}",
    response_model=RejectionReasonResponse,
    summary="Update Rejection Reason",
    description="""
Change the reason text. The previous text is kept and the version bumped;
the same reason in other locales is flagged as needing translation sync.
""",
)
async def update_reason(
    reason_id: UUID,
    request: RejectionReasonUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> RejectionReasonResponse:
    try:
        reason = await service.update_reason(db, reason_id, admin.id, body=request.body)
        return RejectionReasonResponse.model_validate(reason)
    except RejectionReasonServiceError as e:
        _handle_service_error(e)


@router.post(
    "/{reason_id}/mark-synced",
    response_model=RejectionReasonResponse,
    summary="Mark Rejection Reason Synced",
)
async def mark_synced(
    reason_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> RejectionReasonResponse:
    try:
        reason = await service.mark_synced(db, reason_id, admin.id)
        return RejectionReasonResponse.model_validate(reason)
    except RejectionReasonServiceError as e:
        _handle_service_error(e)
