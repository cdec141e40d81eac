"""
Admin Users Router

Endpoints:
- GET /admin/users - Search and filter users
- GET /admin/users/{id} - User detail
- POST /admin/users/{id}/approve-vendor - Approve a vendor for voucher processing
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import AdminUser, get_current_admin_user
from vulcan.core.database import get_db
from vulcan.modules.audit.repository import record_event
from vulcan.modules.users.filters import UserFilterParams, UserFilterService
from vulcan.modules.users.models import UserRole
from vulcan.modules.users.repository import UserRepository
from vulcan.modules.users.schemas import UserDetail, UserListResponse, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found(user_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "USER_NOT_FOUND", "message": f"User {user_id} not found"},
    )


@router.get(
    "",
    response_model=UserListResponse,
    summary="List Users",
    description="""
Search and filter users.

- `q`: one word matches first name, last name or email; several words are
  matched as a full name first, then word by word
- `role`: admin (or administrator), evaluator, constituent, vendor, trainer
- `needs_review`: only accounts flagged as possible duplicates
- `relationship`: guardian or dependent
""",
)
async def list_users(
    q: str | None = Query(None, max_length=200),
    role: str | None = Query(None),
    needs_review: bool = Query(False),
    relationship: Literal["guardian", "dependent"] | None = Query(None),
    sort: str | None = Query(None),
    direction: Literal["asc", "desc"] = Query("asc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> UserListResponse:
    params = UserFilterParams(
        q=q,
        role=role,
        needs_review=needs_review,
        relationship=relationship,
        sort=sort,
        direction=direction,
        page=page,
        page_size=page_size,
    )
    result = await UserFilterService(db, params).apply()
    if result.failure:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "INTERNAL_ERROR", "message": result.message},
        )
    return UserListResponse(
        items=[UserSummary.model_validate(u) for u in result.data["users"]],
        total=result.data["total"],
        page=page,
        page_size=page_size,
        message=result.message,
    )


@router.get("/{user_id}", response_model=UserDetail, summary="Get User")
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> UserDetail:
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise _not_found(user_id)
    return UserDetail.model_validate(user)


@router.post(
    "/{user_id}/approve-vendor",
    response_model=UserDetail,
    summary="Approve Vendor",
    responses={404: {"description": "User not found"}, 422: {"description": "Not a vendor"}},
)
async def approve_vendor(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> UserDetail:
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise _not_found(user_id)
    if user.role != UserRole.VENDOR:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "NOT_A_VENDOR", "message": "Only vendor accounts can be approved"},
        )

    await record_event(
        db,
        "vendor_approved",
        actor_id=admin.id,
        auditable=user,
        metadata={"business_name": user.business_name},
    )
    user = await UserRepository.update(db, user, vendor_approved=True)
    logger.info(f"Admin {admin.id} approved vendor {user.id}")
    return UserDetail.model_validate(user)
