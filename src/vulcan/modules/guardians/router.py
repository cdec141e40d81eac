"""
Guardian Relationship Router

Endpoints:
- GET /guardians/dependents - Dependents of the signed-in guardian
- POST /guardians/dependents - Add a dependent (existing user or new profile)
- GET /guardians/guardians - Guardians of the signed-in user
- DELETE /guardians/relationships/{id} - Remove a relationship
- POST /admin/guardian-relationships - Admin links a guardian and dependent
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import CurrentUser, get_current_admin_user, get_current_user
from vulcan.core.database import get_db
from vulcan.modules.guardians import service
from vulcan.modules.guardians.schemas import (
    AdminGuardianRelationshipCreate,
    GuardianRelationshipCreate,
    GuardianRelationshipResponse,
)
from vulcan.modules.guardians.service import GuardianServiceError

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


def _handle_service_error(e: GuardianServiceError) -> None:
    raise HTTPException(
        status_code=e.status_code,
        detail={"error": e.error_code, "message": e.message},
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
    )


@router.get(
    "/dependents",
    response_model=list[GuardianRelationshipResponse],
    summary="List My Dependents",
)
async def list_my_dependents(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> list[GuardianRelationshipResponse]:
    relationships = await service.list_dependents(db, user.id)
    return [GuardianRelationshipResponse.model_validate(r) for r in relationships]


@router.post(
    "/dependents",
    response_model=GuardianRelationshipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Dependent",
    description="""
Link a dependent to the signed-in guardian.

Pass `dependent_id` to link an existing account, or a `dependent` profile
to create a new dependent account.

**Errors:**
- 404: dependent not found
- 409: the relationship already exists
- 422: a user cannot be their own guardian
""",
)
async def add_dependent(
    request: GuardianRelationshipCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> GuardianRelationshipResponse:
    try:
        relationship = await service.create_relationship(
            db,
            guardian_id=user.id,
            relationship_type=request.relationship_type,
            actor_id=user.id,
            dependent_id=request.dependent_id,
            dependent_data=request.dependent,
        )
        return GuardianRelationshipResponse.model_validate(relationship)
    except GuardianServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error adding dependent for {user.id}: {e}")
        raise _internal_error() from e


@router.get(
    "/guardians",
    response_model=list[GuardianRelationshipResponse],
    summary="List My Guardians",
)
async def list_my_guardians(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> list[GuardianRelationshipResponse]:
    relationships = await service.list_guardians(db, user.id)
    return [GuardianRelationshipResponse.model_validate(r) for r in relationships]


@router.delete(
    "/relationships/{relationship_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove Guardian Relationship",
)
async def remove_relationship(
    relationship_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.delete_relationship(db, relationship_id, user.id, is_admin=user.is_admin)
    except GuardianServiceError as e:
        _handle_service_error(e)


@admin_router.post(
    "",
    response_model=GuardianRelationshipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Guardian Relationship (Admin)",
)
async def admin_create_relationship(
    request: AdminGuardianRelationshipCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> GuardianRelationshipResponse:
    try:
        relationship = await service.create_relationship(
            db,
            guardian_id=request.guardian_id,
            relationship_type=request.relationship_type,
            actor_id=admin.id,
            dependent_id=request.dependent_id,
            dependent_data=request.dependent,
        )
        logger.info(f"Admin {admin.id} created guardian relationship {relationship.id}")
        return GuardianRelationshipResponse.model_validate(relationship)
    except GuardianServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error creating guardian relationship: {e}")
        raise _internal_error() from e
