"""
Guardian Relationship Service

Guardians apply on behalf of dependents. This service links accounts,
creating the dependent's account when the guardian registers someone new.

Rules:
- guardian, dependent and relationship type are required
- a user cannot be their own guardian
- a guardian/dependent pair is linked at most once
"""

import logging
import uuid
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.audit.repository import record_event
from vulcan.modules.guardians import repository
from vulcan.modules.guardians.models import GuardianRelationship
from vulcan.modules.guardians.schemas import DependentCreate
from vulcan.modules.users.models import User, UserRole
from vulcan.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

DEPENDENT_EMAIL_DOMAIN = "dependents.mdmat.invalid"


class GuardianServiceError(Exception):
    """Base exception for guardian relationship errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class UserNotFoundError(GuardianServiceError):
    def __init__(self, user_id: UUID):
        super().__init__(
            message=f"User {user_id} not found",
            error_code="USER_NOT_FOUND",
            status_code=404,
        )


class RelationshipNotFoundError(GuardianServiceError):
    def __init__(self, relationship_id: UUID):
        super().__init__(
            message=f"Guardian relationship {relationship_id} not found",
            error_code="RELATIONSHIP_NOT_FOUND",
            status_code=404,
        )


class SelfGuardianError(GuardianServiceError):
    def __init__(self):
        super().__init__(
            message="A user cannot be their own guardian",
            error_code="SELF_GUARDIAN",
            status_code=422,
        )


class DuplicateRelationshipError(GuardianServiceError):
    def __init__(self):
        super().__init__(
            message="relationship already exists for this guardian and dependent",
            error_code="DUPLICATE_RELATIONSHIP",
            status_code=409,
        )


class NotRelationshipOwnerError(GuardianServiceError):
    def __init__(self):
        super().__init__(
            message="You can only manage your own dependents",
            error_code="NOT_RELATIONSHIP_OWNER",
            status_code=403,
        )


def dependent_placeholder_email() -> str:
    """System address for dependents who have no email of their own."""
    return f"dependent-{uuid.uuid4().hex[:12]}@{DEPENDENT_EMAIL_DOMAIN}"


async def _create_dependent_user(db: AsyncSession, guardian: User, data: DependentCreate) -> User:
    profile = data.model_dump(exclude={"email", "first_name", "last_name", "date_of_birth", "phone"})
    return await UserRepository.create(
        db,
        email=data.email or dependent_placeholder_email(),
        first_name=data.first_name,
        last_name=data.last_name,
        date_of_birth=data.date_of_birth,
        phone=data.phone or guardian.phone,
        role=UserRole.CONSTITUENT,
        locale=guardian.locale,
        **profile,
    )


async def create_relationship(
    db: AsyncSession,
    *,
    guardian_id: UUID,
    relationship_type: str,
    actor_id: UUID,
    dependent_id: UUID | None = None,
    dependent_data: DependentCreate | None = None,
) -> GuardianRelationship:
    """
    Link a dependent to a guardian.

    Raises:
        UserNotFoundError: guardian or dependent does not exist
        SelfGuardianError: guardian and dependent are the same user
        DuplicateRelationshipError: the pair is already linked
    """
    if not relationship_type or not relationship_type.strip():
        raise GuardianServiceError(
            "Relationship type is required", "RELATIONSHIP_TYPE_REQUIRED", 422
        )

    guardian = await UserRepository.get_by_id(db, guardian_id)
    if guardian is None:
        raise UserNotFoundError(guardian_id)

    if dependent_data is not None:
        dependent = await _create_dependent_user(db, guardian, dependent_data)
    else:
        if dependent_id is None:
            raise GuardianServiceError("Dependent is required", "DEPENDENT_REQUIRED", 422)
        if dependent_id == guardian_id:
            raise SelfGuardianError()
        dependent = await UserRepository.get_by_id(db, dependent_id)
        if dependent is None:
            raise UserNotFoundError(dependent_id)
        if await repository.get_relationship(db, guardian_id, dependent_id):
            raise DuplicateRelationshipError()

    relationship = await repository.create(db, guardian.id, dependent.id, relationship_type.strip())

    await record_event(
        db,
        "guardian_relationship_created",
        actor_id=actor_id,
        auditable=relationship,
        metadata={
            "guardian_id": str(guardian.id),
            "dependent_id": str(dependent.id),
            "relationship_type": relationship.relationship_type,
        },
        commit=True,
    )
    logger.info(f"Linked dependent {dependent.id} to guardian {guardian.id}")
    return relationship


async def list_dependents(db: AsyncSession, guardian_id: UUID) -> list[GuardianRelationship]:
    return await repository.list_for_guardian(db, guardian_id)


async def list_guardians(db: AsyncSession, dependent_id: UUID) -> list[GuardianRelationship]:
    return await repository.list_for_dependent(db, dependent_id)


async def delete_relationship(
    db: AsyncSession, relationship_id: UUID, actor_id: UUID, is_admin: bool = False
) -> None:
    relationship = await repository.get_by_id(db, relationship_id)
    if relationship is None:
        raise RelationshipNotFoundError(relationship_id)
    if not is_admin and relationship.guardian_id != actor_id:
        raise NotRelationshipOwnerError()

    await record_event(
        db,
        "guardian_relationship_removed",
        actor_id=actor_id,
        auditable=relationship,
        metadata={
            "guardian_id": str(relationship.guardian_id),
            "dependent_id": str(relationship.dependent_id),
        },
    )
    await repository.delete(db, relationship)
    logger.info(f"Removed guardian relationship {relationship_id}")
