"""
Paper applications.

Admins key in applications that arrived by mail or fax. The applicant may
be an existing constituent or a new one, and may be a dependent managed by
a guardian. Paper applications skip the draft stage and start in_progress.
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications import repository
from vulcan.modules.applications.models import Application, ApplicationStatus, SubmissionMethod
from vulcan.modules.applications.schemas import ApplicationFields, PaperApplicationCreate
from vulcan.modules.applications.service import (
    ActiveApplicationExistsError,
    ApplicationServiceError,
)
from vulcan.modules.audit.repository import record_event
from vulcan.modules.guardians import repository as guardian_repository
from vulcan.modules.guardians import service as guardian_service
from vulcan.modules.users.models import User, UserRole
from vulcan.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


async def _resolve_applicant(db: AsyncSession, data: PaperApplicationCreate) -> User:
    if data.applicant_id is not None:
        applicant = await UserRepository.get_by_id(db, data.applicant_id)
        if applicant is None:
            raise ApplicationServiceError("Applicant not found", "USER_NOT_FOUND", 404)
        return applicant

    profile = data.applicant.model_dump(exclude={"email"})
    email = data.applicant.email
    if email and await UserRepository.email_exists(db, email):
        raise ApplicationServiceError(
            "A user with this email already exists", "EMAIL_ALREADY_EXISTS", 409
        )
    return await UserRepository.create(
        db,
        email=email or guardian_service.dependent_placeholder_email(),
        role=UserRole.CONSTITUENT,
        **profile,
    )


async def create_paper_application(
    db: AsyncSession, data: PaperApplicationCreate, admin_id: UUID
) -> Application:
    """
    Create an in_progress paper application.

    Raises:
        ActiveApplicationExistsError: the applicant already has a non-archived application
    """
    applicant = await _resolve_applicant(db, data)

    if await repository.get_open_for_applicant(db, applicant.id):
        await db.rollback()
        raise ActiveApplicationExistsError(
            "This applicant already has an active or pending application"
        )

    managing_guardian_id = None
    if data.guardian_id is not None:
        relationship = await guardian_repository.get_relationship(
            db, data.guardian_id, applicant.id
        )
        if relationship is None:
            if not data.relationship_type:
                await db.rollback()
                raise ApplicationServiceError(
                    "relationship_type is required to link the guardian",
                    "RELATIONSHIP_TYPE_REQUIRED",
                    422,
                )
            relationship = await guardian_service.create_relationship(
                db,
                guardian_id=data.guardian_id,
                dependent_id=applicant.id,
                relationship_type=data.relationship_type,
                actor_id=admin_id,
            )
        managing_guardian_id = relationship.guardian_id

    fields = data.model_dump(exclude_unset=True, include=set(ApplicationFields.model_fields))
    application = await repository.create(
        db,
        user_id=applicant.id,
        managing_guardian_id=managing_guardian_id,
        status=ApplicationStatus.IN_PROGRESS,
        submission_method=SubmissionMethod.PAPER,
        application_date=date.today(),
        **fields,
    )

    await record_event(
        db,
        "application_created",
        actor_id=admin_id,
        auditable=application,
        metadata={
            "submission_method": SubmissionMethod.PAPER.value,
            "applicant_id": str(applicant.id),
            "managing_guardian_id": str(managing_guardian_id) if managing_guardian_id else None,
        },
        commit=True,
    )
    logger.info(f"Admin {admin_id} created paper application {application.id}")
    return application
