"""
Admin Applications Router

API endpoints for reviewing benefit applications.
All endpoints require admin authentication.

Endpoints:
- GET /admin/applications - List applications with filters
- GET /admin/applications/stats - Dashboard statistics
- POST /admin/applications/paper - Create a paper application
- GET /admin/applications/{id} - Application detail with notes and audit log
- POST /admin/applications/{id}/proofs/{proof_type}/review - Approve/reject a proof
- POST /admin/applications/{id}/medical-certification/review - Approve/reject certification
- POST /admin/applications/{id}/medical-certification/request - Request certification
- POST /admin/applications/{id}/status - Change status
- POST /admin/applications/{id}/notes - Add a note
- POST /admin/applications/notes/{note_id}/assign - Assign a note
- POST /admin/applications/notes/{note_id}/unassign - Unassign a note
- POST /admin/applications/notes/{note_id}/complete - Mark a note done
- POST /admin/applications/notes/{note_id}/reopen - Reopen a note
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import AdminUser, get_current_admin_user
from vulcan.core.database import get_db
from vulcan.modules.applications import notes, paper, repository, service
from vulcan.modules.applications.filters import (
    DATE_RANGES,
    FILTERS,
    ApplicationFilterParams,
    ApplicationFilterService,
)
from vulcan.modules.applications.models import Application, ApplicationStatus, ProofType
from vulcan.modules.applications.schemas import (
    ActionResponse,
    ApplicationDetailResponse,
    ApplicationListItem,
    ApplicationListResponse,
    ApplicationResponse,
    AuditLogEntry,
    DashboardStats,
    MedicalCertificationReviewRequest,
    NoteAssign,
    NoteCreate,
    NoteResponse,
    PaperApplicationCreate,
    ProofReviewRequest,
    StatusChangeRequest,
)
from vulcan.modules.applications.service import ApplicationServiceError
from vulcan.modules.audit.log_builder import AuditLogBuilder
from vulcan.modules.guardians.service import GuardianServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_service_error(e: ApplicationServiceError | GuardianServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={"error": e.error_code, "message": e.message},
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
    )


def _to_list_item(application: Application) -> ApplicationListItem:
    return ApplicationListItem(
        id=application.id,
        user_id=application.user_id,
        applicant_name=application.user.full_name,
        managing_guardian_id=application.managing_guardian_id,
        status=application.status,
        submission_method=application.submission_method,
        application_date=application.application_date,
        income_proof_status=application.income_proof_status,
        residency_proof_status=application.residency_proof_status,
        medical_certification_status=application.medical_certification_status,
        document_signing_status=application.document_signing_status,
        created_at=application.created_at,
    )


@router.get(
    "",
    response_model=ApplicationListResponse,
    summary="List Applications",
    description=f"""
List applications, newest first.

**Filters:**
- `filter`: {", ".join(f"`{name}`" for name in FILTERS)}
- `status`: one application status
- `date_range`: {", ".join(f"`{name}`" for name in DATE_RANGES)} (fiscal year starts July 1)
- `q`: application id prefix, applicant name or email
- `guardian_id` / `dependent_id`: guardian and dependent applications
""",
)
async def list_applications(
    filter: str | None = Query(None),
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    date_range: str | None = Query(None),
    q: str | None = Query(None, max_length=200),
    guardian_id: UUID | None = Query(None),
    dependent_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationListResponse:
    try:
        filter_service = ApplicationFilterService(
            ApplicationFilterParams(
                filter=filter,
                status=status_filter,
                date_range=date_range,
                q=q,
                guardian_id=guardian_id,
                dependent_id=dependent_id,
            )
        )
        query = filter_service.query()
        total = (
            await db.execute(select(func.count()).select_from(query.order_by(None).subquery()))
        ).scalar_one()
        result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
        return ApplicationListResponse(
            items=[_to_list_item(a) for a in result.scalars().all()],
            total=total,
            page=page,
            page_size=page_size,
        )
    except Exception as e:
        logger.exception(f"Error listing applications: {e}")
        raise _internal_error() from e


@router.get("/stats", response_model=DashboardStats, summary="Get Dashboard Statistics")
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> DashboardStats:
    return DashboardStats(**await repository.get_dashboard_counts(db))


@router.post(
    "/paper",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Paper Application",
    description="""
Key in an application received on paper. The applicant is an existing
user (`applicant_id`) or a new one (`applicant`). Pass `guardian_id` for a
dependent; the relationship is created when it does not exist yet.
""",
    responses={409: {"description": "Applicant already has a non-archived application"}},
)
async def create_paper_application(
    request: PaperApplicationCreate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationResponse:
    try:
        application = await paper.create_paper_application(db, request, admin.id)
        return ApplicationResponse.model_validate(application)
    except (ApplicationServiceError, GuardianServiceError) as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error creating paper application: {e}")
        raise _internal_error() from e


@router.get(
    "/{application_id}",
    response_model=ApplicationDetailResponse,
    summary="Get Application Detail",
)
async def get_application_detail(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationDetailResponse:
    try:
        application = await service.get_application(db, application_id)
        application_notes = await repository.list_notes(db, application.id)
        audit_log = await AuditLogBuilder(db).build(application)
    except ApplicationServiceError as e:
        _handle_service_error(e)

    base = ApplicationResponse.model_validate(application).model_dump()
    return ApplicationDetailResponse(
        **base,
        applicant_name=application.user.full_name,
        managing_guardian_name=(
            application.managing_guardian.full_name if application.managing_guardian else None
        ),
        notes=[NoteResponse.model_validate(n) for n in application_notes],
        audit_log=[AuditLogEntry(**entry) for entry in audit_log],
    )


@router.post(
    "/{application_id}/proofs/{proof_type}/review",
    response_model=ApplicationResponse,
    summary="Review Proof",
    description="""
Approve or reject an income or residency proof.

Rejecting requires a reason code from the rejection reason catalogue or
free text. The constituent is emailed either way. When the rejection limit
is reached the application is archived.
""",
)
async def review_proof(
    application_id: UUID,
    proof_type: ProofType,
    request: ProofReviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationResponse:
    try:
        application = await service.review_proof(
            db,
            application_id,
            admin.id,
            proof_type,
            approved=request.decision == "approved",
            rejection_reason_code=request.rejection_reason_code,
            rejection_reason=request.rejection_reason,
            notes=request.notes,
        )
        return ApplicationResponse.model_validate(await service.get_application(db, application.id))
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error reviewing {proof_type.value} proof for {application_id}: {e}")
        raise _internal_error() from e


@router.post(
    "/{application_id}/medical-certification/review",
    response_model=ApplicationResponse,
    summary="Review Medical Certification",
    description="""
Approve or reject the medical certification. A rejection is sent to the
medical provider by fax when a fax number is on file, otherwise by email.
""",
)
async def review_medical_certification(
    application_id: UUID,
    request: MedicalCertificationReviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationResponse:
    try:
        if request.decision == "approved":
            application = await service.approve_medical_certification(
                db, application_id, admin.id
            )
        else:
            application = await service.reject_medical_certification(
                db,
                application_id,
                admin.id,
                rejection_reason_code=request.rejection_reason_code,
                rejection_reason=request.rejection_reason,
            )
        return ApplicationResponse.model_validate(await service.get_application(db, application.id))
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error reviewing medical certification for {application_id}: {e}")
        raise _internal_error() from e


@router.post(
    "/{application_id}/medical-certification/request",
    response_model=ApplicationResponse,
    summary="Request Medical Certification",
)
async def request_medical_certification(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationResponse:
    try:
        application = await service.request_medical_certification(db, application_id, admin.id)
        return ApplicationResponse.model_validate(application)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error requesting medical certification for {application_id}: {e}")
        raise _internal_error() from e


@router.post(
    "/{application_id}/status",
    response_model=ApplicationResponse,
    summary="Change Application Status",
    responses={409: {"description": "Invalid status transition"}},
)
async def change_status(
    application_id: UUID,
    request: StatusChangeRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicationResponse:
    try:
        application = await service.change_status(
            db, application_id, admin.id, request.status, request.notes
        )
        return ApplicationResponse.model_validate(await service.get_application(db, application.id))
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error changing status for {application_id}: {e}")
        raise _internal_error() from e


@router.post(
    "/{application_id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Note",
)
async def add_note(
    application_id: UUID,
    request: NoteCreate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> NoteResponse:
    try:
        application = await service.get_application(db, application_id)
        note = await notes.create_note(
            db,
            application,
            admin.id,
            request.content,
            internal_only=request.internal_only,
            assigned_to_id=request.assigned_to_id,
        )
        return NoteResponse.model_validate(note)
    except ApplicationServiceError as e:
        _handle_service_error(e)


def _note_action_response(success: bool, done: str) -> ActionResponse:
    if not success:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "NOTE_UPDATE_FAILED", "message": "The note could not be updated."},
        )
    return ActionResponse(success=True, message=done)


@router.post("/notes/{note_id}/assign", response_model=ActionResponse, summary="Assign Note")
async def assign_note(
    note_id: UUID,
    request: NoteAssign,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ActionResponse:
    success = await notes.assign_to(db, note_id, request.assigned_to_id, admin.id)
    return _note_action_response(success, "Note assigned")


@router.post("/notes/{note_id}/unassign", response_model=ActionResponse, summary="Unassign Note")
async def unassign_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ActionResponse:
    return _note_action_response(await notes.unassign(db, note_id, admin.id), "Note unassigned")


@router.post("/notes/{note_id}/complete", response_model=ActionResponse, summary="Complete Note")
async def complete_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ActionResponse:
    return _note_action_response(
        await notes.mark_as_done(db, note_id, admin.id), "Note marked as done"
    )


@router.post("/notes/{note_id}/reopen", response_model=ActionResponse, summary="Reopen Note")
async def reopen_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ActionResponse:
    return _note_action_response(
        await notes.mark_as_incomplete(db, note_id, admin.id), "Note reopened"
    )
