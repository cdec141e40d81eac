"""
Applications Router (constituent portal)

Endpoints:
- GET /applications - My applications (self and dependents)
- POST /applications - Create a draft, optionally submitting it
- POST /applications/autosave - Save a single form field
- GET /applications/{id} - Application details
- POST /applications/{id}/submit - Submit a draft
- POST /applications/{id}/proofs/{proof_type} - Upload an income or residency proof
- PATCH /applications/{id}/alternate-contact - Update the alternate contact
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import CurrentUser, get_current_constituent
from vulcan.core.database import get_db
from vulcan.modules.applications import autosave, service
from vulcan.modules.applications.models import ProofType
from vulcan.modules.applications.schemas import (
    AlternateContactUpdate,
    ApplicationCreate,
    ApplicationResponse,
    AutosaveRequest,
    AutosaveResponse,
    ProofUploadResponse,
)
from vulcan.modules.applications.service import (
    ApplicationServiceError,
    ApplicationValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_service_error(e: ApplicationServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    detail = {"error": e.error_code, "message": e.message}
    if isinstance(e, ApplicationValidationError):
        detail["errors"] = e.errors
    raise HTTPException(status_code=e.status_code, detail=detail)


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
    )


@router.get("", response_model=list[ApplicationResponse], summary="List My Applications")
async def list_my_applications(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_constituent),
) -> list[ApplicationResponse]:
    applications = await service.list_for_user(db, user.id)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Application",
    description="""
Create a draft application for yourself, or for a dependent by passing
`dependent_id` (you must be their guardian). An existing draft is updated
instead of creating a second one.

With `submit: true` the application is submitted immediately.

**Submission rules:**
- One application per applicant every 3 years
- Residency, income, disability and medical provider details are required
""",
    responses={
        403: {"description": "Not a guardian of the dependent"},
        409: {"description": "An active application already exists"},
        422: {
            "description": "Waiting period or missing fields",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "VALIDATION_ERROR",
                            "message": "The application is missing required information.",
                            "errors": {"household_size": ["Household size is required"]},
                        }
                    }
                }
            },
        },
    },
)
async def create_application(
    request: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_constituent),
) -> ApplicationResponse:
    try:
        application = await service.create_application(
            db,
            user.id,
            request,
            dependent_id=request.dependent_id,
            submit=request.submit,
        )
        return ApplicationResponse.model_validate(application)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error creating application for {user.id}: {e}")
        raise _internal_error() from e


@router.post(
    "/autosave",
    response_model=AutosaveResponse,
    summary="Autosave Field",
    description="""
Save one field of the application form. Creates a draft on first save.

Returns `success: false` with a message (HTTP 200) when the field cannot
be saved, so the form can show it inline.
""",
)
async def autosave_field(
    request: AutosaveRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_constituent),
) -> AutosaveResponse:
    try:
        result = await autosave.autosave_field(
            db,
            user.id,
            request.field_name,
            request.field_value,
            dependent_id=request.dependent_id,
            step=request.step,
        )
        return AutosaveResponse(**result)
    except Exception as e:
        logger.exception(f"Error autosaving {request.field_name} for {user.id}: {e}")
        raise _internal_error() from e


@router.get(
    "/{application_id}",
    response_model=ApplicationResponse,
    summary="Get Application",
    responses={403: {"description": "Not your application"}, 404: {"description": "Not found"}},
)
async def get_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_constituent),
) -> ApplicationResponse:
    try:
        application = await service.get_application_for_user(db, application_id, user.id)
        return ApplicationResponse.model_validate(application)
    except ApplicationServiceError as e:
        _handle_service_error(e)


@router.post(
    "/{application_id}/submit",
    response_model=ApplicationResponse,
    summary="Submit Application",
    responses={
        409: {"description": "Application is not a draft"},
        422: {"description": "Waiting period or missing fields"},
    },
)
async def submit_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_constituent),
) -> ApplicationResponse:
    try:
        application = await service.submit_application(db, application_id, user.id)
        return ApplicationResponse.model_validate(application)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error submitting application {application_id}: {e}")
        raise _internal_error() from e


@router.post(
    "/{application_id}/proofs/{proof_type}",
    response_model=ProofUploadResponse,
    summary="Upload Proof",
    description="""
Upload an income or residency proof (PDF, JPEG or PNG, up to 5 MB).

Uploading while the application is waiting on proofs moves it back into
review.
""",
    responses={
        409: {"description": "Proof already approved or application closed"},
        422: {"description": "Invalid file"},
    },
)
async def upload_proof(
    application_id: UUID,
    proof_type: ProofType,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_constituent),
) -> ProofUploadResponse:
    try:
        content = await file.read()
        application = await service.upload_proof(
            db,
            application_id,
            user.id,
            proof_type,
            file.filename or "",
            content,
            file.content_type,
        )
        return ProofUploadResponse(
            application_id=application.id,
            proof_type=proof_type,
            status=getattr(application, f"{proof_type.value}_proof_status"),
            application_status=application.status,
        )
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error uploading {proof_type.value} proof for {application_id}: {e}")
        raise _internal_error() from e


@router.patch(
    "/{application_id}/alternate-contact",
    response_model=ApplicationResponse,
    summary="Update Alternate Contact",
)
async def update_alternate_contact(
    application_id: UUID,
    request: AlternateContactUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_constituent),
) -> ApplicationResponse:
    try:
        application = await service.update_alternate_contact(db, application_id, user.id, request)
        return ApplicationResponse.model_validate(application)
    except ApplicationServiceError as e:
        _handle_service_error(e)
