"""
Email Templates Admin Router

Endpoints:
- GET /admin/email-templates - List templates (filter by locale, format, needs_sync)
- GET /admin/email-templates/{id} - Template with a rendered preview
- PATCH /admin/email-templates/{id} - Edit subject/body/description
- POST /admin/email-templates/{id}/send-test - Send a test email
- POST /admin/email-templates/{id}/toggle - Enable/disable
- POST /admin/email-templates/{id}/mark-synced - Clear the translation flag
- POST /admin/email-templates/{id}/counterpart - Create the other-locale copy
- POST /admin/email-templates/bulk-disable | bulk-enable
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import AdminUser, get_current_admin_user
from vulcan.core.database import get_db
from vulcan.core.rate_limit import enforce_rate_limit
from vulcan.modules.email_templates import repository, service
from vulcan.modules.email_templates.models import TemplateFormat
from vulcan.modules.email_templates.schemas import (
    BulkToggleRequest,
    BulkToggleResponse,
    EmailTemplateDetail,
    EmailTemplateShowResponse,
    EmailTemplateSummary,
    EmailTemplateUpdate,
    SendTestRequest,
    SendTestResponse,
)
from vulcan.modules.email_templates.service import EmailTemplateServiceError
from vulcan.modules.email_templates.templating import TemplateRenderError, sample_variables

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_SEND_TEST = (5, 60)


def _handle_service_error(e: EmailTemplateServiceError) -> None:
    detail = {"error": e.error_code, "message": e.message}
    if hasattr(e, "errors"):
        detail["errors"] = e.errors
    raise HTTPException(status_code=e.status_code, detail=detail)


@router.get("", response_model=list[EmailTemplateSummary], summary="List Email Templates")
async def list_templates(
    locale: str | None = Query(None, max_length=5),
    format: TemplateFormat | None = Query(None),
    needs_sync: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> list[EmailTemplateSummary]:
    templates = await repository.list_templates(
        db, locale=locale, format=format, needs_sync=needs_sync
    )
    return [EmailTemplateSummary.model_validate(t) for t in templates]


@router.get(
    "/{template_id}",
    response_model=EmailTemplateShowResponse,
    summary="Show Email Template",
    description="Returns the template and a preview rendered with `Sample ...` values.",
)
async def show_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> EmailTemplateShowResponse:
    try:
        template = await service.get_template(db, template_id)
        sample = sample_variables(template.allowed_variables)
        try:
            subject, body = service.render_template(template, sample)
        except TemplateRenderError as e:
            subject, body = template.subject, f"[Preview unavailable: {e}]"
        return EmailTemplateShowResponse(
            template=EmailTemplateDetail.model_validate(template),
            preview_subject=subject,
            preview_body=body,
            sample_data=sample,
        )
    except EmailTemplateServiceError as e:
        _handle_service_error(e)


@router.patch("/{template_id}", response_model=EmailTemplateDetail, summary="Update Email Template")
async def update_template(
    template_id: UUID,
    request: EmailTemplateUpdate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> EmailTemplateDetail:
    try:
        template = await service.update_template(
            db,
            template_id,
            admin.id,
            subject=request.subject,
            body=request.body,
            description=request.description,
        )
        return EmailTemplateDetail.model_validate(template)
    except EmailTemplateServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error updating email template {template_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
        ) from e


@router.post(
    "/{template_id}/send-test",
    response_model=SendTestResponse,
    summary="Send Test Email",
)
async def send_test(
    template_id: UUID,
    request: SendTestRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> SendTestResponse:
    await enforce_rate_limit(f"admin:send_test:{admin.id}", *RATE_LIMIT_SEND_TEST)
    recipient = request.email or admin.email
    try:
        sent = await service.send_test_email(db, template_id, admin.id, recipient)
        return SendTestResponse(sent=sent, recipient=recipient)
    except EmailTemplateServiceError as e:
        _handle_service_error(e)


@router.post("/{template_id}/toggle", response_model=EmailTemplateDetail, summary="Toggle Template")
async def toggle_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> EmailTemplateDetail:
    try:
        template = await service.toggle_enabled(db, template_id, admin.id)
        return EmailTemplateDetail.model_validate(template)
    except EmailTemplateServiceError as e:
        _handle_service_error(e)


@router.post(
    "/{template_id}/mark-synced",
    response_model=EmailTemplateDetail,
    summary="Mark Template Synced",
)
async def mark_synced(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> EmailTemplateDetail:
    try:
        template = await service.mark_synced(db, template_id, admin.id)
        return EmailTemplateDetail.model_validate(template)
    except EmailTemplateServiceError as e:
        _handle_service_error(e)


@router.post(
    "/{template_id}/counterpart",
    response_model=EmailTemplateDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create Other-Locale Copy",
)
async def create_counterpart(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> EmailTemplateDetail:
    try:
        template = await service.create_counterpart(db, template_id, admin.id)
        return EmailTemplateDetail.model_validate(template)
    except EmailTemplateServiceError as e:
        _handle_service_error(e)


@router.post("/bulk-disable", response_model=BulkToggleResponse, summary="Disable Templates")
async def bulk_disable(
    request: BulkToggleRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> BulkToggleResponse:
    count = await service.bulk_set_enabled(db, request.template_ids, False, admin.id)
    return BulkToggleResponse(updated=count, message=f"{count} templates disabled")


@router.post("/bulk-enable", response_model=BulkToggleResponse, summary="Enable Templates")
async def bulk_enable(
    request: BulkToggleRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> BulkToggleResponse:
    count = await service.bulk_set_enabled(db, request.template_ids, True, admin.id)
    return BulkToggleResponse(updated=count, message=f"{count} templates enabled")
