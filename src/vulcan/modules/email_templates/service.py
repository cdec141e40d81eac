"""
Email Template Service

Admin operations on the database-backed email templates:

1. Render and preview (sample data for every declared variable)
2. Update subject/body with placeholder validation and versioning
   (previous content kept, version bumped only when subject or body change,
   other locales flagged for translation sync)
3. Send a test email to the admin
4. Enable/disable one template or many
5. Create the counterpart template in the other locale
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.email import send_email
from vulcan.modules.audit.repository import record_event
from vulcan.modules.email_templates import repository
from vulcan.modules.email_templates.models import EmailTemplate, TemplateFormat
from vulcan.modules.email_templates.templating import (
    render,
    sample_variables,
    validate_content,
)

logger = logging.getLogger(__name__)

COUNTERPART_LOCALES = {"en": "es", "es": "en"}


class EmailTemplateServiceError(Exception):
    """Base exception for email template operations."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class TemplateNotFoundError(EmailTemplateServiceError):
    def __init__(self, template_id: UUID):
        super().__init__(f"Email template {template_id} not found", "TEMPLATE_NOT_FOUND", 404)


class InvalidTemplateContentError(EmailTemplateServiceError):
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors), "INVALID_TEMPLATE_CONTENT", 422)


class CounterpartExistsError(EmailTemplateServiceError):
    def __init__(self, locale: str):
        super().__init__(
            f"A {locale} version of this template already exists",
            "COUNTERPART_EXISTS",
            409,
        )


def render_template(template: EmailTemplate, variables: dict[str, Any]) -> tuple[str, str]:
    """Render subject and body. Raises TemplateRenderError on missing variables."""
    return render(
        template.name,
        template.subject,
        template.body,
        template.required_variables,
        variables,
    )


def render_preview(template: EmailTemplate) -> tuple[str, str]:
    return render_template(template, sample_variables(template.allowed_variables))


async def get_template(db: AsyncSession, template_id: UUID) -> EmailTemplate:
    template = await repository.get_by_id(db, template_id)
    if template is None:
        raise TemplateNotFoundError(template_id)
    return template


def apply_content_update(
    template: EmailTemplate,
    *,
    subject: str | None = None,
    body: str | None = None,
    description: str | None = None,
) -> dict[str, dict[str, Any]]:
    """
    Apply edits to the template in memory.

    Returns:
        The changed fields as {field: {"from": old, "to": new}}
    """
    new_subject = template.subject if subject is None else subject
    new_body = template.body if body is None else body

    errors = validate_content(
        new_subject, new_body, template.required_variables, template.optional_variables
    )
    if errors:
        raise InvalidTemplateContentError(errors)

    changes: dict[str, dict[str, Any]] = {}
    content_changed = new_subject != template.subject or new_body != template.body

    if content_changed:
        template.previous_subject = template.subject
        template.previous_body = template.body
        template.version = (template.version or 1) + 1

    for field, value in (("subject", new_subject), ("body", new_body), ("description", description)):
        if value is None:
            continue
        old = getattr(template, field)
        if old != value:
            changes[field] = {"from": old, "to": value}
            setattr(template, field, value)

    return changes


async def update_template(
    db: AsyncSession,
    template_id: UUID,
    actor_id: UUID,
    *,
    subject: str | None = None,
    body: str | None = None,
    description: str | None = None,
) -> EmailTemplate:
    template = await get_template(db, template_id)
    body_before = template.body
    subject_before = template.subject

    changes = apply_content_update(template, subject=subject, body=body, description=description)
    if not changes:
        return template

    template.updated_by_id = actor_id

    if template.body != body_before or template.subject != subject_before:
        template.needs_sync = False
        for counterpart in await repository.list_counterparts(db, template):
            counterpart.needs_sync = True

    await record_event(
        db,
        "email_template_updated",
        actor_id=actor_id,
        auditable=template,
        metadata={
            "template_name": template.name,
            "locale": template.locale,
            "version": template.version,
            "changes": changes,
        },
    )
    await db.commit()
    await db.refresh(template)

    logger.info(f"Email template {template.name} ({template.locale}) updated to v{template.version}")
    return template


async def send_test_email(
    db: AsyncSession, template_id: UUID, actor_id: UUID, to_email: str
) -> bool:
    template = await get_template(db, template_id)
    subject, body = render_preview(template)

    if template.format == TemplateFormat.HTML:
        sent = await send_email(to_email, f"[TEST] {subject}", html_content=body)
    else:
        sent = await send_email(to_email, f"[TEST] {subject}", text_content=body)

    await record_event(
        db,
        "email_template_test_sent",
        actor_id=actor_id,
        auditable=template,
        metadata={"template_name": template.name, "recipient": to_email, "sent": sent},
        commit=True,
    )
    return sent


async def toggle_enabled(db: AsyncSession, template_id: UUID, actor_id: UUID) -> EmailTemplate:
    template = await get_template(db, template_id)
    template.enabled = not template.enabled
    template.updated_by_id = actor_id

    await record_event(
        db,
        "email_template_toggled",
        actor_id=actor_id,
        auditable=template,
        metadata={"template_name": template.name, "enabled": template.enabled},
    )
    await db.commit()
    await db.refresh(template)
    logger.info(f"Email template {template.name} {'enabled' if template.enabled else 'disabled'}")
    return template


async def mark_synced(db: AsyncSession, template_id: UUID, actor_id: UUID) -> EmailTemplate:
    template = await get_template(db, template_id)
    template.needs_sync = False
    template.updated_by_id = actor_id
    await db.commit()
    await db.refresh(template)
    return template


async def create_counterpart(db: AsyncSession, template_id: UUID, actor_id: UUID) -> EmailTemplate:
    """
    Copy a template into the other locale for translation.

    The copy starts flagged `needs_sync` until a translator edits it.
    """
    template = await get_template(db, template_id)
    target_locale = COUNTERPART_LOCALES.get(template.locale, "en")

    if await repository.get(db, template.name, template.format, target_locale):
        raise CounterpartExistsError(target_locale)

    counterpart = await repository.create(
        db,
        name=template.name,
        format=template.format,
        locale=target_locale,
        subject=template.subject,
        body=template.body,
        description=template.description,
        variables=dict(template.variables or {}),
        enabled=template.enabled,
        version=1,
        needs_sync=True,
        updated_by_id=actor_id,
    )
    await record_event(
        db,
        "email_template_counterpart_created",
        actor_id=actor_id,
        auditable=counterpart,
        metadata={"template_name": template.name, "source_locale": template.locale},
        commit=True,
    )
    return counterpart


async def bulk_set_enabled(
    db: AsyncSession, template_ids: list[UUID], enabled: bool, actor_id: UUID
) -> int:
    """Enable or disable many templates. Returns how many changed."""
    count = await repository.set_enabled_bulk(db, template_ids, enabled)
    await record_event(
        db,
        "email_templates_bulk_enabled" if enabled else "email_templates_bulk_disabled",
        actor_id=actor_id,
        metadata={"template_ids": [str(i) for i in template_ids], "count": count},
    )
    await db.commit()
    logger.info(f"{'Enabled' if enabled else 'Disabled'} {count} email templates")
    return count
