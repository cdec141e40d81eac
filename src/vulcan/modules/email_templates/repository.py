"""
Email Template Repository
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.email_templates.models import EmailTemplate, TemplateFormat

DEFAULT_LOCALE = "en"


async def get_by_id(db: AsyncSession, template_id: UUID) -> EmailTemplate | None:
    return await db.get(EmailTemplate, template_id)


async def get(
    db: AsyncSession, name: str, format: TemplateFormat, locale: str
) -> EmailTemplate | None:
    result = await db.execute(
        select(EmailTemplate).where(
            EmailTemplate.name == name,
            EmailTemplate.format == format,
            EmailTemplate.locale == locale,
        )
    )
    return result.scalar_one_or_none()


async def find_with_fallback(
    db: AsyncSession,
    name: str,
    format: TemplateFormat = TemplateFormat.TEXT,
    locale: str = DEFAULT_LOCALE,
) -> EmailTemplate | None:
    """Template in the requested locale, else the English one."""
    template = await get(db, name, format, locale)
    if template is None and locale != DEFAULT_LOCALE:
        template = await get(db, name, format, DEFAULT_LOCALE)
    return template


async def list_templates(
    db: AsyncSession,
    *,
    locale: str | None = None,
    format: TemplateFormat | None = None,
    needs_sync: bool | None = None,
) -> list[EmailTemplate]:
    query = select(EmailTemplate)
    if locale:
        query = query.where(EmailTemplate.locale == locale)
    if format:
        query = query.where(EmailTemplate.format == format)
    if needs_sync is not None:
        query = query.where(EmailTemplate.needs_sync.is_(needs_sync))
    result = await db.execute(query.order_by(EmailTemplate.name, EmailTemplate.locale))
    return list(result.scalars().all())


async def list_counterparts(db: AsyncSession, template: EmailTemplate) -> list[EmailTemplate]:
    """Same template in the other locales."""
    result = await db.execute(
        select(EmailTemplate).where(
            EmailTemplate.name == template.name,
            EmailTemplate.format == template.format,
            EmailTemplate.locale != template.locale,
        )
    )
    return list(result.scalars().all())


async def create(db: AsyncSession, **fields) -> EmailTemplate:
    template = EmailTemplate(**fields)
    db.add(template)
    await db.commit()
    await db.refresh(template)
    return template


async def set_enabled_bulk(db: AsyncSession, template_ids: list[UUID], enabled: bool) -> int:
    result = await db.execute(
        update(EmailTemplate)
        .where(EmailTemplate.id.in_(template_ids), EmailTemplate.enabled.is_not(enabled))
        .values(enabled=enabled)
    )
    return result.rowcount or 0
