"""
Rejection Reason Service

Resolves a reason code to its text for the constituent's locale (falling
back to English) and handles admin edits:

- changing the body stores the previous body, bumps the version, flags
  every other locale `needs_sync`, and clears this record's own flag
- a record flagged `needs_sync` only accepts a body change (the
  translation update) or `mark_synced`
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.audit.repository import record_event
from vulcan.modules.email_templates.templating import substitute
from vulcan.modules.rejection_reasons import repository
from vulcan.modules.rejection_reasons.models import RejectionProofType, RejectionReason

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"


class RejectionReasonServiceError(Exception):
    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class RejectionReasonNotFoundError(RejectionReasonServiceError):
    def __init__(self, reason_id: UUID):
        super().__init__(f"Rejection reason {reason_id} not found", "REJECTION_REASON_NOT_FOUND", 404)


class NeedsSyncError(RejectionReasonServiceError):
    def __init__(self):
        super().__init__(
            "This reason must be synced with its translation before other changes",
            "NEEDS_SYNC",
            409,
        )


async def resolve(
    db: AsyncSession,
    code: str,
    proof_type: RejectionProofType,
    locale: str = DEFAULT_LOCALE,
    variables: dict[str, Any] | None = None,
) -> str | None:
    """
    Reason text for a code, in `locale` or English.

    Placeholders such as `%{address}` are filled from `variables`.
    Returns None for an unknown code.
    """
    reason = await repository.get(db, code, proof_type, locale)
    if reason is None and locale != DEFAULT_LOCALE:
        reason = await repository.get(db, code, proof_type, DEFAULT_LOCALE)
    if reason is None:
        return None
    return substitute(reason.body, variables or {})


async def resolve_for_persistence(
    db: AsyncSession,
    code: str | None,
    proof_type: RejectionProofType,
    locale: str = DEFAULT_LOCALE,
    custom_text: str | None = None,
    variables: dict[str, Any] | None = None,
) -> dict[str, str | None]:
    """
    Text and code to store on a rejected proof.

    Admin supplied text wins over the catalogue text; an unknown code with
    no custom text keeps the code as the text.
    """
    text = custom_text.strip() if custom_text and custom_text.strip() else None
    if text is None and code:
        text = await resolve(db, code, proof_type, locale, variables)
    return {"text": text or code, "code": code}


def apply_update(reason: RejectionReason, *, body: str | None = None, **fields: Any) -> bool:
    """
    Apply an edit in memory.

    Returns:
        True when the body changed (other locales must be flagged)

    Raises:
        NeedsSyncError: non-body change on a record awaiting sync
    """
    body_changed = body is not None and body != reason.body
    other_changes = {k: v for k, v in fields.items() if v is not None and getattr(reason, k) != v}

    if reason.needs_sync and other_changes and not body_changed:
        raise NeedsSyncError()

    if body_changed:
        reason.previous_body = reason.body
        reason.body = body
        reason.version = (reason.version or 1) + 1
        reason.needs_sync = False

    for key, value in other_changes.items():
        setattr(reason, key, value)

    return body_changed


async def update_reason(
    db: AsyncSession,
    reason_id: UUID,
    actor_id: UUID,
    *,
    body: str | None = None,
    code: str | None = None,
) -> RejectionReason:
    reason = await repository.get_by_id(db, reason_id)
    if reason is None:
        raise RejectionReasonNotFoundError(reason_id)

    previous_body = reason.body
    body_changed = apply_update(reason, body=body, code=code)
    reason.updated_by_id = actor_id

    if body_changed:
        for other in await repository.list_other_locales(db, reason):
            other.needs_sync = True

    await record_event(
        db,
        "rejection_reason_updated",
        actor_id=actor_id,
        auditable=reason,
        metadata={
            "code": reason.code,
            "proof_type": reason.proof_type.value,
            "locale": reason.locale,
            "version": reason.version,
            "body_changed": body_changed,
            "previous_body": previous_body if body_changed else None,
        },
    )
    await db.commit()
    await db.refresh(reason)
    logger.info(f"Rejection reason {reason.code}/{reason.locale} updated to v{reason.version}")
    return reason


async def mark_synced(db: AsyncSession, reason_id: UUID, actor_id: UUID) -> RejectionReason:
    reason = await repository.get_by_id(db, reason_id)
    if reason is None:
        raise RejectionReasonNotFoundError(reason_id)
    reason.needs_sync = False
    reason.updated_by_id = actor_id
    await db.commit()
    await db.refresh(reason)
    return reason


def group_reasons(reasons: list[RejectionReason]) -> list[dict[str, Any]]:
    """
    Group reasons by (proof_type, code) with the English and Spanish rows
    side by side, for the admin listing.
    """
    groups: dict[tuple[str, str], dict[str, Any]] = {}
    for reason in reasons:
        key = (reason.proof_type.value, reason.code)
        group = groups.setdefault(
            key, {"proof_type": reason.proof_type.value, "code": reason.code, "en": None, "es": None}
        )
        if reason.locale in ("en", "es"):
            group[reason.locale] = reason
    return list(groups.values())


async def list_grouped(
    db: AsyncSession, proof_type: RejectionProofType | None = None
) -> list[dict[str, Any]]:
    return group_reasons(await repository.list_all(db, proof_type))
