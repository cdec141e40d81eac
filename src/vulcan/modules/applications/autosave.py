"""
Application autosave.

The application form saves each field as the constituent leaves it. A
single field is written to the constituent's draft (created on first
save); disability flags belong to the applicant's user record. Files,
addresses and proof fields are never autosaved.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.applications import repository
from vulcan.modules.applications.models import ApplicationStatus
from vulcan.modules.applications.schemas import ApplicationFields
from vulcan.modules.applications.service import ApplicationServiceError, resolve_applicant
from vulcan.modules.users.models import DISABILITY_FIELDS
from vulcan.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

FILE_FIELDS = {"income_proof", "residency_proof", "medical_certification"}
IGNORED_FIELDS = {
    "physical_address_1",
    "physical_address_2",
    "city",
    "state",
    "zip_code",
    "income_proof_key",
    "residency_proof_key",
    "income_proof_status",
    "residency_proof_status",
}
AUTOSAVE_FIELDS = set(ApplicationFields.model_fields)
BOOLEAN_FIELDS = {
    "maryland_resident",
    "self_certify_disability",
    "terms_accepted",
    "information_verified",
    "medical_release_authorized",
    *DISABILITY_FIELDS,
}
TRUE_VALUES = {"1", "true", "on", "yes"}


class AutosaveError(ValueError):
    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        super().__init__(message)


def coerce_value(field_name: str, value: Any) -> Any:
    """
    Convert a raw form value to the column type.

    Raises:
        AutosaveError: The value is not valid for the field
    """
    if isinstance(value, str):
        value = value.strip()

    if field_name in BOOLEAN_FIELDS:
        if isinstance(value, bool):
            return value
        return str(value).lower() in TRUE_VALUES

    if value in ("", None):
        return None

    if field_name == "annual_income":
        try:
            amount = Decimal(str(value).replace(",", "").replace("$", ""))
        except InvalidOperation:
            raise AutosaveError(field_name, "Annual income must be a number") from None
        if amount < 0:
            raise AutosaveError(field_name, "Annual income must be a number")
        return amount

    if field_name == "household_size":
        try:
            size = int(str(value))
        except ValueError:
            raise AutosaveError(field_name, "Household size must be a whole number") from None
        if size < 1:
            raise AutosaveError(field_name, "Household size must be a whole number")
        return size

    return value


def _result(
    success: bool,
    application_id: UUID | None = None,
    message: str | None = None,
    errors: dict[str, list[str]] | None = None,
) -> dict[str, Any]:
    return {
        "success": success,
        "application_id": application_id,
        "message": message,
        "errors": errors,
    }


async def autosave_field(
    db: AsyncSession,
    actor_id: UUID,
    field_name: str | None,
    field_value: Any,
    dependent_id: UUID | None = None,
    step: str | None = None,
) -> dict[str, Any]:
    """
    Save one form field.

    Returns:
        {"success", "application_id", "message", "errors"}
    """
    if not field_name:
        return _result(False, message="Field name is required")

    if field_name in FILE_FIELDS:
        return _result(
            False,
            message="Files cannot be autosaved",
            errors={field_name: ["Files are uploaded separately"]},
        )

    try:
        applicant_id, managing_guardian_id = await resolve_applicant(db, actor_id, dependent_id)
    except ApplicationServiceError as e:
        return _result(False, message=e.message)

    active = await repository.get_active_for_applicant(db, applicant_id)
    if active is not None:
        return _result(
            False,
            active.id,
            "An application is already in progress and can no longer be autosaved",
        )

    if field_name in IGNORED_FIELDS:
        return _result(
            False,
            message="Field not autosaved",
            errors={field_name: ["This field cannot be autosaved"]},
        )

    is_user_field = field_name in DISABILITY_FIELDS
    if not is_user_field and field_name not in AUTOSAVE_FIELDS:
        return _result(
            False, message=f"Unknown field: {field_name}", errors={field_name: ["Unknown field"]}
        )

    try:
        value = coerce_value(field_name, field_value)
    except AutosaveError as e:
        return _result(False, message=str(e), errors={field_name: [str(e)]})

    application = await repository.get_draft_for_applicant(db, applicant_id, managing_guardian_id)
    if application is None:
        application = await repository.create(
            db,
            user_id=applicant_id,
            managing_guardian_id=managing_guardian_id,
            status=ApplicationStatus.DRAFT,
        )
        logger.info(f"Created draft application {application.id} via autosave")

    if is_user_field:
        applicant = await UserRepository.get_by_id(db, applicant_id)
        await UserRepository.update(db, applicant, **{field_name: value})
    else:
        setattr(application, field_name, value)

    application.last_visited_step = step or field_name
    await repository.save(db, application)

    return _result(True, application.id, "Field saved successfully")
