"""
Fixtures for application tests.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from vulcan.modules.applications.models import (
    Application,
    ApplicationStatus,
    ApplicationType,
    DocumentSigningStatus,
    MedicalCertificationStatus,
    ProofStatus,
    SubmissionMethod,
)
from vulcan.modules.users.models import User, UserRole


def make_user(**overrides) -> User:
    fields = {
        "id": uuid4(),
        "email": "constituent@example.org",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "role": UserRole.CONSTITUENT,
        "locale": "en",
        "date_of_birth": date(1980, 5, 17),
        "physical_address_1": "100 Main St",
        "hearing_disability": True,
        "vision_disability": False,
        "speech_disability": False,
        "mobility_disability": False,
        "cognition_disability": False,
        "totp_enabled": False,
        "sms_2fa_enabled": False,
        "is_active": True,
    }
    fields.update(overrides)
    return User(**fields)


def make_application(user: User | None = None, **overrides) -> Application:
    """A transient application with every status column set explicitly."""
    user = user or make_user()
    fields = {
        "id": uuid4(),
        "user_id": user.id,
        "status": ApplicationStatus.IN_PROGRESS,
        "application_type": ApplicationType.NEW,
        "submission_method": SubmissionMethod.ONLINE,
        "application_date": date(2026, 9, 1),
        "household_size": 2,
        "annual_income": Decimal("25000.00"),
        "maryland_resident": True,
        "self_certify_disability": True,
        "terms_accepted": True,
        "information_verified": True,
        "medical_release_authorized": True,
        "medical_provider_name": "Dr. Grace Hopper",
        "medical_provider_phone": "410-555-1234",
        "medical_provider_email": "provider@example.org",
        "income_proof_status": ProofStatus.NOT_REVIEWED,
        "residency_proof_status": ProofStatus.NOT_REVIEWED,
        "income_proof_key": "proofs/income.pdf",
        "residency_proof_key": "proofs/residency.pdf",
        "total_rejections": 0,
        "medical_certification_status": MedicalCertificationStatus.NOT_REQUESTED,
        "medical_certification_request_count": 0,
        "document_signing_status": DocumentSigningStatus.NOT_SENT,
        "document_signing_request_count": 0,
    }
    fields.update(overrides)
    application = Application(**fields)
    application.user = user
    return application


@pytest.fixture
def applicant():
    return make_user()


@pytest.fixture
def application(applicant):
    return make_application(applicant)
