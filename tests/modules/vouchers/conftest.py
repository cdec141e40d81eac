"""
Fixtures for voucher tests.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from tests.modules.applications.conftest import make_application, make_user
from vulcan.modules.applications.models import ApplicationStatus
from vulcan.modules.users.models import UserRole
from vulcan.modules.vouchers import verification
from vulcan.modules.vouchers.models import Voucher, VoucherStatus


def make_voucher(application=None, **overrides) -> Voucher:
    issued_at = datetime.now(UTC) - timedelta(days=10)
    fields = {
        "id": uuid4(),
        "code": "ABCD2345EFGH",
        "application_id": None,
        "initial_value": Decimal("500.00"),
        "remaining_value": Decimal("500.00"),
        "status": VoucherStatus.ACTIVE,
        "issued_at": issued_at,
        "expires_at": issued_at + timedelta(days=180),
    }
    fields.update(overrides)
    application = application or make_application(status=ApplicationStatus.APPROVED)
    fields["application_id"] = application.id
    voucher = Voucher(**fields)
    voucher.application = application
    return voucher


@pytest.fixture
def voucher():
    return make_voucher()


@pytest.fixture
def vendor():
    return make_user(
        email="vendor@example.org",
        first_name="Val",
        last_name="Vendor",
        role=UserRole.VENDOR,
        business_name="Accessible Phones LLC",
        vendor_approved=True,
        date_of_birth=None,
    )


@pytest.fixture(autouse=True)
def clear_verification_store():
    verification._memory_store.clear()
    yield
    verification._memory_store.clear()
