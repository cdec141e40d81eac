"""
Fixtures for email template tests.
"""

from uuid import uuid4

import pytest

from vulcan.modules.email_templates.models import EmailTemplate, TemplateFormat


@pytest.fixture
def voucher_template():
    """An English text template with one required and one optional variable."""
    return EmailTemplate(
        id=uuid4(),
        name="voucher_notifications_voucher_assigned",
        format=TemplateFormat.TEXT,
        locale="en",
        subject="Your voucher %<voucher_code>s",
        body="Dear %<user_first_name>s, your code is %<voucher_code>s.",
        variables={"required": ["voucher_code"], "optional": ["user_first_name"]},
        enabled=True,
        version=1,
        needs_sync=False,
    )
