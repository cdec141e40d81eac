"""
Unit tests for the email template service and templated mailer.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from vulcan.modules.email_templates import mailer
from vulcan.modules.email_templates.models import EmailTemplate, TemplateFormat
from vulcan.modules.email_templates.service import (
    InvalidTemplateContentError,
    TemplateNotFoundError,
    apply_content_update,
    get_template,
    render_preview,
    update_template,
)


class TestApplyContentUpdate:
    def test_body_change_bumps_version_and_keeps_previous(self, voucher_template):
        old_body = voucher_template.body
        changes = apply_content_update(
            voucher_template, body="Code: %<voucher_code>s. Thanks, %<user_first_name>s."
        )

        assert voucher_template.version == 2
        assert voucher_template.previous_body == old_body
        assert voucher_template.previous_subject == "Your voucher %<voucher_code>s"
        assert set(changes) == {"body"}
        assert changes["body"]["from"] == old_body

    def test_description_only_keeps_version(self, voucher_template):
        changes = apply_content_update(voucher_template, description="Voucher email")

        assert voucher_template.version == 1
        assert voucher_template.previous_body is None
        assert changes == {"description": {"from": None, "to": "Voucher email"}}

    def test_same_content_is_not_a_change(self, voucher_template):
        changes = apply_content_update(voucher_template, body=voucher_template.body)

        assert changes == {}
        assert voucher_template.version == 1

    def test_unauthorized_variable_rejected(self, voucher_template):
        with pytest.raises(InvalidTemplateContentError) as exc_info:
            apply_content_update(voucher_template, body="%<voucher_code>s %<password>s")

        assert exc_info.value.status_code == 422
        assert "password" in exc_info.value.message
        assert voucher_template.version == 1

    def test_removing_required_variable_rejected(self, voucher_template):
        with pytest.raises(InvalidTemplateContentError) as exc_info:
            apply_content_update(voucher_template, body="Hello %<user_first_name>s")

        assert exc_info.value.errors == ["Body is missing required variables: voucher_code"]


class TestUpdateTemplate:
    @pytest.mark.asyncio
    async def test_content_change_flags_counterparts(self, mock_db, voucher_template):
        spanish = EmailTemplate(name=voucher_template.name, locale="es", needs_sync=False)
        actor_id = uuid4()

        with (
            patch("vulcan.modules.email_templates.service.repository") as mock_repo,
            patch(
                "vulcan.modules.email_templates.service.record_event", new=AsyncMock()
            ) as mock_event,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=voucher_template)
            mock_repo.list_counterparts = AsyncMock(return_value=[spanish])

            result = await update_template(
                mock_db,
                voucher_template.id,
                actor_id,
                subject="Voucher %<voucher_code>s is ready",
            )

        assert result.version == 2
        assert result.updated_by_id == actor_id
        assert spanish.needs_sync is True
        mock_event.assert_awaited_once()
        assert mock_event.call_args.args[1] == "email_template_updated"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_changes_skips_commit(self, mock_db, voucher_template):
        with patch("vulcan.modules.email_templates.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=voucher_template)

            await update_template(mock_db, voucher_template.id, uuid4())

        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_template(self, mock_db):
        with patch("vulcan.modules.email_templates.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(TemplateNotFoundError) as exc_info:
                await get_template(mock_db, uuid4())

        assert exc_info.value.status_code == 404


def test_render_preview_fills_sample_values(voucher_template):
    subject, body = render_preview(voucher_template)
    assert subject == "Your voucher Sample Voucher Code"
    assert "Sample User First Name" in body


class TestSendTemplatedEmail:
    @pytest.mark.asyncio
    async def test_sends_rendered_text(self, mock_db, voucher_template):
        with (
            patch("vulcan.modules.email_templates.mailer.repository") as mock_repo,
            patch(
                "vulcan.modules.email_templates.mailer.send_email",
                new=AsyncMock(return_value=True),
            ) as mock_send,
        ):
            mock_repo.find_with_fallback = AsyncMock(return_value=voucher_template)

            sent = await mailer.send_templated_email(
                mock_db,
                voucher_template.name,
                "ada@example.org",
                {"voucher_code": "ABC123", "user_first_name": "Ada"},
                locale="es",
            )

        assert sent is True
        mock_repo.find_with_fallback.assert_awaited_once_with(
            mock_db, voucher_template.name, TemplateFormat.TEXT, "es"
        )
        mock_send.assert_awaited_once_with(
            "ada@example.org",
            "Your voucher ABC123",
            text_content="Dear Ada, your code is ABC123.",
        )

    @pytest.mark.asyncio
    async def test_disabled_template_not_sent(self, mock_db, voucher_template):
        voucher_template.enabled = False
        with (
            patch("vulcan.modules.email_templates.mailer.repository") as mock_repo,
            patch("vulcan.modules.email_templates.mailer.send_email", new=AsyncMock()) as mock_send,
        ):
            mock_repo.find_with_fallback = AsyncMock(return_value=voucher_template)

            sent = await mailer.send_templated_email(
                mock_db, voucher_template.name, "ada@example.org", {"voucher_code": "X"}
            )

        assert sent is False
        mock_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_required_variable_not_sent(self, mock_db, voucher_template):
        with (
            patch("vulcan.modules.email_templates.mailer.repository") as mock_repo,
            patch("vulcan.modules.email_templates.mailer.send_email", new=AsyncMock()) as mock_send,
        ):
            mock_repo.find_with_fallback = AsyncMock(return_value=voucher_template)

            sent = await mailer.send_templated_email(
                mock_db, voucher_template.name, "ada@example.org", {"user_first_name": "Ada"}
            )

        assert sent is False
        mock_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_recipient(self, mock_db):
        assert await mailer.send_templated_email(mock_db, "any", None, {}) is False
