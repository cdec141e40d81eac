"""
Email Template Model

Program emails are stored in the database so staff can edit wording
without a deploy. A template is identified by (name, format, locale);
English and Spanish versions are kept in step with the `needs_sync` flag.
"""

import enum
import uuid
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from vulcan.modules.shared import BaseModel


class TemplateFormat(str, enum.Enum):
    HTML = "html"
    TEXT = "text"


class EmailTemplate(BaseModel):
    __tablename__ = "email_templates"
    __table_args__ = (
        UniqueConstraint("name", "format", "locale", name="uq_email_templates_name_format_locale"),
        CheckConstraint("version >= 1", name="ck_email_templates_version_positive"),
    )

    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    format: Mapped[TemplateFormat] = mapped_column(
        Enum(TemplateFormat, name="email_template_format"),
        nullable=False,
        default=TemplateFormat.TEXT,
    )
    locale: Mapped[str] = mapped_column(String(5), nullable=False, default="en")
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # {"required": [...], "optional": [...]}
    variables: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    previous_subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    previous_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    needs_sync: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<EmailTemplate(name={self.name}, format={self.format.value}, locale={self.locale})>"

    @property
    def required_variables(self) -> list[str]:
        return list((self.variables or {}).get("required", []))

    @property
    def optional_variables(self) -> list[str]:
        return list((self.variables or {}).get("optional", []))

    @property
    def allowed_variables(self) -> list[str]:
        return self.required_variables + self.optional_variables
