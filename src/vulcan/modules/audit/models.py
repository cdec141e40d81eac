"""
Audit Event Model

Append-only record of everything that happened to an application, a
voucher, a template, or an account: who did it (null for the system and
vendor webhooks), what, and the details in `metadata`.

Webhook failures are recorded here instead of being raised, so operators
can see why a signed document never arrived.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from vulcan.core.database import Base


class Event(Base):
    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    auditable_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    auditable_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_events_auditable", "auditable_type", "auditable_id"),
        Index("idx_events_action", "action"),
        Index("idx_events_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Event(action={self.action}, {self.auditable_type}={self.auditable_id})>"
