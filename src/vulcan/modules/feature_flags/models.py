"""
Feature Flag Model
"""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from vulcan.modules.shared import BaseModel

VOUCHERS_ENABLED = "vouchers_enabled"


class FeatureFlag(BaseModel):
    __tablename__ = "feature_flags"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<FeatureFlag(name={self.name}, enabled={self.enabled})>"
