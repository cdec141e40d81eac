"""
Service result object.

Multi-step services (voucher redemption, document signing requests, user
filtering) report their outcome as a Result instead of raising, so callers
can show the message to the user as-is.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Result:
    success: bool
    message: str = ""
    data: Any = None
    error_type: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def failure(self) -> bool:
        return not self.success

    @classmethod
    def ok(cls, message: str = "", data: Any = None) -> "Result":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(
        cls,
        message: str,
        data: Any = None,
        error_type: str | None = None,
        errors: list[str] | None = None,
    ) -> "Result":
        return cls(
            success=False,
            message=message,
            data=data,
            error_type=error_type,
            errors=errors or [message],
        )
