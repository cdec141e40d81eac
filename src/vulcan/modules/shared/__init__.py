"""
Shared building blocks used by every module.
"""

from vulcan.modules.shared.models import BaseModel
from vulcan.modules.shared.result import Result

__all__ = ["BaseModel", "Result"]
