"""
Users module - accounts for staff, constituents and vendors.
"""

from vulcan.modules.users.models import User, UserRole
from vulcan.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserRepository"]
