"""
Guardians module - guardian/dependent relationships.
"""

from vulcan.modules.guardians.models import GuardianRelationship

__all__ = ["GuardianRelationship"]
