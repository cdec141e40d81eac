"""
Feature flags module - runtime switches such as vouchers_enabled.
"""

from vulcan.modules.feature_flags.models import VOUCHERS_ENABLED, FeatureFlag

__all__ = ["FeatureFlag", "VOUCHERS_ENABLED"]
