"""
Notifications module - provider notices (fax/email), SMS, fax status callbacks.
"""

from vulcan.modules.notifications.models import Notification
from vulcan.modules.notifications.provider_notifier import MedicalProviderNotifier

__all__ = ["MedicalProviderNotifier", "Notification"]
