"""
Audit module - append-only event log.
"""

from vulcan.modules.audit.models import Event
from vulcan.modules.audit.repository import record_event, record_event_safely

__all__ = ["Event", "record_event", "record_event_safely"]
