"""
Rejection reasons module - the catalogue of proof rejection texts (en/es).
"""

from vulcan.modules.rejection_reasons.models import RejectionProofType, RejectionReason

__all__ = ["RejectionProofType", "RejectionReason"]
