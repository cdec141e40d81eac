"""
Document signing: DocuSeal e-signature requests for the medical
certification form, and the webhook that brings the signed PDF back.
"""
