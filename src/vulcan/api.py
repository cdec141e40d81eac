from fastapi import APIRouter

from vulcan.modules.applications.admin_router import router as admin_applications_router
from vulcan.modules.applications.router import router as applications_router
from vulcan.modules.auth.router import router as auth_router
from vulcan.modules.document_signing.router import router as document_signing_router
from vulcan.modules.document_signing.router import webhook_router as docuseal_webhook_router
from vulcan.modules.email_templates.router import router as email_templates_router
from vulcan.modules.feature_flags.router import router as feature_flags_router
from vulcan.modules.guardians.router import admin_router as admin_guardians_router
from vulcan.modules.guardians.router import router as guardians_router
from vulcan.modules.notifications.router import files_router
from vulcan.modules.notifications.router import router as notifications_router
from vulcan.modules.notifications.router import webhook_router as twilio_webhook_router
from vulcan.modules.rejection_reasons.router import router as rejection_reasons_router
from vulcan.modules.users.router import router as admin_users_router
from vulcan.modules.vouchers.router import admin_router as admin_vouchers_router
from vulcan.modules.vouchers.router import vendor_router as vendor_vouchers_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

# Constituent portal
api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])
api_router.include_router(guardians_router, prefix="/guardians", tags=["Guardians"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])

# Vendor portal
api_router.include_router(
    vendor_vouchers_router, prefix="/vendor/vouchers", tags=["Vendor - Vouchers"]
)

# Admin
api_router.include_router(
    admin_applications_router,
    prefix="/admin/applications",
    tags=["Admin - Applications"],
)
api_router.include_router(
    document_signing_router,
    prefix="/admin/applications",
    tags=["Admin - Document Signing"],
)
api_router.include_router(
    admin_vouchers_router, prefix="/admin/vouchers", tags=["Admin - Vouchers"]
)
api_router.include_router(admin_users_router, prefix="/admin/users", tags=["Admin - Users"])
api_router.include_router(
    admin_guardians_router,
    prefix="/admin/guardian-relationships",
    tags=["Admin - Guardians"],
)
api_router.include_router(
    email_templates_router,
    prefix="/admin/email-templates",
    tags=["Admin - Email Templates"],
)
api_router.include_router(
    rejection_reasons_router,
    prefix="/admin/rejection-reasons",
    tags=["Admin - Rejection Reasons"],
)
api_router.include_router(
    feature_flags_router,
    prefix="/admin/feature-flags",
    tags=["Admin - Feature Flags"],
)

# Vendor callbacks and files they fetch
api_router.include_router(docuseal_webhook_router, prefix="/webhooks/docuseal", tags=["Webhooks"])
api_router.include_router(twilio_webhook_router, prefix="/webhooks/twilio", tags=["Webhooks"])
api_router.include_router(files_router, prefix="/files", tags=["Files"])
