"""
Voucher Routers

Vendor portal (approved vendors):
- GET /vendor/vouchers/transactions - My recent redemptions
- GET /vendor/vouchers/products - Products available for redemption
- GET /vendor/vouchers/{code} - Look up a voucher
- POST /vendor/vouchers/{code}/verify - Verify the holder's date of birth
- POST /vendor/vouchers/{code}/redeem - Redeem against products

Admin:
- POST /admin/vouchers/applications/{id} - Issue a voucher
- GET /admin/vouchers/applications/{id} - Vouchers for an application
- GET /admin/vouchers/{id}/transactions - Voucher transaction history
- POST /admin/vouchers/{id}/cancel - Cancel a voucher
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import AdminUser, CurrentUser, get_current_admin_user, get_current_vendor
from vulcan.core.database import get_db
from vulcan.modules.users.repository import UserRepository
from vulcan.modules.vouchers import repository, service, verification
from vulcan.modules.vouchers.redemption import VoucherRedemptionService
from vulcan.modules.vouchers.schemas import (
    ProductResponse,
    RedemptionRequest,
    RedemptionResponse,
    TransactionResponse,
    VendorVoucherView,
    VerifyIdentityRequest,
    VerifyIdentityResponse,
    VoucherCancelRequest,
    VoucherIssueRequest,
    VoucherResponse,
)
from vulcan.modules.vouchers.service import VoucherServiceError

logger = logging.getLogger(__name__)

vendor_router = APIRouter()
admin_router = APIRouter()


def _handle_service_error(e: VoucherServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={"error": e.error_code, "message": e.message},
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
    )


# ============================================
# Vendor portal
# ============================================


@vendor_router.get(
    "/transactions",
    response_model=list[TransactionResponse],
    summary="My Redemptions",
)
async def list_my_transactions(
    db: AsyncSession = Depends(get_db),
    vendor: CurrentUser = Depends(get_current_vendor),
) -> list[TransactionResponse]:
    transactions = await repository.list_transactions_for_vendor(db, vendor.id)
    return [TransactionResponse.model_validate(t) for t in transactions]


@vendor_router.get(
    "/products",
    response_model=list[ProductResponse],
    summary="Redeemable Products",
)
async def list_products(
    db: AsyncSession = Depends(get_db),
    vendor: CurrentUser = Depends(get_current_vendor),
) -> list[ProductResponse]:
    products = await repository.list_products(db)
    return [ProductResponse.model_validate(p) for p in products]


@vendor_router.get(
    "/{code}",
    response_model=VendorVoucherView,
    summary="Look Up Voucher",
    responses={404: {"description": "Invalid voucher code"}},
)
async def get_voucher(
    code: str,
    db: AsyncSession = Depends(get_db),
    vendor: CurrentUser = Depends(get_current_vendor),
) -> VendorVoucherView:
    try:
        voucher = await service.get_by_code(db, code)
    except VoucherServiceError as e:
        _handle_service_error(e)

    used = await verification.attempts_used(vendor.id, voucher.id)
    return VendorVoucherView(
        code=voucher.code,
        status=voucher.status,
        remaining_value=voucher.remaining_value,
        expires_at=voucher.expires_at,
        identity_verified=await verification.is_verified(vendor.id, voucher.id),
        attempts_left=max(verification.MAX_ATTEMPTS - used, 0),
    )


@vendor_router.post(
    "/{code}/verify",
    response_model=VerifyIdentityResponse,
    summary="Verify Voucher Holder",
    description="""
Confirm the voucher holder's identity by their date of birth.

At most 3 attempts per voucher. A successful verification lasts 30 minutes
and is required before redeeming.
""",
    responses={
        404: {"description": "Invalid voucher code"},
        409: {"description": "Voucher is not active"},
    },
)
async def verify_identity(
    code: str,
    request: VerifyIdentityRequest,
    db: AsyncSession = Depends(get_db),
    vendor: CurrentUser = Depends(get_current_vendor),
) -> VerifyIdentityResponse:
    try:
        voucher = await service.get_by_code(db, code)
        if not voucher.is_active:
            raise service.VoucherNotActiveError()
    except VoucherServiceError as e:
        _handle_service_error(e)

    result = await verification.verify_date_of_birth(db, voucher, vendor.id, request.date_of_birth)
    return VerifyIdentityResponse(
        success=result.success,
        message=result.message,
        attempts_left=result.attempts_left,
    )


@vendor_router.post(
    "/{code}/redeem",
    response_model=RedemptionResponse,
    summary="Redeem Voucher",
    description="""
Redeem part or all of a voucher's balance.

Validation failures return 422 with the message to show the vendor. When
`error_type` is `identity_verification_required` the holder must be
verified again first.
""",
    responses={
        404: {"description": "Invalid voucher code"},
        422: {"description": "Redemption refused"},
    },
)
async def redeem_voucher(
    code: str,
    request: RedemptionRequest,
    db: AsyncSession = Depends(get_db),
    vendor: CurrentUser = Depends(get_current_vendor),
) -> RedemptionResponse:
    try:
        voucher = await service.get_by_code(db, code)
    except VoucherServiceError as e:
        _handle_service_error(e)

    vendor_user = await UserRepository.get_by_id(db, vendor.id)
    if vendor_user is None:
        raise _internal_error()

    result = await VoucherRedemptionService(
        db,
        voucher,
        vendor_user,
        request.amount,
        request.product_ids,
        notes=request.notes,
    ).call()

    if result.failure:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "REDEMPTION_FAILED",
                "message": result.message,
                "error_type": result.error_type,
            },
        )

    return RedemptionResponse(
        success=True,
        message=result.message,
        transaction=TransactionResponse.model_validate(result.data["transaction"]),
        voucher=VoucherResponse.model_validate(result.data["voucher"]),
    )


# ============================================
# Admin
# ============================================


@admin_router.post(
    "/applications/{application_id}",
    response_model=VoucherResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue Voucher",
    description="""
Issue a voucher for an approved application. The value defaults to the
program's standard voucher value. The constituent is notified by email
(and SMS when a phone number is on file).
""",
    responses={
        404: {"description": "Application not found"},
        409: {"description": "Not approved or an active voucher exists"},
    },
)
async def issue_voucher(
    application_id: UUID,
    request: VoucherIssueRequest | None = None,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> VoucherResponse:
    try:
        voucher = await service.issue_voucher(
            db, application_id, admin.id, value=request.value if request else None
        )
        return VoucherResponse.model_validate(voucher)
    except VoucherServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error issuing voucher for application {application_id}: {e}")
        raise _internal_error() from e


@admin_router.get(
    "/applications/{application_id}",
    response_model=list[VoucherResponse],
    summary="Application Vouchers",
)
async def list_application_vouchers(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> list[VoucherResponse]:
    vouchers = await repository.list_for_application(db, application_id)
    return [VoucherResponse.model_validate(v) for v in vouchers]


@admin_router.get(
    "/{voucher_id}/transactions",
    response_model=list[TransactionResponse],
    summary="Voucher Transactions",
)
async def list_voucher_transactions(
    voucher_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> list[TransactionResponse]:
    transactions = await repository.list_transactions_for_voucher(db, voucher_id)
    return [TransactionResponse.model_validate(t) for t in transactions]


@admin_router.post(
    "/{voucher_id}/cancel",
    response_model=VoucherResponse,
    summary="Cancel Voucher",
    responses={404: {"description": "Voucher not found"}, 409: {"description": "Not active"}},
)
async def cancel_voucher(
    voucher_id: UUID,
    request: VoucherCancelRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> VoucherResponse:
    try:
        voucher = await service.cancel_voucher(db, voucher_id, admin.id, request.reason)
        return VoucherResponse.model_validate(voucher)
    except VoucherServiceError as e:
        _handle_service_error(e)
