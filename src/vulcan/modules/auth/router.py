"""
Authentication Router

Endpoints:
- POST /auth/login - Email and password; tokens or a 2FA challenge
- POST /auth/refresh - Exchange a refresh token for new tokens
- GET /auth/me - The signed-in user
- POST /auth/2fa/verify - Exchange a 2FA challenge and code for tokens
- POST /auth/2fa/sms/send - Resend the SMS code for a login challenge
- GET /auth/2fa - Two-factor status
- POST /auth/2fa/totp/setup - Generate an authenticator secret
- POST /auth/2fa/totp/enable - Confirm the authenticator and enable TOTP
- POST /auth/2fa/sms/setup - Register a phone and send a code
- POST /auth/2fa/sms/enable - Confirm the code and enable SMS 2FA
- POST /auth/2fa/disable - Turn two-factor authentication off
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.auth import CurrentUser, get_current_user
from vulcan.core.database import get_db
from vulcan.core.rate_limit import rate_limit
from vulcan.core.security import (
    TOKEN_TYPE_2FA_CHALLENGE,
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_challenge_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from vulcan.modules.audit.repository import record_event_safely
from vulcan.modules.auth import two_factor
from vulcan.modules.auth.schemas import (
    ChallengeRequest,
    CodeRequest,
    DisableTwoFactorRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    SmsCodeResponse,
    SmsSetupRequest,
    TotpSetupResponse,
    TwoFactorChallengeResponse,
    TwoFactorStatusResponse,
    TwoFactorVerifyRequest,
    UserResponse,
)
from vulcan.modules.users.models import User
from vulcan.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, error: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "message": message})


def _invalid_credentials() -> HTTPException:
    return _error(status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", "Invalid email or password.")


def _issue_tokens(user: User) -> LoginResponse:
    additional_claims = {
        "email": user.email,
        "role": user.role.value,
        "name": user.full_name,
    }
    return LoginResponse(
        access_token=create_access_token(subject=str(user.id), additional_claims=additional_claims),
        refresh_token=create_refresh_token(subject=str(user.id)),
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


async def _load_user(db: AsyncSession, user_id: UUID) -> User:
    user = await UserRepository.get_by_id(db, user_id)
    if user is None or not user.is_active:
        raise _error(status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN", "User no longer exists.")
    return user


async def _user_from_challenge(db: AsyncSession, challenge_token: str) -> tuple[User, str]:
    payload = decode_token(challenge_token)
    if payload is None or payload.get("type") != TOKEN_TYPE_2FA_CHALLENGE:
        raise _error(
            status.HTTP_401_UNAUTHORIZED,
            "INVALID_CHALLENGE",
            "The sign-in challenge is invalid or has expired. Please sign in again.",
        )
    user = await _load_user(db, UUID(payload["sub"]))
    return user, payload.get("method", two_factor.METHOD_TOTP)


def _sms_failure(result: two_factor.SmsVerificationResult) -> HTTPException:
    return _error(
        status.HTTP_401_UNAUTHORIZED,
        f"CODE_{result.status.upper()}",
        two_factor.SMS_FAILURE_MESSAGES.get(result.status, "The verification code is incorrect."),
    )


# ============================================
# Sign in
# ============================================


@router.post(
    "/login",
    response_model=LoginResponse | TwoFactorChallengeResponse,
    summary="Sign In",
    description="""
Authenticate with email and password.

Users with two-factor authentication get a `two_factor_required`
challenge instead of tokens; complete it with `POST /auth/2fa/verify`.
SMS users are sent their code as part of this call.

Limited to 5 attempts per minute per IP address.
""",
    responses={
        401: {"description": "Invalid credentials"},
        403: {"description": "Account inactive"},
        429: {"description": "Too many attempts"},
    },
)
@rate_limit(limit=5, window_seconds=60)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse | TwoFactorChallengeResponse:
    user = await UserRepository.get_by_email(db, credentials.email)

    if not user or not user.password_hash:
        logger.warning(f"Login attempt for unknown email: {credentials.email}")
        raise _invalid_credentials()

    if not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Invalid password for user: {credentials.email}")
        raise _invalid_credentials()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {credentials.email}")
        raise _error(
            status.HTTP_403_FORBIDDEN, "ACCOUNT_INACTIVE", "Your account has been deactivated."
        )

    if user.two_factor_enabled:
        method = two_factor.METHOD_TOTP if user.totp_enabled else two_factor.METHOD_SMS
        if method == two_factor.METHOD_SMS:
            await two_factor.send_sms_code(user.sms_2fa_phone or "")
        logger.info(f"Two-factor challenge issued for {user.email} ({method})")
        return TwoFactorChallengeResponse(
            challenge_token=create_challenge_token(str(user.id), method),
            method=method,
        )

    await UserRepository.update(db, user, last_sign_in_at=datetime.now(UTC))
    logger.info(f"User logged in: {user.email} (role: {user.role.value})")
    return _issue_tokens(user)


@router.post(
    "/refresh",
    response_model=LoginResponse,
    summary="Refresh Tokens",
    responses={401: {"description": "Invalid refresh token"}},
)
async def refresh(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    payload = decode_token(request.refresh_token)
    if payload is None or payload.get("type") != TOKEN_TYPE_REFRESH:
        raise _error(
            status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN", "Invalid or expired refresh token."
        )
    user = await _load_user(db, UUID(payload["sub"]))
    return _issue_tokens(user)


@router.get("/me", response_model=UserResponse, summary="Current User")
async def me(
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
) -> UserResponse:
    return UserResponse.model_validate(await _load_user(db, current.id))


@router.post(
    "/2fa/verify",
    response_model=LoginResponse,
    summary="Complete Two-Factor Sign In",
    responses={
        401: {"description": "Invalid challenge or code"},
        429: {"description": "Too many attempts"},
    },
)
@rate_limit(limit=10, window_seconds=300)
async def verify_two_factor(
    request: Request,
    body: TwoFactorVerifyRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    user, method = await _user_from_challenge(db, body.challenge_token)

    if method == two_factor.METHOD_SMS:
        result = await two_factor.check_sms_code(user.sms_2fa_phone or "", body.code)
        if not result.success:
            logger.warning(f"SMS 2FA failed for {user.email}: {result.status}")
            raise _sms_failure(result)
    elif not two_factor.verify_totp(user.totp_secret, body.code):
        logger.warning(f"TOTP 2FA failed for {user.email}")
        raise _error(
            status.HTTP_401_UNAUTHORIZED, "CODE_INVALID", "The verification code is incorrect."
        )

    await UserRepository.update(db, user, last_sign_in_at=datetime.now(UTC))
    logger.info(f"User logged in with {method} 2FA: {user.email}")
    return _issue_tokens(user)


@router.post(
    "/2fa/sms/send",
    response_model=SmsCodeResponse,
    summary="Resend Sign-In Code",
)
@rate_limit(limit=3, window_seconds=300)
async def resend_sms_code(
    request: Request,
    body: ChallengeRequest,
    db: AsyncSession = Depends(get_db),
) -> SmsCodeResponse:
    user, method = await _user_from_challenge(db, body.challenge_token)
    if method != two_factor.METHOD_SMS or not user.sms_2fa_phone:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "SMS_NOT_ENABLED", "SMS verification is not enabled."
        )
    result = await two_factor.send_sms_code(user.sms_2fa_phone)
    return SmsCodeResponse(
        success=result.success,
        status=result.status,
        message="Code sent" if result.success else "The code could not be sent.",
    )


# ============================================
# Two-factor management
# ============================================


def _status(user: User) -> TwoFactorStatusResponse:
    return TwoFactorStatusResponse(
        two_factor_enabled=user.two_factor_enabled,
        totp_enabled=user.totp_enabled,
        sms_2fa_enabled=user.sms_2fa_enabled,
        sms_2fa_phone=user.sms_2fa_phone,
    )


@router.get("/2fa", response_model=TwoFactorStatusResponse, summary="Two-Factor Status")
async def two_factor_status(
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
) -> TwoFactorStatusResponse:
    return _status(await _load_user(db, current.id))


@router.post(
    "/2fa/totp/setup",
    response_model=TotpSetupResponse,
    summary="Set Up Authenticator App",
    description="""
Generate a new authenticator secret. TOTP stays disabled until a code from
the app is confirmed with `POST /auth/2fa/totp/enable`.
""",
)
async def setup_totp(
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
) -> TotpSetupResponse:
    user = await _load_user(db, current.id)
    secret = two_factor.generate_totp_secret()
    await UserRepository.update(db, user, totp_secret=secret, totp_enabled=False)
    return TotpSetupResponse(
        secret=secret,
        provisioning_uri=two_factor.provisioning_uri(secret, user.email),
    )


@router.post(
    "/2fa/totp/enable",
    response_model=TwoFactorStatusResponse,
    summary="Enable Authenticator App",
    responses={400: {"description": "Setup not started"}, 401: {"description": "Invalid code"}},
)
async def enable_totp(
    body: CodeRequest,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
) -> TwoFactorStatusResponse:
    user = await _load_user(db, current.id)
    if not user.totp_secret:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "TOTP_NOT_SET_UP", "Set up an authenticator app first."
        )
    if not two_factor.verify_totp(user.totp_secret, body.code):
        raise _error(
            status.HTTP_401_UNAUTHORIZED, "CODE_INVALID", "The verification code is incorrect."
        )

    user = await UserRepository.update(db, user, totp_enabled=True)
    await record_event_safely(
        db,
        "two_factor_enabled",
        actor_id=user.id,
        auditable=user,
        metadata={"method": two_factor.METHOD_TOTP},
    )
    return _status(user)


@router.post(
    "/2fa/sms/setup",
    response_model=SmsCodeResponse,
    summary="Set Up SMS Codes",
    responses={422: {"description": "Phone not formatted XXX-XXX-XXXX"}},
)
@rate_limit(limit=3, window_seconds=300)
async def setup_sms(
    request: Request,
    body: SmsSetupRequest,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
) -> SmsCodeResponse:
    if not two_factor.valid_phone_format(body.phone):
        raise _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "INVALID_PHONE",
            "Phone number must be formatted XXX-XXX-XXXX.",
        )

    user = await _load_user(db, current.id)
    await UserRepository.update(db, user, sms_2fa_phone=body.phone.strip(), sms_2fa_enabled=False)
    result = await two_factor.send_sms_code(body.phone)
    return SmsCodeResponse(
        success=result.success,
        status=result.status,
        message="Code sent" if result.success else "The code could not be sent.",
    )


@router.post(
    "/2fa/sms/enable",
    response_model=TwoFactorStatusResponse,
    summary="Enable SMS Codes",
    responses={400: {"description": "Setup not started"}, 401: {"description": "Invalid code"}},
)
async def enable_sms(
    body: CodeRequest,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
) -> TwoFactorStatusResponse:
    user = await _load_user(db, current.id)
    if not user.sms_2fa_phone:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "SMS_NOT_SET_UP", "Register a phone number first."
        )

    result = await two_factor.check_sms_code(user.sms_2fa_phone, body.code)
    if not result.success:
        raise _sms_failure(result)

    user = await UserRepository.update(db, user, sms_2fa_enabled=True)
    await record_event_safely(
        db,
        "two_factor_enabled",
        actor_id=user.id,
        auditable=user,
        metadata={"method": two_factor.METHOD_SMS},
    )
    return _status(user)


@router.post(
    "/2fa/disable",
    response_model=TwoFactorStatusResponse,
    summary="Disable Two-Factor Authentication",
    responses={401: {"description": "Wrong password"}},
)
async def disable_two_factor(
    body: DisableTwoFactorRequest,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
) -> TwoFactorStatusResponse:
    user = await _load_user(db, current.id)
    if not user.password_hash or not verify_password(body.password, user.password_hash):
        raise _error(status.HTTP_401_UNAUTHORIZED, "INVALID_PASSWORD", "Incorrect password.")

    user = await UserRepository.update(
        db,
        user,
        totp_secret=None,
        totp_enabled=False,
        sms_2fa_phone=None,
        sms_2fa_enabled=False,
    )
    await record_event_safely(db, "two_factor_disabled", actor_id=user.id, auditable=user)
    logger.info(f"Two-factor authentication disabled for {user.email}")
    return _status(user)
