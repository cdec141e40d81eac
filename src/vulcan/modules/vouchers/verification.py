"""
Voucher Identity Verification

Before redeeming, a vendor confirms the constituent's identity by entering
their date of birth. State lives in Redis, keyed per vendor and voucher:

- voucher_verify:attempts:{vendor_id}:{voucher_id}  failed attempts so far
- voucher_verify:ok:{vendor_id}:{voucher_id}        set once verified

Both keys expire, so a verification only covers the vendor's current
session at the counter. Without Redis the state is kept in process memory
(single instance only), matching the rate limiter.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.core.redis import get_redis
from vulcan.modules.audit.repository import record_event_safely
from vulcan.modules.vouchers.models import Voucher

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
VERIFICATION_TTL_SECONDS = 30 * 60

# {key: (value, expires_at)}
_memory_store: dict[str, tuple[int, float]] = {}


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    message: str
    attempts_left: int


def _attempts_key(vendor_id: UUID, voucher_id: UUID) -> str:
    return f"voucher_verify:attempts:{vendor_id}:{voucher_id}"


def _verified_key(vendor_id: UUID, voucher_id: UUID) -> str:
    return f"voucher_verify:ok:{vendor_id}:{voucher_id}"


def _memory_get(key: str) -> int | None:
    entry = _memory_store.get(key)
    if entry is None:
        return None
    value, expires_at = entry
    if expires_at < time.time():
        _memory_store.pop(key, None)
        return None
    return value


def _memory_set(key: str, value: int) -> None:
    _memory_store[key] = (value, time.time() + VERIFICATION_TTL_SECONDS)


async def _get(key: str) -> int | None:
    client = await get_redis()
    if client is not None:
        try:
            value = await client.get(key)
            return int(value) if value is not None else None
        except Exception as e:
            logger.warning(f"Redis read failed for {key}, using memory: {e}")
    return _memory_get(key)


async def _set(key: str, value: int) -> None:
    client = await get_redis()
    if client is not None:
        try:
            await client.set(key, value, ex=VERIFICATION_TTL_SECONDS)
            return
        except Exception as e:
            logger.warning(f"Redis write failed for {key}, using memory: {e}")
    _memory_set(key, value)


async def _incr(key: str) -> int:
    client = await get_redis()
    if client is not None:
        try:
            value = await client.incr(key)
            await client.expire(key, VERIFICATION_TTL_SECONDS)
            return int(value)
        except Exception as e:
            logger.warning(f"Redis increment failed for {key}, using memory: {e}")
    value = (_memory_get(key) or 0) + 1
    _memory_set(key, value)
    return value


async def _delete(key: str) -> None:
    client = await get_redis()
    if client is not None:
        try:
            await client.delete(key)
        except Exception as e:
            logger.warning(f"Redis delete failed for {key}: {e}")
    _memory_store.pop(key, None)


async def attempts_used(vendor_id: UUID, voucher_id: UUID) -> int:
    return await _get(_attempts_key(vendor_id, voucher_id)) or 0


async def is_verified(vendor_id: UUID, voucher_id: UUID) -> bool:
    return bool(await _get(_verified_key(vendor_id, voucher_id)))


async def reset_attempts(vendor_id: UUID, voucher_id: UUID) -> None:
    await _delete(_attempts_key(vendor_id, voucher_id))


async def clear_verification(vendor_id: UUID, voucher_id: UUID) -> None:
    await _delete(_verified_key(vendor_id, voucher_id))


async def verify_date_of_birth(
    db: AsyncSession,
    voucher: Voucher,
    vendor_id: UUID,
    date_of_birth: date,
) -> VerificationResult:
    """
    Check the date of birth a vendor entered against the voucher holder.

    Every attempt writes a `voucher_verification_attempt` event.
    """
    used = await attempts_used(vendor_id, voucher.id)
    if used >= MAX_ATTEMPTS:
        return VerificationResult(
            success=False,
            message="Maximum verification attempts exceeded",
            attempts_left=0,
        )

    constituent = voucher.constituent
    matched = constituent.date_of_birth is not None and constituent.date_of_birth == date_of_birth
    attempt_number = used + 1

    if matched:
        await _set(_verified_key(vendor_id, voucher.id), 1)
        await reset_attempts(vendor_id, voucher.id)
        result = VerificationResult(
            success=True,
            message="Identity verified",
            attempts_left=MAX_ATTEMPTS - used,
        )
    else:
        # Concurrent attempts each get their own count
        attempt_number = await _incr(_attempts_key(vendor_id, voucher.id))
        attempts_left = max(MAX_ATTEMPTS - attempt_number, 0)
        result = VerificationResult(
            success=False,
            message=(
                f"Date of birth does not match. {attempts_left} attempts remaining."
                if attempts_left
                else "Maximum verification attempts exceeded"
            ),
            attempts_left=attempts_left,
        )

    await record_event_safely(
        db,
        "voucher_verification_attempt",
        actor_id=vendor_id,
        auditable=voucher,
        metadata={
            "voucher_id": str(voucher.id),
            "voucher_code": voucher.code,
            "constituent_id": str(constituent.id),
            "successful": matched,
            "attempt_number": attempt_number,
        },
    )
    logger.info(
        f"Voucher {voucher.code} verification by vendor {vendor_id}: "
        f"{'success' if matched else 'failed'} (attempt {attempt_number})"
    )
    return result
