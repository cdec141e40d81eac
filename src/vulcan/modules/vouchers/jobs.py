"""
Voucher Background Jobs

Expires active vouchers whose expiration date has passed. Each voucher is
expired in its own session under a row lock, so a failure on one does not
stop the rest and a voucher redeemed in the meantime is left alone.

Schedule:
- Runs daily and can be triggered manually via the debug endpoints
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from vulcan.core.database import async_session_maker
from vulcan.core.scheduler import register_job
from vulcan.modules.vouchers import repository, service

logger = logging.getLogger(__name__)

JOB_ID_EXPIRE_VOUCHERS = "vouchers_expire"


async def expire_vouchers() -> dict[str, Any]:
    executed_at = datetime.now(UTC)
    results: dict[str, Any] = {
        "executed_at": executed_at.isoformat(),
        "expired": [],
        "skipped": 0,
        "total_errors": 0,
    }

    async with async_session_maker() as db:
        vouchers = await repository.list_expired_active(db, executed_at)

    logger.info(f"Found {len(vouchers)} active vouchers past their expiration date")

    for voucher in vouchers:
        try:
            async with async_session_maker() as db:
                if await service.expire_voucher(db, voucher.id):
                    results["expired"].append(voucher.code)
                else:
                    results["skipped"] += 1
        except Exception as e:
            logger.error(f"Error expiring voucher {voucher.code}: {e}", exc_info=True)
            results["total_errors"] += 1

    logger.info(
        f"Voucher expiry job completed. Expired: {len(results['expired'])}, "
        f"Errors: {results['total_errors']}"
    )
    return results


def register_voucher_jobs() -> None:
    logger.info("Registering voucher background jobs...")
    register_job(
        job_id=JOB_ID_EXPIRE_VOUCHERS,
        func=expire_vouchers,
        trigger=IntervalTrigger(days=1),
    )
