"""
Weekly application quota for free-tier job seekers

A quota week runs from Monday 00:00:00 to Sunday 23:59:59 in the
configured QUOTA_TIMEZONE.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import uuid
import logging

import pytz

from sqlalchemy import update, or_, case, literal
from sqlalchemy.ext.asyncio import AsyncSession

from intrarefer.core.config import settings
from intrarefer.models.base import UTCDateTime
from intrarefer.models.user import User
from intrarefer.utils.helpers import ensure_aware

logger = logging.getLogger(__name__)

def week_start(moment: datetime, tz: Optional[str] = None) -> datetime:
    """Monday 00:00:00 local time of the week containing `moment`"""
    zone = pytz.timezone(tz or settings.QUOTA_TIMEZONE)
    local = ensure_aware(moment).astimezone(zone)
    monday = local.date() - timedelta(days=local.weekday())
    return zone.localize(datetime(monday.year, monday.month, monday.day))

def is_same_week(first: datetime, second: datetime, tz: Optional[str] = None) -> bool:
    return week_start(first, tz) == week_start(second, tz)

def reset_if_new_week(user: User, now: datetime) -> bool:
    """
    Zero the counter when `now` falls in a later week than the stored week start

    Mutates the in-memory user only. Returns True when a reset happened.
    """
    stored = user.weekly_application_week_start
    if stored is not None and is_same_week(stored, now):
        return False

    user.weekly_application_count = 0
    user.weekly_application_week_start = now
    return True

def can_apply(user: User, now: datetime, limit: Optional[int] = None) -> bool:
    """True for active subscribers, otherwise while the week's count is under the limit"""
    if user.is_subscription_active(now):
        return True
    reset_if_new_week(user, now)
    return (user.weekly_application_count or 0) < (limit or settings.WEEKLY_APPLICATION_LIMIT)

async def reserve_application_slot(
    db: AsyncSession,
    user_id: uuid.UUID,
    now: datetime,
    limit: Optional[int] = None
) -> bool:
    """
    Atomically take one application slot for the current week

    A single conditional UPDATE: a stale week restarts the counter at 1,
    otherwise the counter is incremented only while below the limit.

    Returns:
        False when the weekly limit is already reached
    """
    limit = limit or settings.WEEKLY_APPLICATION_LIMIT
    current_week = week_start(now).astimezone(timezone.utc)
    is_new_week = User.weekly_application_week_start < current_week

    result = await db.execute(
        update(User)
        .where(
            User.id == user_id,
            or_(is_new_week, User.weekly_application_count < limit)
        )
        .values(
            weekly_application_count=case(
                (is_new_week, 1),
                else_=User.weekly_application_count + 1
            ),
            weekly_application_week_start=case(
                (is_new_week, literal(now, UTCDateTime())),
                else_=User.weekly_application_week_start
            )
        )
        .execution_options(synchronize_session=False)
    )

    reserved = result.rowcount == 1
    if not reserved:
        logger.info(f"Weekly application limit reached for user {user_id}")
    return reserved

def quota_snapshot(user: User, now: datetime, limit: Optional[int] = None) -> Dict[str, Any]:
    """Read-only view of the caller's quota for the current week"""
    limit = limit or settings.WEEKLY_APPLICATION_LIMIT
    current_week = week_start(now)
    unlimited = user.is_subscription_active(now)

    stored = user.weekly_application_week_start
    used = user.weekly_application_count or 0
    if stored is None or not is_same_week(stored, now):
        used = 0

    return {
        "limit": None if unlimited else limit,
        "used": used,
        "remaining": None if unlimited else max(limit - used, 0),
        "week_start": current_week,
        "resets_at": current_week + timedelta(days=7),
        "unlimited": unlimited
    }
