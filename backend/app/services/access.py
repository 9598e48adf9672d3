from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from app.models.subscription import SubscriptionType


FOUR_DAY_WELCOME_WINDOW = timedelta(hours=48)
FOUR_DAY_PLAN_DAYS = 4
FOUR_DAY_UNLOCK_HOUR = 21


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes even for timezone-aware columns; treat those as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _current_day(sub: Any) -> int | None:
    content = getattr(sub, "unlocked_content", None) or {}
    if not isinstance(content, dict):
        return None
    raw = content.get("currentDay")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def _plan_type(sub: Any) -> str:
    return str(getattr(sub, "type", "") or "").strip().upper()


@dataclass(frozen=True)
class AccessDecision:
    effective_subscription: Any | None
    is_premium_unlocked: bool
    should_show_four_day_plan: bool

    @property
    def has_effective_plan(self) -> bool:
        return self.effective_subscription is not None

    @property
    def plan_type(self) -> str | None:
        if self.effective_subscription is None:
            return None
        return _plan_type(self.effective_subscription)

    @property
    def dashboard_view(self) -> str:
        plan = self.plan_type
        if plan == SubscriptionType.SIX_MONTH.value:
            return "six_month"
        if plan == SubscriptionType.FOUR_DAY.value:
            return "four_day_welcome" if self.should_show_four_day_plan else "four_day"
        return "upgrade"


NO_PLAN = AccessDecision(effective_subscription=None, is_premium_unlocked=False, should_show_four_day_plan=False)


def should_show_four_day_plan(sub: Any, now: datetime) -> bool:
    start = ensure_utc(getattr(sub, "start_date", None))
    if start is None:
        return False
    return _current_day(sub) == 1 and start > ensure_utc(now) - FOUR_DAY_WELCOME_WINDOW


def evaluate_access(subscriptions: Iterable[Any], now: datetime | None = None) -> AccessDecision:
    """Pick the effective subscription for a user.

    An active SIX_MONTH subscription wins outright, its dates are not
    checked. Otherwise the latest active FOUR_DAY subscription is effective
    with premium content locked. No active subscription yields NO_PLAN,
    which callers treat as "send to the upgrade page".
    """
    now = ensure_utc(now) or utcnow()
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    ordered = sorted(
        list(subscriptions or []),
        key=lambda s: ensure_utc(getattr(s, "start_date", None)) or epoch,
        reverse=True,
    )

    for sub in ordered:
        if _plan_type(sub) == SubscriptionType.SIX_MONTH.value and bool(getattr(sub, "is_active", False)):
            return AccessDecision(effective_subscription=sub, is_premium_unlocked=True, should_show_four_day_plan=False)

    for sub in ordered:
        if _plan_type(sub) == SubscriptionType.FOUR_DAY.value and bool(getattr(sub, "is_active", False)):
            return AccessDecision(
                effective_subscription=sub,
                is_premium_unlocked=False,
                should_show_four_day_plan=should_show_four_day_plan(sub, now),
            )

    return NO_PLAN


def is_subscription_valid(sub: Any, now: datetime | None = None) -> bool:
    now = ensure_utc(now) or utcnow()
    end = ensure_utc(getattr(sub, "end_date", None))
    if end is None:
        return False
    return bool(getattr(sub, "is_active", False)) and now <= end


def four_day_unlock_time(start_date: datetime, day: int, tz: str = "UTC") -> datetime:
    """Day n of the four-day plan opens at 21:00 local time, n-1 days after the start."""
    zone = ZoneInfo(tz)
    local_start = ensure_utc(start_date).astimezone(zone)
    base = local_start + timedelta(days=int(day) - 1)
    unlock = base.replace(hour=FOUR_DAY_UNLOCK_HOUR, minute=0, second=0, microsecond=0)
    return unlock.astimezone(timezone.utc)


def four_day_progress(sub: Any, now: datetime | None = None, tz: str = "UTC", days: int = FOUR_DAY_PLAN_DAYS) -> dict:
    now = ensure_utc(now) or utcnow()
    start = ensure_utc(getattr(sub, "start_date", None))
    if start is None:
        return {"currentDay": None, "unlockedDays": [], "schedule": []}

    schedule = []
    unlocked: list[int] = []
    for day in range(1, days + 1):
        unlock_at = four_day_unlock_time(start, day, tz)
        is_unlocked = now >= unlock_at
        if is_unlocked:
            unlocked.append(day)
        schedule.append({"day": day, "unlockAt": unlock_at.isoformat(), "isUnlocked": is_unlocked})

    current_day = max(unlocked) if unlocked else 1
    return {"currentDay": current_day, "unlockedDays": unlocked, "schedule": schedule}


def four_day_unlocked_days(sub: Any, now: datetime | None = None, tz: str = "UTC") -> set[int]:
    """Days opened by the schedule plus any stored as unlocked at grant time."""
    days = set(four_day_progress(sub, now=now, tz=tz)["unlockedDays"])
    content = getattr(sub, "unlocked_content", None) or {}
    stored = content.get("unlockedVideos") if isinstance(content, dict) else None
    for raw in stored or []:
        try:
            days.add(int(raw))
        except (TypeError, ValueError):
            continue
    return days
