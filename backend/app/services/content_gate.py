from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from fastapi import HTTPException

from app.core.settings import settings
from app.models.subscription import SubscriptionType
from app.services.access import AccessDecision, four_day_unlocked_days


def is_always_free(item: Any) -> bool:
    # webinars carry is_paid, ebooks and videos carry is_free
    if hasattr(item, "is_paid"):
        return not bool(getattr(item, "is_paid", False))
    return bool(getattr(item, "is_free", False))


def scheduled_day(item: Any) -> int | None:
    raw = getattr(item, "day", None)
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def is_accessible(
    item: Any,
    plan_type: str | None,
    purchased_webinar_ids: Iterable[str] = (),
    unlocked_days: Iterable[int] = (),
) -> bool:
    plan = str(plan_type or "").upper()
    day = scheduled_day(item)
    if day is not None:
        # day-scheduled items belong to the four-day plan and open on its schedule
        if plan == SubscriptionType.SIX_MONTH.value:
            return True
        if plan == SubscriptionType.FOUR_DAY.value:
            return day in set(unlocked_days)
        return False

    if is_always_free(item):
        return True
    if plan == SubscriptionType.SIX_MONTH.value:
        return True
    if hasattr(item, "is_paid"):
        return str(getattr(item, "id", "")) in {str(w) for w in purchased_webinar_ids}
    return False


def unlocked_days_for(decision: AccessDecision, now: datetime | None = None, tz: str | None = None) -> set[int]:
    sub = decision.effective_subscription
    if sub is None or decision.plan_type != SubscriptionType.FOUR_DAY.value:
        return set()
    return four_day_unlocked_days(sub, now=now, tz=tz or settings.content_timezone)


def gate_items(
    items: Iterable[Any],
    decision: AccessDecision,
    purchased_webinar_ids: Iterable[str] = (),
    now: datetime | None = None,
    tz: str | None = None,
) -> list[tuple[Any, bool]]:
    purchased = {str(w) for w in purchased_webinar_ids}
    unlocked = unlocked_days_for(decision, now=now, tz=tz)
    return [(item, is_accessible(item, decision.plan_type, purchased, unlocked)) for item in items]


def require_access(
    item: Any,
    decision: AccessDecision,
    purchased_webinar_ids: Iterable[str] = (),
    now: datetime | None = None,
    tz: str | None = None,
) -> None:
    unlocked = unlocked_days_for(decision, now=now, tz=tz)
    if is_accessible(item, decision.plan_type, purchased_webinar_ids, unlocked):
        return
    if not decision.has_effective_plan:
        raise HTTPException(status_code=403, detail="An active subscription is required")
    if decision.plan_type == SubscriptionType.FOUR_DAY.value and scheduled_day(item) is not None:
        raise HTTPException(status_code=403, detail=f"Day {scheduled_day(item)} content is not unlocked yet")
    raise HTTPException(status_code=403, detail="Upgrade to the six-month plan to access this content")
