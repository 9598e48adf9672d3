from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any, Awaitable, Callable
from zoneinfo import ZoneInfo

from app.services.access import ensure_utc, utcnow


logger = logging.getLogger(__name__)


class WebinarPhase(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    ENDED = "ENDED"


@dataclass(frozen=True)
class TimeLeft:
    days: int
    hours: int
    minutes: int
    seconds: int

    @property
    def total_seconds(self) -> int:
        return ((self.days * 24 + self.hours) * 60 + self.minutes) * 60 + self.seconds

    def as_dict(self) -> dict:
        return {"days": self.days, "hours": self.hours, "minutes": self.minutes, "seconds": self.seconds}


ZERO = TimeLeft(days=0, hours=0, minutes=0, seconds=0)


def parse_webinar_time(raw: str | None) -> time | None:
    value = str(raw or "").strip()
    if not value:
        return None
    parts = value.split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 else 0
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return time(hour=hours, minute=minutes)


def webinar_start_time(webinar_date: datetime | None, webinar_time: str | None, tz: str = "UTC") -> datetime | None:
    """Combine the stored date with its "HH:MM" wall-clock time in the content timezone."""
    if webinar_date is None:
        return None
    clock = parse_webinar_time(webinar_time)
    if clock is None:
        return None
    zone = ZoneInfo(tz)
    # naive values are UTC instants read back from the store
    day = ensure_utc(webinar_date).astimezone(zone).date()
    local = datetime.combine(day, clock, tzinfo=zone)
    return local.astimezone(timezone.utc)


def webinar_duration(webinar: Any) -> timedelta | None:
    total = (
        int(getattr(webinar, "duration_hours", 0) or 0) * 3600
        + int(getattr(webinar, "duration_minutes", 0) or 0) * 60
        + int(getattr(webinar, "duration_seconds", 0) or 0)
    )
    return timedelta(seconds=total) if total > 0 else None


def webinar_phase(start: datetime | None, duration: timedelta | None = None, now: datetime | None = None) -> WebinarPhase:
    now = ensure_utc(now) or utcnow()
    start = ensure_utc(start)
    if start is None or now < start:
        return WebinarPhase.NOT_STARTED
    if duration is not None and now >= start + duration:
        return WebinarPhase.ENDED
    return WebinarPhase.IN_PROGRESS


def time_left(start: datetime | None, now: datetime | None = None) -> TimeLeft:
    now = ensure_utc(now) or utcnow()
    start = ensure_utc(start)
    if start is None:
        return ZERO
    remaining = int((start - now).total_seconds())
    if remaining <= 0:
        return ZERO
    days, rest = divmod(remaining, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return TimeLeft(days=days, hours=hours, minutes=minutes, seconds=seconds)


OnTick = Callable[[TimeLeft], Awaitable[None]]
OnUnlock = Callable[[], Awaitable[None]]


class CountdownTask:
    """Ticks down to a start instant and unlocks exactly once.

    start() schedules the loop on the running event loop, stop() cancels it.
    After the unlock callback has fired the task finishes and never reports
    a locked state again.
    """

    def __init__(
        self,
        start_at: datetime,
        on_tick: OnTick,
        on_unlock: OnUnlock,
        *,
        interval_s: float = 1.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.start_at = ensure_utc(start_at)
        self._on_tick = on_tick
        self._on_unlock = on_unlock
        self._interval_s = max(0.01, float(interval_s))
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._unlocked = False

    @property
    def unlocked(self) -> bool:
        return self._unlocked

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self._task is not None:
            raise RuntimeError("countdown already started")
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        while not self._unlocked:
            now = ensure_utc(self._clock())
            if now >= self.start_at:
                self._unlocked = True
                logger.info("countdown.unlocked start_at=%s", self.start_at.isoformat())
                await self._on_unlock()
                return
            await self._on_tick(time_left(self.start_at, now))
            await asyncio.sleep(min(self._interval_s, (self.start_at - now).total_seconds()))
