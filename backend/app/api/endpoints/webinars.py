from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import missing_fields_error
from app.core.security import CurrentUser, get_current_user, require_admin
from app.core.settings import settings
from app.models.video import Video
from app.models.webinar import Webinar
from app.schemas.webinar import DiscountUpdate, WebinarCreate, WebinarStatusUpdate, WebinarUpdate
from app.services.access import ensure_utc, utcnow
from app.services.content_gate import is_accessible
from app.services.pricing import apply_discount_update, webinar_price_fields
from app.services.subscriptions import get_access_decision, purchased_webinar_ids
from app.services.webinar_schedule import (
    CountdownTask,
    TimeLeft,
    WebinarPhase,
    parse_webinar_time,
    time_left,
    webinar_duration,
    webinar_phase,
    webinar_start_time,
)


logger = logging.getLogger(__name__)

router = APIRouter()


def _iso(value) -> str | None:
    value = ensure_utc(value)
    return value.isoformat() if value else None


def _webinar_out(w: Webinar, include_media: bool = True) -> dict:
    out = {
        "id": w.id,
        "webinarName": w.webinar_name,
        "webinarTitle": w.webinar_title,
        "webinarDate": _iso(w.webinar_date),
        "webinarTime": w.webinar_time,
        "duration": {
            "hours": int(w.duration_hours or 0),
            "minutes": int(w.duration_minutes or 0),
            "seconds": int(w.duration_seconds or 0),
        },
        "status": w.status,
        "brandImage": w.brand_image,
        "selectedLanguage": w.selected_language,
        "instantWatchEnabled": bool(w.instant_watch_enabled),
        "scheduledDates": w.scheduled_dates,
        "createdAt": _iso(w.created_at),
        **webinar_price_fields(w),
    }
    if include_media:
        out["videoUrl"] = w.video_url
    return out


def _get_webinar_or_404(db: Session, webinar_id: str) -> Webinar:
    webinar = db.query(Webinar).filter(Webinar.id == webinar_id).first()
    if webinar is None:
        raise HTTPException(status_code=404, detail="Webinar not found")
    return webinar


def _start_of(webinar: Webinar):
    return webinar_start_time(webinar.webinar_date, webinar.webinar_time, settings.content_timezone)


@router.get("/webinar")
async def list_webinars(db: Session = Depends(get_db)) -> dict:
    rows = db.query(Webinar).order_by(Webinar.created_at.desc()).all()
    return {"success": True, "webinars": [_webinar_out(w, include_media=False) for w in rows]}


@router.post("/webinar", dependencies=[Depends(require_admin)])
async def create_webinar(body: WebinarCreate, db: Session = Depends(get_db)) -> dict:
    if parse_webinar_time(body.webinar_time) is None:
        raise HTTPException(status_code=400, detail="webinarTime must be HH:MM")
    if body.is_paid and not (body.paid_amount and body.paid_amount > 0):
        raise HTTPException(status_code=400, detail="paidAmount is required for paid webinars")
    duration = body.duration
    webinar = Webinar(
        webinar_name=body.webinar_name,
        webinar_title=body.webinar_title,
        webinar_date=ensure_utc(body.webinar_date),
        webinar_time=body.webinar_time,
        duration_hours=(duration.hours if duration else 0),
        duration_minutes=(duration.minutes if duration else 0),
        duration_seconds=(duration.seconds if duration else 0),
        is_paid=body.is_paid,
        paid_amount=body.paid_amount,
        video_url=body.video_url,
        brand_image=body.brand_image,
        selected_language=body.selected_language,
        instant_watch_enabled=body.instant_watch,
        scheduled_dates=body.scheduled_dates,
    )
    db.add(webinar)
    db.commit()
    db.refresh(webinar)
    logger.info("webinars.create id=%s title=%s", webinar.id, webinar.webinar_title)
    return {"success": True, "newWebinar": _webinar_out(webinar)}


@router.put("/webinar/status", dependencies=[Depends(require_admin)])
async def update_webinar_status(body: WebinarStatusUpdate, db: Session = Depends(get_db)) -> dict:
    status = (body.status or "").strip()
    missing = [name for name, value in (("webinarId", body.webinar_id), ("status", status)) if not value]
    if missing:
        raise missing_fields_error(missing)
    updated = db.query(Webinar).filter(Webinar.id == body.webinar_id).update({Webinar.status: status})
    db.commit()
    logger.info("webinars.status id=%s status=%s updated=%s", body.webinar_id, status, updated)
    return {"success": True, "message": f"Webinar status updated to {status}", "updatedCount": int(updated or 0)}


@router.get("/webinar/{webinar_id}")
async def get_webinar(webinar_id: str, db: Session = Depends(get_db)) -> dict:
    webinar = _get_webinar_or_404(db, webinar_id)
    videos = db.query(Video).filter(Video.webinar_id == webinar.id, Video.is_active.is_(True)).count()
    out = _webinar_out(webinar, include_media=False)
    out["videoCount"] = int(videos)
    return {"success": True, "webinar": out}


@router.put("/webinar/{webinar_id}", dependencies=[Depends(require_admin)])
async def update_webinar(webinar_id: str, body: WebinarUpdate, db: Session = Depends(get_db)) -> dict:
    webinar = _get_webinar_or_404(db, webinar_id)
    data = body.model_dump(exclude_unset=True)
    if "webinar_time" in data and parse_webinar_time(data["webinar_time"]) is None:
        raise HTTPException(status_code=400, detail="webinarTime must be HH:MM")

    if data.get("webinar_date") is not None:
        data["webinar_date"] = ensure_utc(data["webinar_date"])

    duration = data.pop("duration", None)
    if duration is not None:
        webinar.duration_hours = int(duration.get("hours") or 0)
        webinar.duration_minutes = int(duration.get("minutes") or 0)
        webinar.duration_seconds = int(duration.get("seconds") or 0)

    discount_percentage = data.pop("discount_percentage", None)
    discount_amount = data.pop("discount_amount", None)
    for field, value in data.items():
        setattr(webinar, field, value)
    try:
        apply_discount_update(webinar, discount_percentage, discount_amount)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    db.commit()
    db.refresh(webinar)
    return {"success": True, "updatedWebinar": _webinar_out(webinar)}


@router.put("/webinar/{webinar_id}/discount", dependencies=[Depends(require_admin)])
async def update_webinar_discount(webinar_id: str, body: DiscountUpdate, db: Session = Depends(get_db)) -> dict:
    webinar = _get_webinar_or_404(db, webinar_id)
    if body.discount_percentage is None and body.discount_amount is None:
        raise HTTPException(status_code=400, detail="discountPercentage or discountAmount is required")
    try:
        apply_discount_update(webinar, body.discount_percentage, body.discount_amount)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    db.refresh(webinar)
    logger.info(
        "webinars.discount id=%s percentage=%s amount=%s",
        webinar.id,
        webinar.discount_percentage,
        webinar.discount_amount,
    )
    return {"success": True, "webinar": _webinar_out(webinar, include_media=False)}


@router.delete("/webinar/{webinar_id}", dependencies=[Depends(require_admin)])
async def delete_webinar(webinar_id: str, db: Session = Depends(get_db)) -> dict:
    webinar = _get_webinar_or_404(db, webinar_id)
    db.query(Video).filter(Video.webinar_id == webinar.id).update({Video.webinar_id: None})
    db.delete(webinar)
    db.commit()
    return {"success": True, "deletedWebinarId": webinar_id}


@router.get("/webinar/{webinar_id}/access")
async def webinar_access(
    webinar_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    webinar = _get_webinar_or_404(db, webinar_id)
    now = utcnow()
    decision = get_access_decision(db, current_user.id, now=now)
    accessible = is_accessible(webinar, decision.plan_type, purchased_webinar_ids(db, current_user.id))

    start = _start_of(webinar)
    phase = webinar_phase(start, webinar_duration(webinar), now)
    locked = phase == WebinarPhase.NOT_STARTED
    return {
        "success": True,
        "webinarId": webinar.id,
        "phase": phase.value,
        "startTime": _iso(start),
        "timeLeft": time_left(start, now).as_dict(),
        "isAccessible": accessible,
        "isLocked": locked,
        # the media link only leaves the server once the viewer may actually play it
        "videoUrl": (webinar.video_url if accessible and not locked else None),
        **webinar_price_fields(webinar),
    }


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@router.get("/webinar/{webinar_id}/countdown")
async def webinar_countdown(
    webinar_id: str,
    request: Request,
    db: Session = Depends(get_db),
) -> StreamingResponse:
    webinar = _get_webinar_or_404(db, webinar_id)
    start = _start_of(webinar)
    if start is None:
        raise HTTPException(status_code=400, detail="Webinar has no start time")

    queue: asyncio.Queue = asyncio.Queue()

    async def on_tick(remaining: TimeLeft) -> None:
        await queue.put(("tick", remaining.as_dict()))

    async def on_unlock() -> None:
        await queue.put(("unlocked", {"phase": WebinarPhase.IN_PROGRESS.value, "startTime": start.isoformat()}))

    async def stream():
        countdown = CountdownTask(start, on_tick, on_unlock, interval_s=settings.countdown_tick_s)
        countdown.start()
        try:
            while True:
                if await request.is_disconnected():
                    break
                event, data = await queue.get()
                yield _sse(event, data)
                if event == "unlocked":
                    break
        finally:
            await countdown.stop()

    return StreamingResponse(stream(), media_type="text/event-stream")
