from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import CurrentUser, get_current_user, require_admin
from app.models.video import Video
from app.models.webinar import Webinar
from app.schemas.content import VideoCreate, VideoUpdate
from app.services.access import ensure_utc
from app.services.content_gate import gate_items, require_access
from app.services.subscriptions import get_access_decision


router = APIRouter()


def _video_out(v: Video, webinar: Webinar | None = None, accessible: bool | None = None) -> dict:
    out = {
        "id": v.id,
        "title": v.title,
        "publicId": v.public_id,
        "day": v.day,
        "isFree": bool(v.is_free),
        "isActive": bool(v.is_active),
        "views": int(v.views or 0),
        "createdAt": (ensure_utc(v.created_at).isoformat() if v.created_at else None),
        "webinarDetails": (
            {"webinarName": webinar.webinar_name, "webinarTitle": webinar.webinar_title} if webinar is not None else None
        ),
    }
    if accessible is not None:
        out["isAccessible"] = accessible
        out["url"] = v.url if accessible else None
    else:
        out["url"] = v.url
    return out


def _get_video_or_404(db: Session, video_id: str) -> Video:
    video = db.query(Video).filter(Video.id == video_id).first()
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return video


@router.get("/videos")
async def list_videos(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    rows = (
        db.query(Video, Webinar)
        .outerjoin(Webinar, Webinar.id == Video.webinar_id)
        .filter(Video.is_active.is_(True))
        .order_by(Video.created_at.desc())
        .all()
    )
    decision = get_access_decision(db, current_user.id)
    webinars = {v.id: w for v, w in rows}
    gated = gate_items([v for v, _w in rows], decision)
    return {"success": True, "videos": [_video_out(v, webinars.get(v.id), ok) for v, ok in gated]}


@router.post("/videos", dependencies=[Depends(require_admin)])
async def create_video(body: VideoCreate, db: Session = Depends(get_db)) -> dict:
    webinar = None
    if body.webinar_details_id:
        webinar = db.query(Webinar).filter(Webinar.id == body.webinar_details_id).first()
        if webinar is None:
            raise HTTPException(status_code=404, detail="Webinar not found")
    video = Video(
        title=body.title,
        url=body.url,
        public_id=body.public_id,
        webinar_id=(webinar.id if webinar else None),
        day=body.day,
        is_free=body.is_free,
    )
    db.add(video)
    db.commit()
    db.refresh(video)
    return {"success": True, "video": _video_out(video, webinar)}


@router.get("/videos/{video_id}")
async def get_video(
    video_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    video = _get_video_or_404(db, video_id)
    if not video.is_active:
        raise HTTPException(status_code=404, detail="Video not found")
    require_access(video, get_access_decision(db, current_user.id))
    video.views = int(video.views or 0) + 1
    db.commit()
    webinar = db.query(Webinar).filter(Webinar.id == video.webinar_id).first() if video.webinar_id else None
    return {"success": True, "video": _video_out(video, webinar, True)}


@router.put("/videos/{video_id}", dependencies=[Depends(require_admin)])
async def update_video(video_id: str, body: VideoUpdate, db: Session = Depends(get_db)) -> dict:
    video = _get_video_or_404(db, video_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(video, field, value)
    db.commit()
    db.refresh(video)
    return {"success": True, "video": _video_out(video)}


@router.delete("/videos/{video_id}", dependencies=[Depends(require_admin)])
async def delete_video(video_id: str, db: Session = Depends(get_db)) -> dict:
    video = _get_video_or_404(db, video_id)
    db.delete(video)
    db.commit()
    return {"success": True}
