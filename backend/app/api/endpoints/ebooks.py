from __future__ import annotations

import base64
import binascii
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import CurrentUser, get_current_user, get_optional_user, require_admin
from app.models.ebook import EBook
from app.schemas.content import EBookUpdate
from app.services.access import NO_PLAN, ensure_utc
from app.services.content_gate import gate_items, require_access
from app.services.subscriptions import get_access_decision


logger = logging.getLogger(__name__)

router = APIRouter()


def _ebook_out(e: EBook, accessible: bool | None = None) -> dict:
    out = {
        "id": e.id,
        "title": e.title,
        "description": e.description,
        "fileType": e.file_type,
        "fileSize": e.file_size,
        "thumbnail": e.thumbnail,
        "isActive": bool(e.is_active),
        "isFree": bool(e.is_free),
        "downloads": int(e.downloads or 0),
        "createdAt": (ensure_utc(e.created_at).isoformat() if e.created_at else None),
    }
    if accessible is not None:
        out["isAccessible"] = accessible
    return out


def _get_ebook_or_404(db: Session, ebook_id: str) -> EBook:
    ebook = db.query(EBook).filter(EBook.id == ebook_id).first()
    if ebook is None:
        raise HTTPException(status_code=404, detail="E-book not found")
    return ebook


def decode_data_url(data_url: str) -> tuple[bytes, str | None]:
    header, sep, payload = (data_url or "").partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("not a base64 data URL")
    media_type = header[len("data:") :].split(";", 1)[0] or None
    try:
        return base64.b64decode(payload, validate=True), media_type
    except (binascii.Error, ValueError) as exc:
        raise ValueError("invalid base64 payload") from exc


def content_disposition(title: str | None) -> str:
    """Header value safe for latin-1 transport; the full name travels in filename* (RFC 6266)."""
    stem = " ".join((title or "").split()) or "ebook"
    filename = f"{stem}.pdf"
    fallback_stem = "".join(ch for ch in stem if 32 <= ord(ch) < 127 and ch not in '"\\').strip()
    fallback = f"{fallback_stem or 'ebook'}.pdf"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/ebooks")
async def list_ebooks(
    db: Session = Depends(get_db),
    current_user: CurrentUser | None = Depends(get_optional_user),
) -> dict:
    rows = db.query(EBook).order_by(EBook.created_at.desc()).all()
    decision = get_access_decision(db, current_user.id) if current_user else NO_PLAN
    return {"ebooks": [_ebook_out(e, accessible) for e, accessible in gate_items(rows, decision)]}


@router.post("/ebooks", dependencies=[Depends(require_admin)])
async def create_ebook(
    title: str = Form(...),
    description: str = Form(""),
    thumbnail: str | None = Form(None),
    is_free: bool = Form(True, alias="isFree"),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
) -> dict:
    file_url = None
    file_type = None
    file_size = None
    if file is not None:
        content = await file.read()
        if content:
            file_type = file.content_type or "application/pdf"
            file_url = f"data:{file_type};base64,{base64.b64encode(content).decode('ascii')}"
            file_size = len(content)

    ebook = EBook(
        title=title.strip(),
        description=description,
        file_url=file_url,
        file_type=file_type,
        file_size=file_size,
        thumbnail=thumbnail,
        is_active=True,
        is_free=is_free,
        downloads=0,
    )
    db.add(ebook)
    db.commit()
    db.refresh(ebook)
    logger.info("ebooks.create id=%s size=%s", ebook.id, file_size)
    return {"ebook": _ebook_out(ebook)}


@router.get("/ebooks/{ebook_id}")
async def get_ebook(ebook_id: str, db: Session = Depends(get_db)) -> dict:
    return {"ebook": _ebook_out(_get_ebook_or_404(db, ebook_id))}


@router.put("/ebooks/{ebook_id}", dependencies=[Depends(require_admin)])
async def update_ebook(ebook_id: str, body: EBookUpdate, db: Session = Depends(get_db)) -> dict:
    ebook = _get_ebook_or_404(db, ebook_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(ebook, field, value)
    db.commit()
    db.refresh(ebook)
    return {"ebook": _ebook_out(ebook)}


@router.delete("/ebooks/{ebook_id}", dependencies=[Depends(require_admin)])
async def delete_ebook(ebook_id: str, db: Session = Depends(get_db)) -> dict:
    ebook = _get_ebook_or_404(db, ebook_id)
    db.delete(ebook)
    db.commit()
    return {"success": True}


@router.get("/ebooks/{ebook_id}/download")
async def download_ebook(
    ebook_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    ebook = _get_ebook_or_404(db, ebook_id)
    if not ebook.is_active:
        raise HTTPException(status_code=404, detail="E-book not found")
    require_access(ebook, get_access_decision(db, current_user.id))
    if not ebook.file_url:
        raise HTTPException(status_code=404, detail="File not available")

    try:
        content, media_type = decode_data_url(ebook.file_url)
    except ValueError:
        logger.error("ebooks.download.bad_file id=%s", ebook.id)
        raise HTTPException(status_code=500, detail="Failed to download ebook")

    response = Response(
        content=content,
        media_type=ebook.file_type or media_type or "application/pdf",
        headers={"Content-Disposition": content_disposition(ebook.title)},
    )
    ebook.downloads = int(ebook.downloads or 0) + 1
    db.commit()
    return response
