from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.settings import settings
from app.models.user import User


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    name: str
    is_admin: bool


def _normalize_email(value: str) -> str:
    return str(value or "").strip().lower()


def _is_admin_email(email: str) -> bool:
    normalized = _normalize_email(email)
    if not normalized:
        return False
    return normalized in (settings.admin_emails or set())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_auth_secret() -> str:
    if not settings.auth_secret:
        raise HTTPException(status_code=500, detail="AUTH_SECRET is not configured")
    return settings.auth_secret


def decode_session_token(token: str) -> dict[str, Any]:
    secret = _require_auth_secret()
    options: dict[str, Any] = {"require": ["exp", "sub"]}
    kwargs: dict[str, Any] = {}
    if settings.auth_jwt_audience:
        kwargs["audience"] = settings.auth_jwt_audience
    else:
        options["verify_aud"] = False
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"], options=options, **kwargs)
        return dict(payload)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid bearer token")


def _claim_is_admin(claims: dict[str, Any]) -> bool:
    raw = claims.get("isAdmin", claims.get("is_admin"))
    if isinstance(raw, bool):
        return raw
    return str(raw or "").strip().lower() in {"1", "true", "yes"}


def _get_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    if not auth.lower().startswith("bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


def _resolve_user(token: str, db: Session) -> CurrentUser:
    claims = decode_session_token(token)
    user_id = str(claims.get("sub") or "").strip()
    email = _normalize_email(claims.get("email") or "")
    name = str(claims.get("name") or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    wants_admin = _claim_is_admin(claims) or _is_admin_email(email)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        user = User(id=user_id, email=email or None, name=name or None, is_admin=wants_admin, last_seen_at=_utcnow())
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("auth.user.created user_id=%s admin=%s", user_id, wants_admin)
    else:
        changed = False
        if wants_admin and not user.is_admin:
            user.is_admin = True
            changed = True
        if email and (user.email or "") != email:
            user.email = email
            changed = True
        if name and (user.name or "") != name:
            user.name = name
            changed = True
        prev_seen = user.last_seen_at
        seen_at = _utcnow()
        if prev_seen is not None and prev_seen.tzinfo is None:
            prev_seen = prev_seen.replace(tzinfo=timezone.utc)
        if prev_seen is None or (seen_at - prev_seen).total_seconds() >= 600:
            user.last_seen_at = seen_at
            changed = True
        if changed:
            try:
                db.commit()
            except Exception:
                db.rollback()
                logger.warning("auth.user.presence_update_failed user_id=%s", user_id, exc_info=True)

    return CurrentUser(id=user.id, email=user.email or "", name=user.name or "", is_admin=bool(user.is_admin))


def get_current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser:
    token = _get_bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return _resolve_user(token, db)


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser | None:
    token = _get_bearer_token(request)
    if not token:
        return None
    return _resolve_user(token, db)


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
