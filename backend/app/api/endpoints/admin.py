from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_admin
from app.models.subscription import Subscription
from app.models.user import User
from app.schemas.subscription import GrantAccessRequest
from app.services.access import ensure_utc, evaluate_access, is_subscription_valid, utcnow
from app.services.subscriptions import grant_admin_access, normalize_plan_type


router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/admin/grant-access")
async def admin_grant_access(body: GrantAccessRequest, db: Session = Depends(get_db)) -> dict:
    email = (body.email or "").strip().lower()
    plan_type = normalize_plan_type(body.plan_type)
    if not email or plan_type is None:
        raise HTTPException(status_code=400, detail="Email and a valid plan type are required")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    now = utcnow()
    held = (
        db.query(Subscription)
        .filter(Subscription.user_id == user.id, Subscription.type == plan_type, Subscription.is_active.is_(True))
        .all()
    )
    if any(is_subscription_valid(s, now) for s in held):
        raise HTTPException(status_code=409, detail="User already has an active subscription of this type")

    sub = grant_admin_access(db, user, plan_type, now=now)
    return {
        "success": True,
        "message": f"{plan_type} access granted to {email}",
        "subscription": {
            "id": sub.id,
            "type": sub.type,
            "startDate": ensure_utc(sub.start_date).isoformat(),
            "endDate": ensure_utc(sub.end_date).isoformat(),
        },
    }


@router.get("/admin/users")
async def admin_list_users(limit: int = 50, offset: int = 0, db: Session = Depends(get_db)) -> list[dict]:
    limit = max(1, min(int(limit or 50), 200))
    offset = max(0, int(offset or 0))
    rows = db.query(User).order_by(User.created_at.desc()).offset(offset).limit(limit).all()
    user_ids = [u.id for u in rows if u and u.id]

    subs_map: dict[str, list[Subscription]] = {}
    if user_ids:
        for s in db.query(Subscription).filter(Subscription.user_id.in_(user_ids)).all():
            subs_map.setdefault(str(s.user_id), []).append(s)

    now = utcnow()
    out: list[dict] = []
    for u in rows:
        decision = evaluate_access(subs_map.get(str(u.id), []), now=now)
        out.append(
            {
                "id": u.id,
                "email": u.email or "",
                "name": u.name,
                "isAdmin": bool(u.is_admin),
                "isActive": bool(u.is_active),
                "planType": decision.plan_type,
                "dashboardView": decision.dashboard_view,
            }
        )
    return out
