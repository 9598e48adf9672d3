from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import CurrentUser, get_current_user
from app.core.settings import settings
from app.models.payment import Payment
from app.models.subscription import Subscription, SubscriptionType
from app.models.user import User
from app.schemas.subscription import AccessOut, FreeSubscriptionRequest, PaymentSummary, SubscriptionOut
from app.services.access import AccessDecision, ensure_utc, evaluate_access, is_subscription_valid, utcnow
from app.services.subscriptions import (
    advance_four_day_progress,
    create_free_subscription,
    list_user_subscriptions,
)


router = APIRouter()


def _access_out(decision: AccessDecision) -> AccessOut:
    sub = decision.effective_subscription
    return AccessOut(
        hasEffectivePlan=decision.has_effective_plan,
        planType=decision.plan_type,
        isPremiumUnlocked=decision.is_premium_unlocked,
        shouldShowFourDayPlan=decision.should_show_four_day_plan,
        dashboardView=decision.dashboard_view,
        effectiveSubscriptionId=(sub.id if sub is not None else None),
    )


def _subscription_out(sub: Subscription, payment: Payment | None, now) -> SubscriptionOut:
    summary = None
    if payment is not None:
        summary = PaymentSummary(amount=payment.amount, planType=payment.plan_type, paidAt=payment.created_at)
    return SubscriptionOut(
        id=sub.id,
        type=sub.type,
        startDate=ensure_utc(sub.start_date),
        endDate=ensure_utc(sub.end_date),
        isActive=bool(sub.is_active),
        isValid=is_subscription_valid(sub, now),
        isFree=bool(payment is not None and float(payment.amount or 0) == 0.0),
        payment=summary,
        unlockedContent=sub.unlocked_content,
    )


def _payments_by_id(db: Session, subs: list[Subscription]) -> dict[str, Payment]:
    ids = [s.payment_id for s in subs if s.payment_id]
    if not ids:
        return {}
    return {p.id: p for p in db.query(Payment).filter(Payment.id.in_(ids)).all()}


@router.get("/subscription")
async def get_subscriptions(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    now = utcnow()
    subs = list_user_subscriptions(db, current_user.id)
    payments = _payments_by_id(db, subs)
    decision = evaluate_access(subs, now=now)
    return {
        "subscriptions": [_subscription_out(s, payments.get(s.payment_id), now).model_dump(mode="json") for s in subs],
        "access": _access_out(decision).model_dump(),
    }


@router.get("/subscription/access", response_model=AccessOut)
async def get_access(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AccessOut:
    decision = evaluate_access(list_user_subscriptions(db, current_user.id), now=utcnow())
    return _access_out(decision)


@router.post("/subscription/free")
async def create_free(
    body: FreeSubscriptionRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    email = (body.email or current_user.email or "").strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")
    if email != (current_user.email or "").lower() and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Cannot create a subscription for another account")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    sub, created = create_free_subscription(db, user)
    payment = db.query(Payment).filter(Payment.id == sub.payment_id).first() if sub.payment_id else None
    return {
        "message": "Free subscription created successfully" if created else "Free subscription already exists",
        "subscription": _subscription_out(sub, payment, utcnow()).model_dump(mode="json"),
    }


@router.get("/subscription/four-day")
async def get_four_day_progress(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    now = utcnow()
    decision = evaluate_access(list_user_subscriptions(db, current_user.id), now=now)
    sub = decision.effective_subscription
    if sub is None or decision.plan_type != SubscriptionType.FOUR_DAY.value:
        raise HTTPException(status_code=404, detail="No active four-day plan")
    progress = advance_four_day_progress(db, sub, now=now, tz=settings.content_timezone)
    return {
        "subscriptionId": sub.id,
        "shouldShowFourDayPlan": decision.should_show_four_day_plan,
        "unlockedContent": sub.unlocked_content,
        **progress,
    }
