from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.payment import Payment, PaymentStatus
from app.models.subscription import Subscription, SubscriptionType
from app.models.user import User
from app.services.access import AccessDecision, evaluate_access, four_day_progress, utcnow
from app.services.razorpay import verify_payment_signature


logger = logging.getLogger(__name__)


PLAN_DURATIONS: dict[str, timedelta] = {
    SubscriptionType.FOUR_DAY.value: timedelta(days=4),
    SubscriptionType.SIX_MONTH.value: timedelta(days=180),
}


class PaymentVerificationError(ValueError):
    pass


class PaymentNotFoundError(LookupError):
    pass


def normalize_plan_type(raw: Any) -> str | None:
    value = str(raw or "").strip().upper()
    if value in PLAN_DURATIONS:
        return value
    return None


def plan_price(plan_type: str) -> float:
    if plan_type == SubscriptionType.FOUR_DAY.value:
        return settings.four_day_price
    return settings.six_month_price


def build_four_day_content(now: datetime, free: bool = False) -> dict:
    if free:
        expiry = (now + timedelta(days=settings.free_access_days)).isoformat()
        return {
            "currentDay": 1,
            "unlockedVideos": [1, 2, 3],
            "expiryDates": {f"video{n}": expiry for n in (1, 2, 3)},
        }
    return {
        "currentDay": 1,
        "unlockedVideos": [1],
        "expiryDates": {f"video{n}": (now + timedelta(days=n + 2)).isoformat() for n in (1, 2, 3, 4)},
    }


def list_user_subscriptions(db: Session, user_id: str) -> list[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.start_date.desc())
        .all()
    )


def get_access_decision(db: Session, user_id: str, now: datetime | None = None) -> AccessDecision:
    return evaluate_access(list_user_subscriptions(db, user_id), now=now or utcnow())


def purchased_webinar_ids(db: Session, user_id: str) -> set[str]:
    rows = (
        db.query(Payment.webinar_id)
        .filter(Payment.user_id == user_id, Payment.status == PaymentStatus.CAPTURED.value)
        .filter(Payment.webinar_id.isnot(None))
        .all()
    )
    return {str(r[0]) for r in rows if r and r[0]}


def _new_subscription(
    *,
    user_id: str,
    plan_type: str,
    payment_id: str | None,
    now: datetime,
    name: str | None = None,
    duration: timedelta | None = None,
    free: bool = False,
) -> Subscription:
    sub = Subscription(
        user_id=user_id,
        payment_id=payment_id,
        type=plan_type,
        start_date=now,
        end_date=now + (duration or PLAN_DURATIONS[plan_type]),
        is_active=True,
        name=name,
    )
    if plan_type == SubscriptionType.FOUR_DAY.value:
        sub.unlocked_content = build_four_day_content(now, free=free)
    return sub


def subscription_for_payment(db: Session, payment_id: str) -> Subscription | None:
    return db.query(Subscription).filter(Subscription.payment_id == payment_id).first()


def _activate_user(db: Session, user_id: str) -> None:
    user = db.query(User).filter(User.id == user_id).first()
    if user is not None and not user.is_active:
        user.is_active = True


def _flag_entitlement_failed(db: Session, order_id: str, payment_id: str, signature: str) -> None:
    try:
        payment = db.query(Payment).filter(Payment.razorpay_order_id == order_id).first()
        if payment is None:
            return
        payment.razorpay_payment_id = payment_id
        payment.razorpay_signature = signature
        payment.status = PaymentStatus.ENTITLEMENT_FAILED.value
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("payments.entitlement_failed.flag_error order_id=%s payment_id=%s", order_id, payment_id)


def grant_for_payment(
    db: Session,
    payment: Payment,
    *,
    razorpay_payment_id: str,
    signature: str,
    now: datetime,
) -> Subscription:
    """Capture a verified payment and grant its plan, once per payment.

    A second delivery for the same payment returns the subscription created
    the first time. If the entitlement write fails, the payment is flagged
    entitlement_failed in its own transaction so it can be reconciled.
    """
    existing = subscription_for_payment(db, payment.id)
    if existing is not None:
        logger.info("payments.grant.duplicate payment_id=%s subscription_id=%s", razorpay_payment_id, existing.id)
        return existing

    plan_type = normalize_plan_type(payment.plan_type) or SubscriptionType.SIX_MONTH.value
    order_id = payment.razorpay_order_id
    internal_payment_id = payment.id
    try:
        payment.razorpay_payment_id = razorpay_payment_id
        payment.razorpay_signature = signature
        payment.status = PaymentStatus.CAPTURED.value
        sub = _new_subscription(
            user_id=payment.user_id,
            plan_type=plan_type,
            payment_id=payment.id,
            now=now,
            name=payment.name,
        )
        db.add(sub)
        _activate_user(db, payment.user_id)
        db.commit()
        db.refresh(sub)
    except IntegrityError:
        db.rollback()
        existing = subscription_for_payment(db, internal_payment_id)
        if existing is not None:
            logger.info("payments.grant.race_lost payment_id=%s", razorpay_payment_id)
            return existing
        logger.exception("payments.grant.integrity_error payment_id=%s", razorpay_payment_id)
        _flag_entitlement_failed(db, order_id, razorpay_payment_id, signature)
        raise
    except Exception:
        db.rollback()
        logger.exception("payments.grant.entitlement_failed order_id=%s payment_id=%s", order_id, razorpay_payment_id)
        _flag_entitlement_failed(db, order_id, razorpay_payment_id, signature)
        raise

    logger.info(
        "payments.grant.ok user_id=%s plan=%s subscription_id=%s payment_id=%s",
        sub.user_id,
        plan_type,
        sub.id,
        razorpay_payment_id,
    )
    return sub


def confirm_payment(
    db: Session,
    *,
    order_id: str,
    payment_id: str,
    signature: str,
    requested_plan_type: str | None = None,
    now: datetime | None = None,
    secret: str | None = None,
) -> Subscription:
    now = now or utcnow()
    secret = secret if secret is not None else settings.razorpay_key_secret
    if not verify_payment_signature(order_id, payment_id, signature, secret):
        logger.warning("payments.verify.rejected order_id=%s payment_id=%s", order_id, payment_id)
        raise PaymentVerificationError("Payment verification failed")

    payment = db.query(Payment).filter(Payment.razorpay_order_id == order_id).first()
    if payment is None:
        logger.warning("payments.verify.unknown_order order_id=%s", order_id)
        raise PaymentNotFoundError("Payment not found")

    if payment.razorpay_payment_id and payment.razorpay_payment_id != payment_id:
        logger.warning(
            "payments.verify.payment_id_mismatch order_id=%s stored=%s received=%s",
            order_id,
            payment.razorpay_payment_id,
            payment_id,
        )
        raise PaymentVerificationError("Payment verification failed")

    requested = normalize_plan_type(requested_plan_type)
    if requested and requested != normalize_plan_type(payment.plan_type):
        logger.warning(
            "payments.verify.plan_mismatch order_id=%s stored=%s requested=%s",
            order_id,
            payment.plan_type,
            requested,
        )

    return grant_for_payment(db, payment, razorpay_payment_id=payment_id, signature=signature, now=now)


def handle_webhook_event(db: Session, event: dict, signature: str, now: datetime | None = None) -> str:
    now = now or utcnow()
    event_name = str(event.get("event") or "").strip()
    entity = (((event.get("payload") or {}).get("payment") or {}).get("entity")) or {}
    rzp_payment_id = str(entity.get("id") or "").strip()
    rzp_order_id = str(entity.get("order_id") or "").strip()

    if event_name == "payment.captured":
        payment = None
        if rzp_payment_id:
            payment = db.query(Payment).filter(Payment.razorpay_payment_id == rzp_payment_id).first()
        if payment is None and rzp_order_id:
            payment = db.query(Payment).filter(Payment.razorpay_order_id == rzp_order_id).first()
        if payment is None:
            logger.warning("payments.webhook.unknown_payment payment_id=%s order_id=%s", rzp_payment_id, rzp_order_id)
            return "ignored"
        grant_for_payment(db, payment, razorpay_payment_id=rzp_payment_id, signature=signature, now=now)
        return "captured"

    if event_name == "payment.failed":
        payment = db.query(Payment).filter(Payment.razorpay_order_id == rzp_order_id).first() if rzp_order_id else None
        if payment is None:
            return "ignored"
        if payment.status != PaymentStatus.CAPTURED.value:
            payment.status = PaymentStatus.FAILED.value
            db.commit()
        return "failed"

    logger.info("payments.webhook.unhandled event=%s", event_name)
    return "ignored"


def create_free_subscription(db: Session, user: User, now: datetime | None = None) -> tuple[Subscription, bool]:
    """Create the free FOUR_DAY access once; returns (subscription, created)."""
    now = now or utcnow()
    existing = (
        db.query(Subscription)
        .filter(Subscription.user_id == user.id, Subscription.type == SubscriptionType.FOUR_DAY.value)
        .first()
    )
    if existing is not None:
        return existing, False

    payment = Payment(
        razorpay_order_id=f"free_{int(now.timestamp() * 1000)}_{user.id}",
        amount=0.0,
        currency=settings.currency,
        status=PaymentStatus.COMPLETED.value,
        plan_type=SubscriptionType.FOUR_DAY.value,
        user_id=user.id,
        name=user.name,
    )
    db.add(payment)
    db.flush()
    sub = _new_subscription(
        user_id=user.id,
        plan_type=SubscriptionType.FOUR_DAY.value,
        payment_id=payment.id,
        now=now,
        name=user.name,
        duration=timedelta(days=settings.free_access_days),
        free=True,
    )
    db.add(sub)
    user.pending = True
    db.commit()
    db.refresh(sub)
    logger.info("subscriptions.free.created user_id=%s subscription_id=%s", user.id, sub.id)
    return sub, True


def grant_admin_access(db: Session, user: User, plan_type: str, now: datetime | None = None) -> Subscription:
    now = now or utcnow()
    stamp = int(now.timestamp() * 1000)
    payment = Payment(
        razorpay_order_id=f"ADMIN_GRANT_{stamp}_{user.id}",
        razorpay_payment_id=f"ADMIN_GRANT_PAYMENT_{stamp}_{user.id}",
        razorpay_signature="ADMIN_GRANT_SIGNATURE",
        amount=plan_price(plan_type),
        currency=settings.currency,
        status=PaymentStatus.CAPTURED.value,
        plan_type=plan_type,
        user_id=user.id,
        name=user.name,
    )
    db.add(payment)
    db.flush()
    sub = _new_subscription(user_id=user.id, plan_type=plan_type, payment_id=payment.id, now=now, name=user.name)
    db.add(sub)
    db.commit()
    db.refresh(sub)
    logger.info("subscriptions.admin_grant user_id=%s plan=%s", user.id, plan_type)
    return sub


def advance_four_day_progress(db: Session, sub: Subscription, now: datetime | None = None, tz: str | None = None) -> dict:
    progress = four_day_progress(sub, now=now, tz=tz or settings.content_timezone)
    content = dict(sub.unlocked_content or {})
    current = progress["currentDay"]
    if current is not None:
        try:
            current = max(int(content.get("currentDay") or 1), int(current))
        except (TypeError, ValueError):
            pass
        progress["currentDay"] = current
    unlocked = sorted(set(content.get("unlockedVideos") or []) | set(progress["unlockedDays"]))
    if current is not None and (content.get("currentDay") != current or content.get("unlockedVideos") != unlocked):
        content["currentDay"] = current
        content["unlockedVideos"] = unlocked
        # reassign so the JSON column is flagged dirty
        sub.unlocked_content = content
        db.commit()
        logger.info("subscriptions.four_day.advanced subscription_id=%s current_day=%s", sub.id, current)
    return progress
