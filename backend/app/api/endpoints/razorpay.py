from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import CurrentUser, get_current_user
from app.core.settings import settings
from app.models.payment import Payment, PaymentStatus
from app.models.webinar import Webinar
from app.schemas.payment import CreatePaymentRequest, VerifyPaymentRequest, VerifyPaymentResponse
from app.services.razorpay import create_order, require_razorpay, verify_webhook_signature
from app.services.subscriptions import (
    PaymentNotFoundError,
    PaymentVerificationError,
    confirm_payment,
    handle_webhook_event,
    normalize_plan_type,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/razorpay/payments")
async def create_payment(
    body: CreatePaymentRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    plan_type = normalize_plan_type(body.plan_type)
    if plan_type is None:
        raise HTTPException(status_code=400, detail="Amount and plan type are required")
    if body.amount is None or float(body.amount) <= 0:
        raise HTTPException(status_code=400, detail="Amount must be a positive number")
    require_razorpay()

    order = create_order(
        amount=float(body.amount),
        receipt=f"{plan_type}_sub_{current_user.id}",
        notes={"planType": plan_type},
    )

    webinar_id = None
    if body.webinar_id:
        webinar = db.query(Webinar).filter(Webinar.id == body.webinar_id).first()
        if webinar is not None:
            webinar_id = webinar.id
        else:
            logger.warning("payments.create.unknown_webinar webinar_id=%s", body.webinar_id)

    payment = Payment(
        razorpay_order_id=str(order["id"]),
        amount=float(body.amount),
        currency=settings.currency,
        status=PaymentStatus.CREATED.value,
        plan_type=plan_type,
        user_id=current_user.id,
        webinar_id=webinar_id,
        name=current_user.name or None,
    )
    db.add(payment)
    db.commit()
    logger.info("payments.create.ok order_id=%s user_id=%s plan=%s", payment.razorpay_order_id, current_user.id, plan_type)
    return {"key": settings.razorpay_public_key_id, "order": order}


@router.post("/razorpay/payments/verify", response_model=VerifyPaymentResponse)
async def verify_payment(body: VerifyPaymentRequest, db: Session = Depends(get_db)) -> VerifyPaymentResponse:
    try:
        confirm_payment(
            db,
            order_id=body.razorpay_order_id,
            payment_id=body.razorpay_payment_id,
            signature=body.razorpay_signature,
            requested_plan_type=body.plan_type,
        )
    except PaymentVerificationError:
        raise HTTPException(status_code=400, detail="Payment verification failed")
    except PaymentNotFoundError:
        raise HTTPException(status_code=404, detail="Payment not found")
    except Exception:
        logger.exception("payments.verify.error order_id=%s", body.razorpay_order_id)
        raise HTTPException(status_code=500, detail="Payment verification failed")
    return VerifyPaymentResponse(success=True)


@router.post("/razorpay/webhooks/razorpay")
async def razorpay_webhook(request: Request, db: Session = Depends(get_db)) -> dict:
    raw_body = await request.body()
    signature = request.headers.get("x-razorpay-signature")
    if not settings.razorpay_webhook_secret:
        raise HTTPException(status_code=500, detail="RAZORPAY_WEBHOOK_SECRET is not configured")
    if not verify_webhook_signature(raw_body, signature, settings.razorpay_webhook_secret):
        logger.warning("payments.webhook.rejected signature_present=%s", bool(signature))
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        event = json.loads(raw_body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON")

    try:
        outcome = handle_webhook_event(db, event, signature or "")
    except Exception:
        logger.exception("payments.webhook.error event=%s", event.get("event"))
        raise HTTPException(status_code=500, detail="Webhook handler failed")
    return {"received": True, "outcome": outcome}


@router.get("/razorpay/payments/user-payments")
async def user_payments(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    rows = (
        db.query(Payment, Webinar.webinar_title)
        .outerjoin(Webinar, Webinar.id == Payment.webinar_id)
        .filter(Payment.user_id == current_user.id, Payment.status == PaymentStatus.CAPTURED.value)
        .order_by(Payment.created_at.desc())
        .all()
    )
    return {
        "payments": [
            {
                "id": p.id,
                "amount": p.amount,
                "status": p.status,
                "planType": p.plan_type,
                "webinarId": p.webinar_id,
                "webinarTitle": title,
                "createdAt": p.created_at.isoformat() if p.created_at else None,
            }
            for p, title in rows
        ]
    }
