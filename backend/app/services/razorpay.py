from __future__ import annotations

import hashlib
import hmac
import logging

import requests
from fastapi import HTTPException

from app.core.settings import settings


logger = logging.getLogger(__name__)


def _hmac_sha256_hex(secret: str, message: bytes) -> str:
    return hmac.new(key=str(secret).encode("utf-8"), msg=message, digestmod=hashlib.sha256).hexdigest()


def verify_signature(message: bytes | str, signature: str | None, secret: str | None) -> bool:
    if not secret:
        return False
    sig = (signature or "").strip()
    if not sig:
        return False
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.compare_digest(_hmac_sha256_hex(secret, message), sig)


def verify_payment_signature(order_id: str, payment_id: str, signature: str | None, secret: str | None) -> bool:
    """Checkout callback signature: HMAC-SHA256 of "order_id|payment_id" keyed with the API secret."""
    order_id = (order_id or "").strip()
    payment_id = (payment_id or "").strip()
    if not order_id or not payment_id:
        return False
    return verify_signature(f"{order_id}|{payment_id}", signature, secret)


def verify_webhook_signature(raw_body: bytes, signature: str | None, secret: str | None) -> bool:
    return verify_signature(raw_body, signature, secret)


def sign_payment(order_id: str, payment_id: str, secret: str) -> str:
    return _hmac_sha256_hex(secret, f"{order_id}|{payment_id}".encode("utf-8"))


def require_razorpay() -> None:
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        logger.error(
            "razorpay.config.missing key_id=%s key_secret=%s mode=%s",
            bool(settings.razorpay_key_id),
            bool(settings.razorpay_key_secret),
            settings.razorpay_mode,
        )
        raise HTTPException(status_code=500, detail="Payment configuration error")


def amount_to_paise(amount: float) -> int:
    return int(round(float(amount) * 100))


def create_order(amount: float, receipt: str, notes: dict | None = None, currency: str | None = None) -> dict:
    require_razorpay()
    payload = {
        "amount": amount_to_paise(amount),
        "currency": (currency or settings.currency),
        "receipt": receipt[:40],
        "notes": notes or {},
    }
    logger.info(
        "razorpay.order.create amount_paise=%s receipt=%s mode=%s",
        payload["amount"],
        payload["receipt"],
        settings.razorpay_mode,
    )
    try:
        resp = requests.post(
            f"{settings.razorpay_api_base}/orders",
            auth=(str(settings.razorpay_key_id), str(settings.razorpay_key_secret)),
            json=payload,
            timeout=30,
        )
    except requests.RequestException as exc:
        logger.exception("razorpay.order.request_error receipt=%s", payload["receipt"])
        raise HTTPException(status_code=502, detail="Failed to create Razorpay order") from exc

    if resp.status_code >= 400:
        description = ""
        try:
            description = str(((resp.json() or {}).get("error") or {}).get("description") or "")
        except ValueError:
            description = ""
        logger.error("razorpay.order.rejected status=%s description=%s", resp.status_code, description)
        raise HTTPException(status_code=502, detail=f"Razorpay error ({resp.status_code})")

    order = resp.json() or {}
    if not order.get("id"):
        raise HTTPException(status_code=502, detail="Failed to create Razorpay order")
    return order
