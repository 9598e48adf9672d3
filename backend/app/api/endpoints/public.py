from __future__ import annotations

from fastapi import APIRouter

from app.core.settings import settings


router = APIRouter()


@router.get("/public-config")
async def public_config() -> dict:
    return {
        "razorpayKeyId": settings.razorpay_public_key_id or "",
        "razorpayMode": settings.razorpay_mode,
        "currency": settings.currency,
        "prices": {"FOUR_DAY": settings.four_day_price, "SIX_MONTH": settings.six_month_price},
    }
