from pydantic import BaseModel, Field
from typing import Optional


class CreatePaymentRequest(BaseModel):
    amount: float
    plan_type: str = Field(alias="planType")
    webinar_id: Optional[str] = Field(default=None, alias="webinarId")

    class Config:
        populate_by_name = True


class VerifyPaymentRequest(BaseModel):
    razorpay_payment_id: str
    razorpay_order_id: str
    razorpay_signature: str
    plan_type: Optional[str] = Field(default=None, alias="planType")
    amount: Optional[float] = None
    webinar_id: Optional[str] = Field(default=None, alias="webinarId")

    class Config:
        populate_by_name = True


class VerifyPaymentResponse(BaseModel):
    success: bool
