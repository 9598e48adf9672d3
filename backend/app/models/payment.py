import enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, String
from sqlalchemy.sql import func

from app.core.database import Base


class PaymentStatus(str, enum.Enum):
    CREATED = "created"
    CAPTURED = "captured"
    FAILED = "failed"
    COMPLETED = "completed"
    ENTITLEMENT_FAILED = "entitlement_failed"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    razorpay_order_id = Column(String, unique=True, index=True, nullable=False)
    razorpay_payment_id = Column(String, unique=True, index=True, nullable=True)
    razorpay_signature = Column(String, nullable=True)
    amount = Column(Float, default=0.0)
    currency = Column(String, default="INR")
    status = Column(String, index=True, default=PaymentStatus.CREATED.value)
    plan_type = Column(String, index=True)
    user_id = Column(String, index=True, nullable=False)
    webinar_id = Column(String, index=True, nullable=True)
    name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
