import enum
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, String
from sqlalchemy.sql import func

from app.core.database import Base


class SubscriptionType(str, enum.Enum):
    FOUR_DAY = "FOUR_DAY"
    SIX_MONTH = "SIX_MONTH"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    user_id = Column(String, index=True, nullable=False)
    payment_id = Column(String, unique=True, index=True, nullable=True)
    # plain string so new plan types do not need a schema change
    type = Column(String, index=True, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    unlocked_content = Column(JSON, nullable=True)
    name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
