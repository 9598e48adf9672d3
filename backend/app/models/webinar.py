from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from app.core.database import Base


class Webinar(Base):
    __tablename__ = "webinars"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    webinar_name = Column(String, nullable=True)
    webinar_title = Column(String, index=True)
    webinar_date = Column(DateTime(timezone=True), nullable=True)
    webinar_time = Column(String, nullable=True)
    duration_hours = Column(Integer, default=0)
    duration_minutes = Column(Integer, default=0)
    duration_seconds = Column(Integer, default=0)
    is_paid = Column(Boolean, default=False)
    paid_amount = Column(Float, nullable=True)
    discount_percentage = Column(Float, nullable=True)
    discount_amount = Column(Float, nullable=True)
    status = Column(String, index=True, default="scheduled")
    video_url = Column(String, nullable=True)
    brand_image = Column(String, nullable=True)
    selected_language = Column(String, nullable=True)
    instant_watch_enabled = Column(Boolean, default=False)
    scheduled_dates = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
