from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.core.database import Base


class Video(Base):
    __tablename__ = "videos"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    title = Column(String, index=True)
    url = Column(String, nullable=True)
    public_id = Column(String, nullable=True)
    webinar_id = Column(String, index=True, nullable=True)
    day = Column(Integer, nullable=True)
    is_free = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    views = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
