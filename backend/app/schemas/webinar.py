from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime


class WebinarDuration(BaseModel):
    hours: int = 0
    minutes: int = 0
    seconds: int = 0


class WebinarCreate(BaseModel):
    webinar_name: Optional[str] = Field(default=None, alias="webinarName")
    webinar_title: str = Field(alias="webinarTitle")
    webinar_date: datetime = Field(alias="webinarDate")
    webinar_time: str = Field(alias="webinarTime")
    duration: Optional[WebinarDuration] = None
    is_paid: bool = Field(default=False, alias="isPaid")
    paid_amount: Optional[float] = Field(default=None, alias="paidAmount")
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    brand_image: Optional[str] = Field(default=None, alias="brandImage")
    selected_language: Optional[str] = Field(default=None, alias="selectedValue")
    instant_watch: bool = Field(default=False, alias="instantWatch")
    scheduled_dates: Optional[Any] = Field(default=None, alias="scheduledDates")

    class Config:
        populate_by_name = True


class WebinarUpdate(BaseModel):
    webinar_name: Optional[str] = Field(default=None, alias="webinarName")
    webinar_title: Optional[str] = Field(default=None, alias="webinarTitle")
    webinar_date: Optional[datetime] = Field(default=None, alias="webinarDate")
    webinar_time: Optional[str] = Field(default=None, alias="webinarTime")
    duration: Optional[WebinarDuration] = None
    is_paid: Optional[bool] = Field(default=None, alias="isPaid")
    paid_amount: Optional[float] = Field(default=None, alias="paidAmount")
    discount_percentage: Optional[float] = Field(default=None, alias="discountPercentage")
    discount_amount: Optional[float] = Field(default=None, alias="discountAmount")
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    brand_image: Optional[str] = Field(default=None, alias="brandImage")
    status: Optional[str] = None

    class Config:
        populate_by_name = True


class DiscountUpdate(BaseModel):
    discount_percentage: Optional[float] = Field(default=None, alias="discountPercentage")
    discount_amount: Optional[float] = Field(default=None, alias="discountAmount")

    class Config:
        populate_by_name = True


class WebinarStatusUpdate(BaseModel):
    webinar_id: str = Field(alias="webinarId")
    status: str

    class Config:
        populate_by_name = True
