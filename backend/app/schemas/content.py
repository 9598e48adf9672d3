from pydantic import BaseModel, Field
from typing import Optional


class EBookUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    file_url: Optional[str] = Field(default=None, alias="fileUrl")
    file_type: Optional[str] = Field(default=None, alias="fileType")
    thumbnail: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    is_free: Optional[bool] = Field(default=None, alias="isFree")

    class Config:
        populate_by_name = True


class VideoCreate(BaseModel):
    title: str
    url: Optional[str] = None
    public_id: Optional[str] = Field(default=None, alias="publicId")
    webinar_details_id: Optional[str] = Field(default=None, alias="webinarDetailsId")
    day: Optional[int] = None
    is_free: bool = Field(default=False, alias="isFree")

    class Config:
        populate_by_name = True


class VideoUpdate(BaseModel):
    title: Optional[str] = None
    url: Optional[str] = None
    public_id: Optional[str] = Field(default=None, alias="publicId")
    day: Optional[int] = None
    is_free: Optional[bool] = Field(default=None, alias="isFree")
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    class Config:
        populate_by_name = True
