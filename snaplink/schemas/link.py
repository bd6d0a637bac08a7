from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, computed_field, field_validator

from snaplink.config import settings


class LinkCreate(BaseModel):
    url: HttpUrl = Field(..., description="The original URL to be shortened")


class LinkResponse(BaseModel):
    """Serializes a Link model (from_attributes reads ORM attributes)"""
    code: str
    owner_id: int
    original_url: str
    clicks: int
    created_at: datetime

    @computed_field
    @property
    def short_url(self) -> str:
        return f"{settings.base_url}/{self.code}"

    model_config = ConfigDict(from_attributes=True)


class LinkStats(LinkResponse):
    first_click_at: Optional[datetime] = None
    last_click_at: Optional[datetime] = None
    countries: List[str] = []
    cities: List[str] = []
    devices: List[str] = []
    operating_systems: List[str] = []
    browsers: List[str] = []

    @field_validator(
        "countries", "cities", "devices", "operating_systems", "browsers", mode="before"
    )
    @classmethod
    def _sorted(cls, value):
        # Sets come back unordered; sort for stable output
        return sorted(value)


class FeedbackCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)

    model_config = ConfigDict(str_strip_whitespace=True)


class FeedbackResponse(BaseModel):
    id: int
    owner_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    status: int
    message: str
