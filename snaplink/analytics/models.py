"""
Data models for click analytics.
"""

from datetime import datetime, timezone
from typing import Iterator, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from snaplink.models.link import AttributeKind, utcnow

UNKNOWN = "Unknown"


def as_naive_utc(value: datetime) -> datetime:
    """Normalize to the naive UTC form stored in the database"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class ClickEvent(BaseModel):
    """
    One redirect, captured on the request path and handed to the aggregator.
    Never persisted as such: it is folded into the link's aggregates.
    """

    code: str = Field(..., description="The short code that was accessed")
    client_ip: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Raw User-Agent header")
    observed_at: datetime = Field(default_factory=utcnow, description="When the redirect happened")

    @field_validator("observed_at")
    @classmethod
    def _normalize_observed_at(cls, value: datetime) -> datetime:
        return as_naive_utc(value)


class ClickMetadata(BaseModel):
    """Enriched click, ready for LinkStore.record_click"""

    observed_at: datetime = Field(default_factory=utcnow)
    country: str = UNKNOWN
    city: str = UNKNOWN
    device: str = UNKNOWN
    os: str = UNKNOWN
    browser: str = UNKNOWN

    @field_validator("observed_at")
    @classmethod
    def _normalize_observed_at(cls, value: datetime) -> datetime:
        return as_naive_utc(value)

    def attribute_items(self) -> Iterator[Tuple[AttributeKind, str]]:
        """(kind, value) pairs for the link's metadata sets, empty values skipped"""
        pairs = (
            (AttributeKind.COUNTRY, self.country),
            (AttributeKind.CITY, self.city),
            (AttributeKind.DEVICE, self.device),
            (AttributeKind.OS, self.os),
            (AttributeKind.BROWSER, self.browser),
        )
        for kind, value in pairs:
            if value:
                yield kind, value
