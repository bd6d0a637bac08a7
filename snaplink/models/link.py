from datetime import datetime, timezone
from enum import Enum
from typing import Set

from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from snaplink.database.connection import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AttributeKind(str, Enum):
    """Metadata sets collected per link"""
    COUNTRY = "country"
    CITY = "city"
    DEVICE = "device"
    OS = "os"
    BROWSER = "browser"


class Link(Base):
    """
    A shortened URL and its click aggregates.

    code, owner_id, original_url and created_at never change after insert.
    Click fields are written only by LinkStore.record_click.
    """
    __tablename__ = "links"

    code = Column(String(32), primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)
    original_url = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    clicks = Column(Integer, nullable=False, default=0)
    first_click_at = Column(DateTime, nullable=True)
    last_click_at = Column(DateTime, nullable=True)

    attributes = relationship(
        "LinkAttribute",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("clicks >= 0", name="ck_links_clicks_non_negative"),
    )

    def _values(self, kind: AttributeKind) -> Set[str]:
        return {attr.value for attr in self.attributes if attr.kind == kind.value}

    @property
    def countries(self) -> Set[str]:
        return self._values(AttributeKind.COUNTRY)

    @property
    def cities(self) -> Set[str]:
        return self._values(AttributeKind.CITY)

    @property
    def devices(self) -> Set[str]:
        return self._values(AttributeKind.DEVICE)

    @property
    def operating_systems(self) -> Set[str]:
        return self._values(AttributeKind.OS)

    @property
    def browsers(self) -> Set[str]:
        return self._values(AttributeKind.BROWSER)

    def __repr__(self):
        return f"<Link {self.code} -> {self.original_url} clicks={self.clicks}>"


class LinkAttribute(Base):
    """One member of one of a link's metadata sets"""
    __tablename__ = "link_attributes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    link_code = Column(
        String(32), ForeignKey("links.code", ondelete="CASCADE"), nullable=False, index=True
    )
    kind = Column(String(16), nullable=False)
    value = Column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("link_code", "kind", "value", name="uq_link_attribute"),
    )
