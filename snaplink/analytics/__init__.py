"""
Click analytics: user-agent classification, geolocation and the background
aggregator that folds clicks into link aggregates.
"""

from .models import ClickEvent, ClickMetadata, UNKNOWN
from .user_agent import UserAgentInfo, classify_user_agent
from .geolocation import GeoLocation, GeoLocator, IpApiLocator, NullLocator
from .aggregator import ClickAggregator

__all__ = [
    "ClickEvent",
    "ClickMetadata",
    "UNKNOWN",
    "UserAgentInfo",
    "classify_user_agent",
    "GeoLocation",
    "GeoLocator",
    "IpApiLocator",
    "NullLocator",
    "ClickAggregator",
]
