"""
IP geolocation lookups.

The locator is an external collaborator: one request per lookup, bounded by
a timeout, no retries. Any failure is raised as GeolocationError and the
caller decides how to degrade.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests
from pydantic import BaseModel, ValidationError

from snaplink.analytics.models import UNKNOWN
from snaplink.exceptions import GeolocationError

logger = logging.getLogger(__name__)


class GeoLocation(BaseModel):
    country: str = UNKNOWN
    region: str = UNKNOWN
    city: str = UNKNOWN
    isp: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None


class GeoLocator(ABC):
    @abstractmethod
    def lookup(self, ip: str) -> GeoLocation:
        """
        Resolve an IP address.

        Raises:
            GeolocationError: lookup failed for any reason
        """
        pass


class IpApiLocator(GeoLocator):
    """
    Locator backed by the ip-api.com JSON endpoint.

    Response fields used: status, country, regionName, city, isp, lat, lon.
    """

    def __init__(
        self,
        url_template: str = "http://ip-api.com/json/{ip}",
        timeout: float = 3.0,
        session: Optional[requests.Session] = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup(self, ip: str) -> GeoLocation:
        try:
            response = self.session.get(self.url_template.format(ip=ip), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise GeolocationError(f"Lookup for {ip} failed: {e}") from e

        if data.get("status") != "success":
            raise GeolocationError(f"Lookup for {ip} failed: {data.get('message', 'unknown error')}")

        try:
            return GeoLocation(
                country=data.get("country") or UNKNOWN,
                region=data.get("regionName") or UNKNOWN,
                city=data.get("city") or UNKNOWN,
                isp=data.get("isp"),
                lat=data.get("lat"),
                lon=data.get("lon"),
            )
        except ValidationError as e:
            raise GeolocationError(f"Unexpected response for {ip}: {e}") from e


class NullLocator(GeoLocator):
    """Locator that knows nothing. Every click lands in Unknown/Unknown."""

    def lookup(self, ip: str) -> GeoLocation:
        return GeoLocation()
