"""
Geolocation

Best-effort IP to (country, region) lookup backed by a MaxMind GeoLite2
City database. Without a configured database every lookup is empty.
"""

import ipaddress
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import geoip2.database
import geoip2.errors
from maxminddb import InvalidDatabaseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoLocation:
    country: Optional[str] = None
    region: Optional[str] = None


EMPTY_LOCATION = GeoLocation()


def is_routable_ip(ip_address: Optional[str]) -> bool:
    """False for missing, malformed, loopback, unspecified and private addresses."""
    if not ip_address or ip_address == "unknown":
        return False
    try:
        address = ipaddress.ip_address(ip_address)
    except ValueError:
        return False
    return not (address.is_loopback or address.is_unspecified or address.is_private or address.is_link_local)


class GeoLocator:
    """Wraps a geoip2 reader; a locator without a reader always returns EMPTY_LOCATION."""

    def __init__(self, reader: Optional[geoip2.database.Reader] = None):
        self.reader = reader

    @classmethod
    def from_path(cls, path: Optional[Union[str, Path]]) -> "GeoLocator":
        if not path:
            return cls()
        try:
            reader = geoip2.database.Reader(str(path))
        except (OSError, InvalidDatabaseError) as e:
            logger.warning(f"GeoIP database {path} could not be opened, geolocation disabled: {e}")
            return cls()
        logger.info(f"GeoIP database loaded from {path}")
        return cls(reader)

    @property
    def enabled(self) -> bool:
        return self.reader is not None

    def lookup(self, ip_address: Optional[str]) -> GeoLocation:
        if self.reader is None or not is_routable_ip(ip_address):
            return EMPTY_LOCATION
        try:
            response = self.reader.city(ip_address)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return EMPTY_LOCATION
        except geoip2.errors.GeoIP2Error as e:
            logger.warning(f"GeoIP lookup failed for {ip_address}: {e}")
            return EMPTY_LOCATION

        return GeoLocation(
            country=response.country.iso_code,
            region=response.subdivisions.most_specific.iso_code,
        )

    def close(self) -> None:
        if self.reader is not None:
            self.reader.close()
            self.reader = None
