"""
Tests for IP geolocation.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import geoip2.errors

from shortlink.services.geolocation import EMPTY_LOCATION, GeoLocation, GeoLocator, is_routable_ip


def city_response(country, region):
    return SimpleNamespace(
        country=SimpleNamespace(iso_code=country),
        subdivisions=SimpleNamespace(most_specific=SimpleNamespace(iso_code=region)),
    )


class TestRoutableIp:

    def test_public_addresses(self):
        assert is_routable_ip("8.8.8.8")
        assert is_routable_ip("2001:4860:4860::8888")

    def test_skipped_addresses(self):
        for ip in [None, "", "unknown", "not-an-ip", "127.0.0.1", "::1", "0.0.0.0", "10.1.2.3", "192.168.0.10"]:
            assert not is_routable_ip(ip), ip


class TestGeoLocator:

    def test_lookup(self):
        reader = MagicMock()
        reader.city.return_value = city_response("DE", "BE")

        assert GeoLocator(reader).lookup("8.8.8.8") == GeoLocation(country="DE", region="BE")
        reader.city.assert_called_once_with("8.8.8.8")

    def test_private_addresses_never_reach_reader(self):
        reader = MagicMock()

        assert GeoLocator(reader).lookup("127.0.0.1") == EMPTY_LOCATION
        reader.city.assert_not_called()

    def test_address_not_found(self):
        reader = MagicMock()
        reader.city.side_effect = geoip2.errors.AddressNotFoundError("The address 8.8.8.8 is not in the database.")

        assert GeoLocator(reader).lookup("8.8.8.8") == EMPTY_LOCATION

    def test_without_database(self):
        locator = GeoLocator.from_path(None)

        assert locator.enabled is False
        assert locator.lookup("8.8.8.8") == EMPTY_LOCATION

    def test_missing_database_file(self, tmp_path):
        locator = GeoLocator.from_path(tmp_path / "GeoLite2-City.mmdb")
        assert locator.enabled is False

    def test_close(self):
        reader = MagicMock()
        locator = GeoLocator(reader)

        locator.close()

        reader.close.assert_called_once()
        assert locator.enabled is False
