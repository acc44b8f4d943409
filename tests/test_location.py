"""Tests for alert location lookup."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from location import DEFAULT_LOCATION, LocationData, fetch_location, maps_link


class TestFetchLocation:
    """Test cases for fetch_location."""

    def test_fixed_coordinates(self):
        location = fetch_location({"lat": 18.52, "lng": 73.85, "address": "Pune"})
        assert location == LocationData(18.52, 73.85, "Pune")

    @pytest.mark.parametrize("lat,lng", [("north", 72.8), (19.0, [72.8])])
    def test_fixed_coordinates_not_numeric(self, lat, lng):
        with pytest.raises(ValueError, match="numeric"):
            fetch_location({"lat": lat, "lng": lng})

    @patch("location.requests.get")
    def test_disabled_lookup(self, mock_get):
        assert fetch_location({"enabled": False}) == DEFAULT_LOCATION
        mock_get.assert_not_called()

    @patch("location.requests.get")
    def test_ip_lookup(self, mock_get):
        response = MagicMock()
        response.json.return_value = {
            "latitude": 28.61, "longitude": 77.21,
            "city": "New Delhi", "region": "Delhi", "country_name": "India",
        }
        mock_get.return_value = response

        location = fetch_location({"lookup_url": "https://geo.example/json"})

        assert location.lat == 28.61
        assert location.lng == 77.21
        assert location.address == "New Delhi, Delhi, India"
        assert mock_get.call_args[0][0] == "https://geo.example/json"
        assert mock_get.call_args[1]["timeout"] == 10

    @patch("location.requests.get")
    def test_network_failure_falls_back(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        assert fetch_location() == DEFAULT_LOCATION

    @patch("location.requests.get")
    def test_http_error_falls_back(self, mock_get):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("429")
        mock_get.return_value = response
        assert fetch_location() == DEFAULT_LOCATION

    @patch("location.requests.get")
    def test_missing_coordinates_falls_back(self, mock_get):
        response = MagicMock()
        response.json.return_value = {"error": True}
        mock_get.return_value = response
        assert fetch_location() == DEFAULT_LOCATION


class TestMapsLink:
    """Test cases for maps_link."""

    def test_link(self):
        link = maps_link(LocationData(19.076, 72.8777))
        assert link == "https://www.google.com/maps/search/?api=1&query=19.076,72.8777"

    def test_unknown_location(self):
        assert maps_link(None) == ""

    def test_str(self):
        assert str(DEFAULT_LOCATION) == "19.0760, 72.8777 (Mumbai, Maharashtra, India)"
