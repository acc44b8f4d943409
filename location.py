#!/usr/bin/env python3
"""
Location lookup for Guardian Voice alerts.

Alerts carry the user's position and a map link. Position comes from fixed
coordinates in the config or an IP geolocation lookup; when neither works a
default city location is used so an alert is never held back.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests


@dataclass(frozen=True)
class LocationData:
    """A geographic position."""
    lat: float
    lng: float
    address: Optional[str] = None
    accuracy: Optional[float] = None

    def __str__(self):
        s = f"{self.lat:.4f}, {self.lng:.4f}"
        if self.address:
            s += f" ({self.address})"
        return s


DEFAULT_LOCATION = LocationData(lat=19.076, lng=72.8777, address="Mumbai, Maharashtra, India")

LOOKUP_URL = "https://ipapi.co/json/"
USER_AGENT = "GuardianVoice/1.0"


def fetch_location(config: Optional[dict] = None) -> LocationData:
    """
    Determine the current location.

    Config keys:
        lat, lng: Fixed coordinates (skip the lookup)
        address: Label for fixed coordinates
        lookup_url: IP geolocation endpoint (default: ipapi.co)
        enabled: Set False to always use the default location

    Returns:
        LocationData, falling back to DEFAULT_LOCATION when the lookup fails

    Raises:
        ValueError: If fixed coordinates are not numbers
    """
    config = config or {}

    if config.get("lat") is not None and config.get("lng") is not None:
        try:
            lat = float(config["lat"])
            lng = float(config["lng"])
        except (TypeError, ValueError):
            raise ValueError(
                f"Fixed location must be numeric, got lat={config['lat']!r} lng={config['lng']!r}"
            )
        return LocationData(lat=lat, lng=lng, address=config.get("address"))

    if not config.get("enabled", True):
        return DEFAULT_LOCATION

    url = config.get("lookup_url", LOOKUP_URL)
    try:
        response = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=10)
        response.raise_for_status()
        data = response.json()

        lat = data.get("latitude", data.get("lat"))
        lng = data.get("longitude", data.get("lon"))
        if lat is None or lng is None:
            raise ValueError("response has no coordinates")

        parts = [data.get("city"), data.get("region"), data.get("country_name") or data.get("country")]
        address = ", ".join(p for p in parts if p) or None
        logging.debug(f"Location lookup: {lat}, {lng} ({address})")
        return LocationData(lat=float(lat), lng=float(lng), address=address)

    except (requests.RequestException, ValueError) as e:
        logging.warning(f"Location lookup failed, using default: {e}")
        return DEFAULT_LOCATION


def maps_link(location: Optional[LocationData]) -> str:
    """Google Maps link for a location; empty if unknown."""
    if location is None:
        return ""
    return f"https://www.google.com/maps/search/?api=1&query={location.lat},{location.lng}"
