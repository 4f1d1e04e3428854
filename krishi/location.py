import logging

import requests

from krishi.config import Config

logger = logging.getLogger("location")


class IpGeolocator:
    """Approximate device position from its public IP (ip-api.com)."""

    def __init__(self, url=None):
        self.url = url or Config.geolocation_url
        self.headers = {"User-Agent": "KrishiVoice/1.0"}

    def current_position(self, timeout):
        response = requests.get(self.url, headers=self.headers, timeout=timeout)
        response.raise_for_status()
        data = response.json()

        if data.get("status") == "fail":
            raise ValueError(f"Geolocation failed: {data.get('message')}")

        try:
            return float(data["lat"]), float(data["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Error parsing geolocation data: {e}") from e
