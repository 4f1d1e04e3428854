import logging
import math

import requests

from krishi.config import Config
from krishi.models import FORECAST_DAYS, Alert, ForecastDay, WeatherReading

logger = logging.getLogger("weather")


def _pct(value) -> int:
    return max(0, min(100, int(round(value or 0))))


def _measurement(value) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Non-finite measurement: {value!r}")
    return number


class WeatherApiProvider:
    """weatherapi.com forecast client."""

    def __init__(self, api_key=None, url=None, timeout=None):
        self.api_key = api_key if api_key is not None else Config.weather_api_key
        self.url = url or Config.weather_api_url
        self.timeout = timeout or Config.weather_timeout_s

    def forecast(self, lat, lon, days=FORECAST_DAYS):
        if not self.api_key:
            raise ValueError("WEATHER_API_KEY is not configured")

        params = {
            "key": self.api_key,
            "q": f"{lat},{lon}",
            "days": days,
            "aqi": "no",
            "alerts": "yes",
        }
        logger.info("Fetching weather for lat=%s lon=%s days=%s", lat, lon, days)
        response = requests.get(self.url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()


def parse_forecast(payload) -> WeatherReading:
    """
    Map a weatherapi.com forecast payload into a WeatherReading.
    Recommendations are left empty for the caller to fill in.
    Raises ValueError when the payload is missing fields or days.
    """
    try:
        location = payload["location"]
        current = payload["current"]
        days = payload["forecast"]["forecastday"]

        alerts = []
        for index, alert in enumerate((payload.get("alerts") or {}).get("alert") or []):
            alerts.append(Alert(id=index, headline_text=alert.get("headline") or "", severity="high"))

        forecast = []
        for day in days[:FORECAST_DAYS]:
            stats = day["day"]
            forecast.append(ForecastDay(
                iso_date=day["date"],
                mean_temp_c=stats["avgtemp_c"],
                condition_text=stats["condition"]["text"],
                icon_ref=stats["condition"]["icon"],
                rain_chance_pct=_pct(stats.get("daily_chance_of_rain")),
                humidity_pct=_pct(stats.get("avghumidity")),
            ))

        reading = WeatherReading(
            location_name=location["name"],
            current_temp_c=_measurement(current["temp_c"]),
            current_condition_text=current["condition"]["text"],
            current_icon_ref=current["condition"]["icon"],
            humidity_pct=_measurement(current["humidity"]),
            precip_mm=_measurement(current.get("precip_mm") or 0.0),
            alerts=alerts,
            forecast=forecast,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValueError(f"Error processing weather data: {e}") from e

    if len(forecast) != FORECAST_DAYS:
        raise ValueError(f"Expected {FORECAST_DAYS} forecast days, got {len(forecast)}")

    forecast.sort(key=lambda d: d.iso_date)
    return reading
