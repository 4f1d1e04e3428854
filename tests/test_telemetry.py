import asyncio

import pytest
import requests

from krishi.errors import TelemetryUnavailable
from krishi.models import Alert, CropRecommendation, ForecastDay, WeatherReading
from krishi.storage import StorageKey
from krishi.telemetry import TelemetryResolver

from conftest import FakeGeolocator, FakeWeather, weather_payload

DEFAULT = (20.5937, 78.9629)


def _resolver(storage, geolocator, weather, timeout=0.5):
    return TelemetryResolver(
        storage,
        geolocator,
        weather,
        location_timeout_s=timeout,
        default_coordinate=DEFAULT,
    )


def _cached_reading():
    return WeatherReading(
        location_name="Pune",
        current_temp_c=5.0,
        current_condition_text="Clear",
        current_icon_ref="113.png",
        humidity_pct=20,
        precip_mm=0.0,
        alerts=[Alert(id=0, headline_text="Cold wave", severity="high")],
        forecast=[ForecastDay(f"2026-10-{10 + i}", 6.0, "Clear", "113.png", 0, 20) for i in range(5)],
        # differs from score() for these conditions
        recommendations=[CropRecommendation("Rice", "High", "Ideal conditions")],
    )


async def test_live_location_and_weather(storage):
    weather = FakeWeather(weather_payload(temp_c=25, humidity=65, precip_mm=5, alerts=["Heavy rain warning"]))
    reading = await _resolver(storage, FakeGeolocator((19.99, 73.79)), weather).resolve()

    assert weather.requests == [(19.99, 73.79, 5)]
    assert reading.location_name == "Nashik"
    assert len(reading.forecast) == 5
    assert reading.alerts == [Alert(id=0, headline_text="Heavy rain warning", severity="high")]
    assert len(reading.recommendations) == 6
    assert reading.recommendations[0].suitability == "High"

    assert await storage.get(StorageKey["LOCATION_CACHE"]) == {"lat": 19.99, "lon": 73.79}
    assert await storage.get(StorageKey["WEATHER_CACHE"]) == reading.to_dict()


async def test_geolocation_timeout_uses_cached_coordinate(storage):
    class SlowGeolocator:
        async def current_position(self, timeout):
            await asyncio.sleep(5)
            return (0.0, 0.0)

    await storage.put(StorageKey["LOCATION_CACHE"], {"lat": 18.52, "lon": 73.85})
    weather = FakeWeather(weather_payload())

    await _resolver(storage, SlowGeolocator(), weather, timeout=0.05).resolve()

    assert weather.requests == [(18.52, 73.85, 5)]
    assert DEFAULT not in [(lat, lon) for lat, lon, _ in weather.requests]


async def test_geolocation_error_without_cache_uses_default(storage):
    weather = FakeWeather(weather_payload())

    await _resolver(storage, FakeGeolocator(error=PermissionError("denied")), weather).resolve()

    assert weather.requests == [(DEFAULT[0], DEFAULT[1], 5)]
    assert await storage.get(StorageKey["LOCATION_CACHE"]) is None


async def test_fetch_failure_returns_cached_reading_unchanged(storage):
    cached = _cached_reading()
    await storage.put(StorageKey["WEATHER_CACHE"], cached.to_dict())
    weather = FakeWeather(error=requests.ConnectionError("offline"))

    reading = await _resolver(storage, FakeGeolocator((19.99, 73.79)), weather).resolve()

    assert reading == cached
    assert reading.recommendations == [CropRecommendation("Rice", "High", "Ideal conditions")]


async def test_fetch_failure_without_cache_is_unavailable(storage):
    weather = FakeWeather(error=requests.ConnectionError("offline"))

    with pytest.raises(TelemetryUnavailable):
        await _resolver(storage, FakeGeolocator(error=TimeoutError()), weather).resolve()


async def test_short_forecast_counts_as_fetch_failure(storage):
    cached = _cached_reading()
    await storage.put(StorageKey["WEATHER_CACHE"], cached.to_dict())

    reading = await _resolver(storage, FakeGeolocator((1.0, 2.0)), FakeWeather(weather_payload(days=3))).resolve()

    assert reading == cached


async def test_fresh_fetch_overwrites_cache(storage):
    await storage.put(StorageKey["WEATHER_CACHE"], _cached_reading().to_dict())

    reading = await _resolver(storage, FakeGeolocator((1.0, 2.0)), FakeWeather(weather_payload())).resolve()

    assert reading.location_name == "Nashik"
    assert (await storage.get(StorageKey["WEATHER_CACHE"]))["location_name"] == "Nashik"


async def test_concurrent_resolves_are_serialised(storage):
    active = 0
    peak = 0

    class CountingWeather(FakeWeather):
        async def forecast(self, lat, lon, days):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await super().forecast(lat, lon, days)

    resolver = _resolver(storage, FakeGeolocator((1.0, 2.0)), CountingWeather(weather_payload()))
    await asyncio.gather(resolver.resolve(), resolver.get_weather_reading())

    assert peak == 1


def _payload_with_current(**overrides):
    payload = weather_payload()
    payload["current"].update(overrides)
    return payload


async def test_null_humidity_falls_back_to_cached_reading(storage):
    cached = _cached_reading()
    await storage.put(StorageKey["WEATHER_CACHE"], cached.to_dict())
    weather = FakeWeather(_payload_with_current(humidity=None))

    reading = await _resolver(storage, FakeGeolocator((1.0, 2.0)), weather).resolve()

    assert reading == cached


async def test_non_numeric_temperature_without_cache_is_unavailable(storage):
    weather = FakeWeather(_payload_with_current(temp_c="hot"))

    with pytest.raises(TelemetryUnavailable):
        await _resolver(storage, FakeGeolocator((1.0, 2.0)), weather).resolve()

    assert await storage.get(StorageKey["WEATHER_CACHE"]) is None
