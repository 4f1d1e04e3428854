"""
Weather telemetry with a two-level cache fallback.

Location: live geolocation -> last cached coordinate -> default centroid.
Weather:  live fetch (recommendations recomputed, cache overwritten)
          -> last cached reading, returned as-is.

Only when the fetch fails and nothing is cached does resolve() give up
with TelemetryUnavailable.
"""

import asyncio
import logging
import time

import anyio

from krishi import suitability
from krishi.config import Config
from krishi.errors import TelemetryUnavailable
from krishi.models import FORECAST_DAYS, WeatherReading
from krishi.storage import StorageKey
from krishi.utility import call_maybe_async
from krishi.weather import parse_forecast

logger = logging.getLogger("telemetry")


class TelemetryResolver:
    def __init__(
        self,
        storage,
        geolocator,
        weather_provider,
        location_timeout_s=None,
        default_coordinate=None,
    ):
        self.storage = storage
        self.geolocator = geolocator
        self.weather_provider = weather_provider
        self.location_timeout_s = (
            location_timeout_s if location_timeout_s is not None else Config.location_timeout_s
        )
        self.default_coordinate = default_coordinate or (Config.default_lat, Config.default_lon)
        # one resolution at a time; callers queue instead of racing
        self._lock = asyncio.Lock()

    async def resolve(self) -> WeatherReading:
        async with self._lock:
            lat, lon = await self._resolve_coordinate()
            return await self._resolve_reading(lat, lon)

    get_weather_reading = resolve

    async def _resolve_coordinate(self):
        try:
            with anyio.fail_after(self.location_timeout_s):
                lat, lon = await call_maybe_async(self.geolocator.current_position, self.location_timeout_s)
        except Exception as e:
            logger.warning("Geolocation unavailable (%s: %s); trying cached location", type(e).__name__, e)
        else:
            logger.info("Live location resolved lat=%s lon=%s", lat, lon)
            await self._write_cache(StorageKey["LOCATION_CACHE"], {"lat": lat, "lon": lon})
            return lat, lon

        cached = await self._read_cache(StorageKey["LOCATION_CACHE"])
        if cached:
            try:
                return float(cached["lat"]), float(cached["lon"])
            except (KeyError, TypeError, ValueError):
                logger.warning("Cached location is corrupt; ignoring it")

        logger.warning("No cached location; using default coordinate %s", self.default_coordinate)
        return self.default_coordinate

    async def _resolve_reading(self, lat, lon) -> WeatherReading:
        start = time.perf_counter()
        try:
            payload = await call_maybe_async(self.weather_provider.forecast, lat, lon, FORECAST_DAYS)
            reading = parse_forecast(payload)
        except Exception as fetch_error:
            logger.warning("Weather fetch failed (%s: %s); trying cached reading", type(fetch_error).__name__, fetch_error)
            cached = await self._read_cache(StorageKey["WEATHER_CACHE"])
            if cached:
                try:
                    return WeatherReading.from_dict(cached)
                except (KeyError, TypeError) as e:
                    logger.warning("Cached weather reading is corrupt: %s", e)
            raise TelemetryUnavailable(f"No weather data available: {fetch_error}") from fetch_error
        finally:
            ms = (time.perf_counter() - start) * 1000.0
            logger.info("[timing] step=telemetry.weather ms=%.2f lat=%s lon=%s", ms, lat, lon)

        reading.recommendations = suitability.score(
            reading.current_temp_c,
            reading.humidity_pct,
            reading.precip_mm,
        )
        await self._write_cache(StorageKey["WEATHER_CACHE"], reading.to_dict())
        return reading

    async def _write_cache(self, key, value):
        try:
            await self.storage.put(key, value)
        except Exception as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    async def _read_cache(self, key):
        try:
            return await self.storage.get(key)
        except Exception as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None
