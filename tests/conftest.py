import copy
import json

import pytest

from krishi.errors import CaptureError
from krishi.intent import IntentStructurer
from krishi.ledger import FarmLedger, IdClock
from krishi.session import CommandSession
from krishi.storage import MemoryStorage

TODAY = "2026-10-19"


class FakeCapture:
    def __init__(self, transcript="sowed two acres of tomato today", available=True, error=None):
        self.transcript = transcript
        self._available = available
        self.error = error
        self.languages = []
        self.deactivated = 0

    async def available(self):
        return self._available

    async def listen(self, language):
        self.languages.append(language)
        if self.error:
            raise self.error
        return self.transcript

    async def deactivate(self):
        self.deactivated += 1


class FakeSpeaker:
    def __init__(self):
        self.spoken = []

    async def speak(self, text, language):
        self.spoken.append((text, language))


class FakeOracle:
    """Returns canned oracle output; records each prompt."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    async def generate(self, prompt, schema):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        if isinstance(self.response, dict):
            return json.dumps(self.response, ensure_ascii=False)
        return self.response


class FakeGeolocator:
    def __init__(self, position=None, error=None):
        self.position = position
        self.error = error
        self.calls = 0

    async def current_position(self, timeout):
        self.calls += 1
        if self.error:
            raise self.error
        return self.position


class FakeWeather:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.requests = []

    async def forecast(self, lat, lon, days):
        self.requests.append((lat, lon, days))
        if self.error:
            raise self.error
        return copy.deepcopy(self.payload)


class FailingStorage(MemoryStorage):
    async def append(self, key, record):
        raise ConnectionError("store offline")


def weather_payload(temp_c=25.0, humidity=65, precip_mm=5.0, alerts=None, days=5):
    return {
        "location": {"name": "Nashik"},
        "current": {
            "temp_c": temp_c,
            "humidity": humidity,
            "precip_mm": precip_mm,
            "condition": {"text": "Light rain", "icon": "//cdn.weatherapi.com/296.png"},
        },
        "forecast": {
            "forecastday": [
                {
                    "date": f"2026-10-{19 + i}",
                    "day": {
                        "avgtemp_c": 24.0 + i,
                        "daily_chance_of_rain": 80 - i * 10,
                        "avghumidity": 70,
                        "condition": {"text": "Patchy rain", "icon": "//cdn.weatherapi.com/176.png"},
                    },
                }
                for i in range(days)
            ]
        },
        "alerts": {"alert": [{"headline": h} for h in (alerts or [])]},
    }


ACTIVITY_RESPONSE = {
    "intent": "ACTIVITY",
    "confidence": 0.95,
    "data": {"activity_type": "Sowing", "crop": "Tomato", "area": 2, "raw_text": "sowed two acres of tomato today"},
    "confirmation_message": "मैंने नोट किया: आज २ एकड़ में टमाटर की बुवाई।",
}


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def speaker():
    return FakeSpeaker()


@pytest.fixture
def ledger(storage):
    ticks = iter(range(1_000, 100_000))
    return FarmLedger(storage, farmer_id=7, id_clock=IdClock(clock=lambda: next(ticks)), today=lambda: TODAY)


@pytest.fixture
async def make_session(ledger, speaker):
    created = []

    def _make(capture=None, oracle=None, language="hi-IN", structurer=None, session_ledger=None, reset_delay_s=60):
        session = CommandSession(
            capture=capture or FakeCapture(),
            speaker=speaker,
            structurer=structurer or IntentStructurer(oracle=oracle or FakeOracle(ACTIVITY_RESPONSE), today=lambda: TODAY),
            ledger=session_ledger or ledger,
            language=language,
            reset_delay_s=reset_delay_s,
        )
        created.append(session)
        return session

    yield _make

    for session in created:
        await session.close()


@pytest.fixture
def capture_error():
    return CaptureError("microphone busy")
