"""
Crop suitability scoring from current weather.

Each crop in CROP_PROFILES is checked against temperature, humidity and
rain thresholds and placed in a High / Medium / Low tier. The result keeps
table order inside each tier.
"""

from typing import List

from krishi.models import CropRecommendation, Suitability

RAIN_THRESHOLD_MM = 0.1

CROP_PROFILES = [
    {"crop": "Rice", "min_temp": 20, "max_temp": 38, "min_humidity": 60, "rain_needed": True},
    {"crop": "Wheat", "min_temp": 10, "max_temp": 25, "min_humidity": 40, "rain_needed": False},
    {"crop": "Maize", "min_temp": 18, "max_temp": 27, "min_humidity": 50, "rain_needed": True},
    {"crop": "Sugarcane", "min_temp": 21, "max_temp": 35, "min_humidity": 60, "rain_needed": True},
    {"crop": "Cotton", "min_temp": 21, "max_temp": 30, "min_humidity": 40, "rain_needed": False},
    {"crop": "Pulses", "min_temp": 18, "max_temp": 30, "min_humidity": 30, "rain_needed": False},
]

_TIER_ORDER = [Suitability["HIGH"], Suitability["MEDIUM"], Suitability["LOW"]]


def _score_profile(profile, temp_c: float, humidity_pct: float, precip_mm: float) -> CropRecommendation:
    temp_ok = profile["min_temp"] <= temp_c <= profile["max_temp"]
    humidity_ok = humidity_pct >= profile["min_humidity"]
    rain_ok = precip_mm > RAIN_THRESHOLD_MM if profile["rain_needed"] else True

    if temp_ok and humidity_ok and rain_ok:
        suitability = Suitability["HIGH"]
    elif temp_ok or (humidity_ok and rain_ok):
        suitability = Suitability["MEDIUM"]
    else:
        suitability = Suitability["LOW"]

    reasons = []
    if not temp_ok:
        reasons.append("Temperature too low" if temp_c < profile["min_temp"] else "Temperature too high")
    if not humidity_ok:
        reasons.append("Humidity too low")
    if not rain_ok:
        reasons.append("Needs rain")

    return CropRecommendation(
        crop_name=profile["crop"],
        suitability=suitability,
        reason_text=", ".join(reasons) if reasons else "Ideal conditions",
    )


def score(temp_c: float, humidity_pct: float, precip_mm: float) -> List[CropRecommendation]:
    scored = [_score_profile(p, temp_c, humidity_pct, precip_mm) for p in CROP_PROFILES]

    # stable partition by tier
    return [rec for tier in _TIER_ORDER for rec in scored if rec.suitability == tier]
