from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

IntentKind = {
    "ACTIVITY": "Activity",
    "TRANSACTION": "Transaction",
    "SOIL_TEST": "SoilTest",
    "QUERY": "Query",
    "UNKNOWN": "Unknown",
}

TransactionType = {
    "INCOME": "Income",
    "EXPENSE": "Expense",
}

Suitability = {
    "HIGH": "High",
    "MEDIUM": "Medium",
    "LOW": "Low",
}

FORECAST_DAYS = 5


# ----------------------------
# Weather
# ----------------------------

@dataclass
class Alert:
    id: int
    headline_text: str
    severity: str = "high"


@dataclass
class ForecastDay:
    iso_date: str
    mean_temp_c: float
    condition_text: str
    icon_ref: str
    rain_chance_pct: int
    humidity_pct: int


@dataclass
class CropRecommendation:
    crop_name: str
    suitability: str
    reason_text: str


@dataclass
class WeatherReading:
    location_name: str
    current_temp_c: float
    current_condition_text: str
    current_icon_ref: str
    humidity_pct: float
    precip_mm: float
    alerts: List[Alert] = field(default_factory=list)
    forecast: List[ForecastDay] = field(default_factory=list)
    recommendations: List[CropRecommendation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherReading":
        return cls(
            location_name=data["location_name"],
            current_temp_c=data["current_temp_c"],
            current_condition_text=data["current_condition_text"],
            current_icon_ref=data["current_icon_ref"],
            humidity_pct=data["humidity_pct"],
            precip_mm=data["precip_mm"],
            alerts=[Alert(**a) for a in data.get("alerts", [])],
            forecast=[ForecastDay(**d) for d in data.get("forecast", [])],
            recommendations=[CropRecommendation(**r) for r in data.get("recommendations", [])],
        )


# ----------------------------
# Intents
# ----------------------------

@dataclass
class IntentData:
    activity_type: Optional[str] = None
    crop: Optional[str] = None
    area_acres: Optional[float] = None
    amount: Optional[float] = None
    transaction_type: Optional[str] = None
    category: Optional[str] = None
    raw_text: Optional[str] = None


@dataclass
class ParsedIntent:
    intent_kind: str
    confidence: float
    data: IntentData
    confirmation_message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ----------------------------
# Records
# ----------------------------

@dataclass
class ActivityRecord:
    id: int
    farmer_id: int
    date: str
    activity_type: str
    crop: str
    area_acres: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActivityRecord":
        return cls(
            id=data["id"],
            farmer_id=data["farmer_id"],
            date=data["date"],
            activity_type=data["activity_type"],
            crop=data["crop"],
            area_acres=data.get("area_acres"),
        )


@dataclass
class TransactionRecord:
    id: int
    farmer_id: int
    date: str
    type: str
    category: str
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionRecord":
        return cls(
            id=data["id"],
            farmer_id=data["farmer_id"],
            date=data["date"],
            type=data["type"],
            category=data["category"],
            amount=data["amount"],
        )


@dataclass
class TransactionSummary:
    total_income: float = 0
    total_expense: float = 0
    net_profit: float = 0
