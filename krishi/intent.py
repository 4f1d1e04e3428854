import json
import logging
import math
import uuid

from google import genai

from krishi.config import Config
from krishi.errors import EmptyInput, StructuringFailed
from krishi.language import PROMPT_LANGUAGE_NAMES, is_in_script, normalize_language, phrase
from krishi.models import IntentData, IntentKind, ParsedIntent, TransactionType
from krishi.utility import call_maybe_async, today_iso

logger = logging.getLogger("intent")

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "intent": {
            "type": "STRING",
            "enum": ["ACTIVITY", "TRANSACTION", "SOIL_TEST", "QUERY", "UNKNOWN"],
            "description": "Classification of voice command.",
        },
        "confidence": {"type": "NUMBER"},
        "data": {
            "type": "OBJECT",
            "properties": {
                "activity_type": {"type": "STRING"},
                "crop": {"type": "STRING"},
                "area": {"type": "NUMBER"},
                "amount": {"type": "NUMBER"},
                "transaction_type": {"type": "STRING", "enum": ["INCOME", "EXPENSE"]},
                "category": {"type": "STRING"},
                "raw_text": {"type": "STRING"},
            },
        },
        "confirmation_message": {
            "type": "STRING",
            "description": "Summarize the action in the user's native tongue.",
        },
    },
    "required": ["intent", "data", "confirmation_message"],
}

PROMPT_TEMPLATE = """You are a regional farming assistant for Indian farmers.
Analyze the input and return JSON.
Today is {today}.

Classify the input as ACTIVITY (sowing, harvesting, spraying, irrigation...),
TRANSACTION (a sale is INCOME, a purchase or payment is EXPENSE),
SOIL_TEST, QUERY (a question) or UNKNOWN.
Write the crop and activity_type in English Title Case (e.g. "Tomato", "Sowing").
Give area in acres and amount in rupees as plain numbers.

CRITICAL: The 'confirmation_message' MUST be written in {language_name} script.
DO NOT mix English words into the {language_name} confirmation.
Example Marathi: "मी नोंदवले: आज २ एकरात कांदा लावला."
Example Hindi: "मैने नोट किया: आज २ एकड़ में प्याज लगाया।"

User input: "{transcript}"
"""

_KIND_BY_WIRE = {
    "ACTIVITY": IntentKind["ACTIVITY"],
    "TRANSACTION": IntentKind["TRANSACTION"],
    "SOIL_TEST": IntentKind["SOIL_TEST"],
    "SOILTEST": IntentKind["SOIL_TEST"],
    "QUERY": IntentKind["QUERY"],
    "UNKNOWN": IntentKind["UNKNOWN"],
}


class GeminiOracle:
    """Constrained-JSON generation through the Gemini API."""

    def __init__(self, api_key=None, model=None):
        self.client = genai.Client(api_key=api_key or Config.gemini_api_key)
        self.model = model or Config.gemini_model

    def generate(self, prompt, schema):
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config={
                "temperature": 0.1,
                "response_mime_type": "application/json",
                "response_schema": schema,
            },
        )
        return (response.text or "").strip()


class IntentStructurer:
    """
    Turns a transcript into a ParsedIntent.

    Without a Gemini key (and no injected oracle) a fixed offline intent is
    returned so the pipeline still works end to end.
    """

    def __init__(self, oracle=None, api_key=None, today=today_iso):
        self.api_key = api_key if api_key is not None else Config.gemini_api_key
        self.oracle = oracle
        self.today = today

    @property
    def offline(self) -> bool:
        return self.oracle is None and not self.api_key

    async def structure(self, transcript, language) -> ParsedIntent:
        if not transcript or not transcript.strip():
            raise EmptyInput("Transcript is empty")

        language = normalize_language(language)
        transcript = transcript.strip()
        trace_id = uuid.uuid4().hex[:8]

        if self.offline:
            logger.info(f"[{trace_id}] No oracle credential; using offline intent")
            return offline_intent(transcript, language)

        if self.oracle is None:
            self.oracle = GeminiOracle(api_key=self.api_key)

        prompt = PROMPT_TEMPLATE.format(
            today=self.today(),
            language_name=PROMPT_LANGUAGE_NAMES[language],
            transcript=transcript.replace('"', "'"),
        )

        try:
            raw = await call_maybe_async(self.oracle.generate, prompt, RESPONSE_SCHEMA)
            logger.info(f"[{trace_id}] LLM raw output: {raw!r}")
        except Exception as e:
            logger.exception(f"[{trace_id}] Oracle error")
            raise StructuringFailed(f"Oracle error: {e}", transcript=transcript) from e

        intent = decode_intent(raw, transcript)

        if not is_in_script(intent.confirmation_message, language):
            logger.warning(f"[{trace_id}] Confirmation not in {language} script: {intent.confirmation_message!r}")
            raise StructuringFailed("Confirmation message mixes scripts", transcript=transcript)

        logger.info(f"[{trace_id}] DECISION=intent | kind={intent.intent_kind} | confidence={intent.confidence}")
        return intent


def offline_intent(transcript, language) -> ParsedIntent:
    return ParsedIntent(
        intent_kind=IntentKind["ACTIVITY"],
        confidence=0.9,
        data=IntentData(activity_type="Sowing", crop="Tomato", area_acres=2, raw_text=transcript),
        confirmation_message=phrase("offline_sowing", language),
    )


def decode_intent(raw, transcript) -> ParsedIntent:
    """
    Validate oracle output into a ParsedIntent.
    Raises StructuringFailed for malformed JSON or a missing confirmation.
    """
    json_text = (raw or "").replace("```json", "").replace("```", "").strip()
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise StructuringFailed(f"Oracle output is not JSON: {e}", transcript=transcript) from e

    if not isinstance(parsed, dict):
        raise StructuringFailed("Oracle output is not a JSON object", transcript=transcript)

    message = parsed.get("confirmation_message")
    if not isinstance(message, str) or not message.strip():
        raise StructuringFailed("Oracle output has no confirmation_message", transcript=transcript)

    data = parsed.get("data")
    if not isinstance(data, dict):
        data = {}

    kind = parsed.get("intent")
    kind = _KIND_BY_WIRE.get(kind.strip().upper(), IntentKind["UNKNOWN"]) if isinstance(kind, str) else IntentKind["UNKNOWN"]

    return ParsedIntent(
        intent_kind=kind,
        confidence=_confidence(parsed.get("confidence")),
        data=IntentData(
            activity_type=_text(data.get("activity_type")),
            crop=_text(data.get("crop")),
            area_acres=_non_negative(data.get("area")),
            amount=_non_negative(data.get("amount")),
            transaction_type=_transaction_type(data.get("transaction_type")),
            category=_text(data.get("category")),
            raw_text=_text(data.get("raw_text")) or transcript,
        ),
        confirmation_message=message.strip(),
    )


def _number(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return value


def _non_negative(value):
    value = _number(value)
    if value is None or value < 0:
        return None
    return value


def _confidence(value):
    value = _number(value)
    if value is None:
        return 0.0
    return float(min(1.0, max(0.0, value)))


def _text(value):
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _transaction_type(value):
    if not isinstance(value, str):
        return None
    return TransactionType.get(value.strip().upper())
