import json
import os

import pytest

from krishi.errors import EmptyInput, StructuringFailed
from krishi.intent import IntentStructurer, decode_intent

from conftest import ACTIVITY_RESPONSE, TODAY, FakeOracle


def _structurer(oracle):
    return IntentStructurer(oracle=oracle, today=lambda: TODAY)


async def test_activity_is_decoded():
    intent = await _structurer(FakeOracle(ACTIVITY_RESPONSE)).structure("sowed two acres of tomato today", "hi-IN")

    assert intent.intent_kind == "Activity"
    assert intent.confidence == 0.95
    assert intent.data.crop == "Tomato"
    assert intent.data.activity_type == "Sowing"
    assert intent.data.area_acres == 2


async def test_prompt_carries_language_directive_and_date():
    oracle = FakeOracle(ACTIVITY_RESPONSE)
    await _structurer(oracle).structure("kal do acre tamatar boya", "mr-IN")

    [prompt] = oracle.prompts
    assert "Pure Marathi" in prompt
    assert TODAY in prompt
    assert "kal do acre tamatar boya" in prompt


@pytest.mark.parametrize("text", ["", "   ", None])
async def test_blank_transcript_is_rejected(text):
    oracle = FakeOracle(ACTIVITY_RESPONSE)
    with pytest.raises(EmptyInput):
        await _structurer(oracle).structure(text, "hi-IN")
    assert oracle.prompts == []


async def test_offline_stub_without_credential():
    structurer = IntentStructurer(api_key="")
    assert structurer.offline

    intent = await structurer.structure("anything at all", "hi-IN")

    assert intent.intent_kind == "Activity"
    assert intent.data.activity_type == "Sowing"
    assert intent.data.raw_text == "anything at all"
    assert intent.confirmation_message == "मैंने नोट किया: २ एकड़ में टमाटर की बुवाई।"


async def test_oracle_error_is_structuring_failed():
    oracle = FakeOracle(error=ConnectionError("network down"))

    with pytest.raises(StructuringFailed) as exc:
        await _structurer(oracle).structure("sold onions", "en-IN")
    assert exc.value.transcript == "sold onions"
    assert exc.value.kind == "StructuringFailed"


async def test_mixed_script_confirmation_is_rejected():
    response = dict(ACTIVITY_RESPONSE, confirmation_message="मैंने नोट किया: 2 acre Tomato")

    with pytest.raises(StructuringFailed):
        await _structurer(FakeOracle(response)).structure("sowed tomato", "hi-IN")


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"text"', "", '{"intent": "ACTIVITY", "data": {}}'])
def test_bad_oracle_output_is_typed_failure(raw):
    with pytest.raises(StructuringFailed):
        decode_intent(raw, "sowed tomato")


def test_markdown_fences_are_stripped():
    raw = '```json\n{"intent": "QUERY", "data": {}, "confirmation_message": "ok"}\n```'

    assert decode_intent(raw, "what is the price").intent_kind == "Query"


@pytest.mark.parametrize("wire,kind", [
    ("ACTIVITY", "Activity"),
    ("transaction", "Transaction"),
    ("SOIL_TEST", "SoilTest"),
    ("QUERY", "Query"),
    ("HARVEST_PLAN", "Unknown"),
    (42, "Unknown"),
    (None, "Unknown"),
])
def test_intent_kind_normalization(wire, kind):
    raw = {"intent": wire, "data": {}, "confirmation_message": "ok"}

    assert decode_intent(json.dumps(raw), "x").intent_kind == kind


def test_numeric_fields_are_validated():
    raw = """{
        "intent": "TRANSACTION",
        "confidence": 1.7,
        "data": {"amount": -40, "area": "abc", "transaction_type": "income", "category": "  "},
        "confirmation_message": "ok"
    }"""
    intent = decode_intent(raw, "sold wheat")

    assert intent.confidence == 1.0
    assert intent.data.amount is None
    assert intent.data.area_acres is None
    assert intent.data.transaction_type == "Income"
    assert intent.data.category is None
    assert intent.data.raw_text == "sold wheat"


def test_boolean_and_string_numbers():
    raw = '{"intent": "TRANSACTION", "confidence": "0.4", "data": {"amount": true, "area": "1.5", "transaction_type": "GIFT"}, "confirmation_message": "ok"}'
    intent = decode_intent(raw, "x")

    assert intent.confidence == 0.4
    assert intent.data.amount is None
    assert intent.data.area_acres == 1.5
    assert intent.data.transaction_type is None


@pytest.mark.skipif(
    not os.getenv("GEMINI_API_KEY"),
    reason="GEMINI_API_KEY is required for the live oracle",
)
async def test_gemini_structuring_smoke():
    intent = await IntentStructurer().structure("I sold 10 quintals of wheat for 20000 rupees", "en-IN")

    assert intent.intent_kind in ("Transaction", "Unknown")
    assert intent.confirmation_message
