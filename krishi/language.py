import re
import unicodedata

from krishi.errors import ErrorKind

ENGLISH = "en-IN"
HINDI = "hi-IN"
MARATHI = "mr-IN"

SUPPORTED_LANGUAGES = [ENGLISH, HINDI, MARATHI]

_DEVANAGARI_RE = re.compile(r"[\u0900-\u097F]")
_LATIN_RE = re.compile(r"[A-Za-z]")

# Script name used in the structuring prompt
PROMPT_LANGUAGE_NAMES = {
    ENGLISH: "English",
    HINDI: "Pure Hindi",
    MARATHI: "Pure Marathi",
}

PHRASES = {
    "saved": {
        ENGLISH: "Saved successfully.",
        HINDI: "सफलतापूर्वक सहेजा गया।",
        MARATHI: "यशस्वीरित्या जतन केले.",
    },
    "offline_sowing": {
        ENGLISH: "I noted: sowing of tomato on 2 acres.",
        HINDI: "मैंने नोट किया: २ एकड़ में टमाटर की बुवाई।",
        MARATHI: "मी नोंदवले: २ एकरात टोमॅटो लावले.",
    },
    ErrorKind["DEVICE_UNAVAILABLE"]: {
        ENGLISH: "Voice input is not available on this device.",
        HINDI: "इस उपकरण पर आवाज़ इनपुट उपलब्ध नहीं है।",
        MARATHI: "या उपकरणावर आवाज इनपुट उपलब्ध नाही.",
    },
    ErrorKind["CAPTURE_ERROR"]: {
        ENGLISH: "I could not hear you. Please try again.",
        HINDI: "मैं आपको सुन नहीं पाया। कृपया फिर से प्रयास करें।",
        MARATHI: "मला तुमचे ऐकू आले नाही. कृपया पुन्हा प्रयत्न करा.",
    },
    ErrorKind["EMPTY_INPUT"]: {
        ENGLISH: "Nothing was said. Please try again.",
        HINDI: "कुछ बोला नहीं गया। कृपया फिर से प्रयास करें।",
        MARATHI: "काहीही बोलले गेले नाही. कृपया पुन्हा प्रयत्न करा.",
    },
    ErrorKind["STRUCTURING_FAILED"]: {
        ENGLISH: "Something went wrong while understanding that.",
        HINDI: "कुछ गलत हो गया।",
        MARATHI: "काहीतरी चूक झाली.",
    },
    ErrorKind["UNSUPPORTED_INTENT"]: {
        ENGLISH: "This kind of request cannot be saved.",
        HINDI: "इस प्रकार का अनुरोध सहेजा नहीं जा सकता।",
        MARATHI: "या प्रकारची विनंती जतन करता येत नाही.",
    },
    ErrorKind["PERSIST_FAILED"]: {
        ENGLISH: "Could not save the record. Please try again.",
        HINDI: "रिकॉर्ड सहेजा नहीं जा सका। कृपया फिर से प्रयास करें।",
        MARATHI: "नोंद जतन करता आली नाही. कृपया पुन्हा प्रयत्न करा.",
    },
    ErrorKind["TELEMETRY_UNAVAILABLE"]: {
        ENGLISH: "Weather information is not available right now.",
        HINDI: "मौसम की जानकारी अभी उपलब्ध नहीं है।",
        MARATHI: "हवामानाची माहिती सध्या उपलब्ध नाही.",
    },
}


def normalize_language(code):
    """Map 'hi', 'HI_in', 'hi-IN' ... onto a supported code; English otherwise."""
    if not code:
        return ENGLISH
    prefix = code.replace("_", "-").split("-")[0].lower()
    for lang in SUPPORTED_LANGUAGES:
        if lang.split("-")[0] == prefix:
            return lang
    return ENGLISH


def phrase(key, language):
    entries = PHRASES[key]
    return entries.get(normalize_language(language), entries[ENGLISH])


def has_devanagari(s: str) -> bool:
    return bool(_DEVANAGARI_RE.search(s or ""))


def has_latin(s: str) -> bool:
    return bool(_LATIN_RE.search(unicodedata.normalize("NFKC", s or "")))


def is_in_script(text, language) -> bool:
    """
    True when text contains no letters from a foreign script.
    Digits and punctuation are allowed in every language.
    """
    language = normalize_language(language)
    if language == ENGLISH:
        return not has_devanagari(text)
    return not has_latin(text)
