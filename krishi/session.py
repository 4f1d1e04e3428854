"""
Voice command session.

    Idle -> Listening -> Structuring -> AwaitingConfirmation -> Committing
                                                              -> Succeeded -> (delay) -> Idle
    any failing step -> Failed -> retry() -> Idle
    AwaitingConfirmation -> reject() -> Idle

Every failure ends in the Failed state with an error kind and a message
in the active language; nothing is raised to the caller. Operations sent
in the wrong state are ignored and return False.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from krishi.config import Config
from krishi.errors import (
    CaptureError,
    DeviceUnavailable,
    KrishiError,
    PersistFailed,
    StructuringFailed,
    UnsupportedIntent,
)
from krishi.language import normalize_language, phrase
from krishi.models import IntentKind, ParsedIntent
from krishi.utility import call_listener, call_maybe_async, set_timeout

logger = logging.getLogger("session")

SessionState = {
    "IDLE": "Idle",
    "LISTENING": "Listening",
    "STRUCTURING": "Structuring",
    "AWAITING_CONFIRMATION": "AwaitingConfirmation",
    "COMMITTING": "Committing",
    "SUCCEEDED": "Succeeded",
    "FAILED": "Failed",
}

COMMITTABLE_KINDS = (IntentKind["ACTIVITY"], IntentKind["TRANSACTION"])

# intent fields shown next to the confirmation message, in display order
DISPLAY_FIELDS = ["crop", "amount", "activity_type", "area_acres", "category", "transaction_type"]


@dataclass
class SessionSnapshot:
    state: str
    language: str
    transcript: Optional[str] = None
    intent: Optional[ParsedIntent] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None


class CommandSession:
    def __init__(self, capture, speaker, structurer, ledger, language=None, reset_delay_s=None):
        self.capture = capture
        self.speaker = speaker
        self.structurer = structurer
        self.ledger = ledger
        self.reset_delay_s = reset_delay_s if reset_delay_s is not None else Config.success_reset_delay_s

        self.state = SessionState["IDLE"]
        self.language = normalize_language(language or Config.language)
        self.transcript = None
        self.intent = None
        self.error_kind = None
        self.error_message = None
        self.last_record = None

        self._pending_language = None
        self._listeners = []
        self._lock = asyncio.Lock()
        self._reset_task = None

    # ----------------------------
    # Observation
    # ----------------------------

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            language=self.language,
            transcript=self.transcript,
            intent=self.intent,
            error_kind=self.error_kind,
            error_message=self.error_message,
        )

    def subscribe(self, listener):
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def display_fields(self) -> Dict[str, Any]:
        if self.intent is None:
            return {}
        data = self.intent.data
        return {
            name: getattr(data, name)
            for name in DISPLAY_FIELDS
            if getattr(data, name) is not None
        }

    def set_language(self, language):
        """Takes effect on the next start(); a running session keeps its language."""
        self._pending_language = normalize_language(language)
        logger.info("[SESSION] language change queued | pending=%s | state=%s", self._pending_language, self.state)

    # ----------------------------
    # User operations
    # ----------------------------

    async def start(self) -> bool:
        async with self._lock:
            if self.state != SessionState["IDLE"]:
                logger.warning("[SESSION] start() ignored in state %s", self.state)
                return False

            if self._pending_language:
                self.language, self._pending_language = self._pending_language, None

            self._clear()

            try:
                available = await call_maybe_async(self.capture.available)
            except Exception:
                logger.exception("[SESSION] capture availability check failed")
                available = False

            if not available:
                await self._fail(DeviceUnavailable("Capture device unavailable"))
                return False

            await self._set_state(SessionState["LISTENING"])

            try:
                text = await call_maybe_async(self.capture.listen, self.language)
            except Exception as e:
                error = e if isinstance(e, CaptureError) else CaptureError(str(e))
                await self._fail(error)
                return False
            finally:
                await self._deactivate_capture()

            return await self._transcript_ready(text)

    async def _transcript_ready(self, text) -> bool:
        """
        Final transcript for the current listening session, delivered by
        start() while it holds the lock. Only the first one is acted on.
        """
        if self.state != SessionState["LISTENING"]:
            logger.warning("[SESSION] transcript ignored in state %s", self.state)
            return False

        self.transcript = text
        await self._set_state(SessionState["STRUCTURING"])

        try:
            intent = await self.structurer.structure(text, self.language)
        except KrishiError as e:
            await self._fail(e)
            return False
        except Exception as e:
            logger.exception("[SESSION] unexpected structuring error")
            await self._fail(StructuringFailed(str(e), transcript=text))
            return False

        self.intent = intent
        await self._set_state(SessionState["AWAITING_CONFIRMATION"])
        await self._speak(intent.confirmation_message)
        return True

    async def confirm(self) -> bool:
        async with self._lock:
            if self.state != SessionState["AWAITING_CONFIRMATION"] or self.intent is None:
                logger.warning("[SESSION] confirm() ignored in state %s", self.state)
                return False

            if self.intent.intent_kind not in COMMITTABLE_KINDS:
                await self._fail(UnsupportedIntent(f"Cannot commit intent of kind {self.intent.intent_kind}"))
                return False

            await self._set_state(SessionState["COMMITTING"])
            try:
                self.last_record = await self._commit(self.intent)
            except Exception as e:
                logger.exception("[SESSION] commit failed")
                await self._fail(PersistFailed(str(e)))
                return False

            await self._set_state(SessionState["SUCCEEDED"])
            await self._speak(phrase("saved", self.language))
            self._reset_task = set_timeout(self.reset_delay_s, self._reset_after_success)
            return True

    async def reject(self) -> bool:
        async with self._lock:
            if self.state != SessionState["AWAITING_CONFIRMATION"]:
                logger.warning("[SESSION] reject() ignored in state %s", self.state)
                return False

            self._clear()
            await self._set_state(SessionState["IDLE"])
            return True

    async def retry(self) -> bool:
        async with self._lock:
            if self.state != SessionState["FAILED"]:
                logger.warning("[SESSION] retry() ignored in state %s", self.state)
                return False

            self._clear()
            await self._set_state(SessionState["IDLE"])
            return True

    async def close(self):
        if self._reset_task and not self._reset_task.done():
            self._reset_task.cancel()

    # ----------------------------
    # Internals
    # ----------------------------

    async def _commit(self, intent: ParsedIntent):
        data = intent.data
        if intent.intent_kind == IntentKind["ACTIVITY"]:
            return await self.ledger.add_activity(
                activity_type=data.activity_type or "General",
                crop=data.crop or "Unknown",
                area_acres=data.area_acres,
            )
        return await self.ledger.add_transaction(
            type=data.transaction_type,
            category=data.category or "General",
            amount=data.amount or 0,
        )

    async def _reset_after_success(self):
        async with self._lock:
            if self.state != SessionState["SUCCEEDED"]:
                return
            self._clear()
            await self._set_state(SessionState["IDLE"])

    def _clear(self):
        self.transcript = None
        self.intent = None
        self.error_kind = None
        self.error_message = None

    async def _fail(self, error: KrishiError):
        self.error_kind = error.kind
        self.error_message = phrase(error.kind, self.language)
        logger.warning("[SESSION] FAILED | kind=%s | detail=%s", error.kind, error.message)
        await self._set_state(SessionState["FAILED"])

    async def _set_state(self, new_state):
        if new_state not in SessionState.values():
            raise ValueError("Invalid session state")

        old_state, self.state = self.state, new_state
        logger.info(
            "[SESSION] STATE_UPDATE | %s -> %s | lang=%s | intent=%s | error=%s",
            old_state,
            new_state,
            self.language,
            self.intent.intent_kind if self.intent else None,
            self.error_kind,
        )

        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                await call_listener(listener, snapshot)
            except Exception:
                logger.exception("[SESSION] listener failed")

    async def _speak(self, text):
        try:
            await call_maybe_async(self.speaker.speak, text, self.language)
        except Exception:
            logger.exception("[SESSION] speech synthesis failed")

    async def _deactivate_capture(self):
        try:
            await call_maybe_async(self.capture.deactivate)
        except Exception:
            logger.exception("[SESSION] capture deactivate failed")
