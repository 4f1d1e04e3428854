import logging
import os
import shutil
import subprocess
import tempfile
import time

from openai import OpenAI

from krishi.config import Config
from krishi.errors import CaptureError
from krishi.language import normalize_language

logger = logging.getLogger("speech")

_client = None


def _get_client():
    global _client
    if _client is None:
        _client = OpenAI(api_key=Config.openai_api_key)
    return _client


# ----------------------------
# Capture
# ----------------------------

def _convert_to_wav(input_path):
    fd, output_path = tempfile.mkstemp(suffix=".wav")
    os.close(fd)
    cmd = ["ffmpeg", "-y", "-i", input_path, "-ar", "16000", "-ac", "1", output_path]
    subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    return output_path


def _transcribe_audio(wav_path, language):
    with open(wav_path, "rb") as f:
        response = _get_client().audio.transcriptions.create(
            file=f,
            model="whisper-1",
            language=language.split("-")[0],
            response_format="verbose_json"
        )
    return response.text


class WhisperCapture:
    """
    Capture device backed by a recorded voice note.
    One activation transcribes the note once and returns the final text.
    """

    def __init__(self, audio_path):
        self.audio_path = audio_path

    def available(self):
        return bool(Config.openai_api_key) and shutil.which("ffmpeg") is not None

    def listen(self, language):
        if not os.path.exists(self.audio_path):
            raise CaptureError(f"Audio file not found: {self.audio_path}")

        wav_path = None
        start = time.perf_counter()
        try:
            wav_path = _convert_to_wav(self.audio_path)
            return _transcribe_audio(wav_path, normalize_language(language))
        except (OSError, subprocess.CalledProcessError) as e:
            raise CaptureError(f"Audio conversion failed: {e}") from e
        except Exception as e:
            raise CaptureError(f"Transcription failed: {e}") from e
        finally:
            ms = (time.perf_counter() - start) * 1000.0
            logger.info("[timing] step=whisper.transcribe ms=%.2f file=%s", ms, self.audio_path)
            if wav_path and os.path.exists(wav_path):
                os.remove(wav_path)

    def deactivate(self):
        return None


class TypedCapture:
    """Capture device that returns text typed on the console (or given up front)."""

    def __init__(self, text=None, prompt="> "):
        self.text = text
        self.prompt = prompt

    def available(self):
        return True

    def listen(self, language):
        if self.text is not None:
            text, self.text = self.text, None
            return text
        try:
            return input(self.prompt)
        except EOFError as e:
            raise CaptureError("No input") from e

    def deactivate(self):
        return None


# ----------------------------
# Synthesis
# ----------------------------

class OpenAISpeaker:
    """Writes each spoken sentence to an mp3 under Config.speech_output_dir."""

    def __init__(self, output_dir=None, voice="alloy"):
        self.output_dir = output_dir or Config.speech_output_dir
        self.voice = voice

    def speak(self, text, language):
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, f"{int(time.time() * 1000)}_{normalize_language(language)}.mp3")
        try:
            with _get_client().audio.speech.with_streaming_response.create(
                model="gpt-4o-mini-tts",
                voice=self.voice,
                input=text,
            ) as response:
                response.stream_to_file(path)
            logger.info("Spoke %r -> %s", text, path)
        except Exception:
            # fire-and-forget
            logger.exception("Speech synthesis failed")
        return path


class ConsoleSpeaker:
    def speak(self, text, language):
        print(f"🔊 [{language}] {text}")
