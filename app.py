#!/usr/bin/env python3
"""
Krishi voice assistant console.

  python app.py voice --text "sowed two acres of tomato today" --lang hi-IN
  python app.py voice --audio note.ogg --yes
  python app.py weather
  python app.py summary
"""

import argparse
import asyncio
import logging
import sys

from krishi.config import Config
from krishi.errors import TelemetryUnavailable
from krishi.intent import IntentStructurer
from krishi.language import phrase
from krishi.ledger import FarmLedger
from krishi.location import IpGeolocator
from krishi.session import CommandSession, SessionState
from krishi.speech import ConsoleSpeaker, OpenAISpeaker, TypedCapture, WhisperCapture
from krishi.storage import create_storage
from krishi.telemetry import TelemetryResolver
from krishi.weather import WeatherApiProvider

logger = logging.getLogger("app")


def _setup_logging(verbose):
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    ))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.INFO if verbose else logging.WARNING)


def _ask(question):
    try:
        return input(question).strip().lower() in ("y", "yes", "haan", "ho")
    except EOFError:
        return False


async def run_voice(args, storage):
    if args.audio:
        capture = WhisperCapture(args.audio)
    else:
        capture = TypedCapture(text=args.text)
    speaker = OpenAISpeaker() if args.speak and Config.openai_api_key else ConsoleSpeaker()

    session = CommandSession(
        capture=capture,
        speaker=speaker,
        structurer=IntentStructurer(),
        ledger=FarmLedger(storage),
        language=args.lang,
    )
    session.subscribe(lambda snap: logger.info("state=%s", snap.state))

    try:
        await session.start()

        if session.state == SessionState["AWAITING_CONFIRMATION"]:
            print(f'"{session.transcript}"')
            for name, value in session.display_fields().items():
                print(f"  {name}: {value}")
            if args.yes or _ask("Save this? [y/N] "):
                await session.confirm()
            else:
                await session.reject()
                print("Discarded.")

        if session.state == SessionState["SUCCEEDED"]:
            print(f"Saved: {session.last_record}")
            return 0

        if session.state == SessionState["FAILED"]:
            print(f"{session.error_kind}: {session.error_message}", file=sys.stderr)
            return 1
        return 0
    finally:
        await session.close()


async def run_weather(args, storage):
    resolver = TelemetryResolver(storage, IpGeolocator(), WeatherApiProvider())
    try:
        reading = await resolver.get_weather_reading()
    except TelemetryUnavailable as e:
        print(phrase(e.kind, args.lang), file=sys.stderr)
        return 1

    print(f"{reading.location_name}: {reading.current_temp_c}°C, {reading.current_condition_text}, "
          f"humidity {reading.humidity_pct}%, rain {reading.precip_mm} mm")
    for alert in reading.alerts:
        print(f"⚠️  {alert.headline_text}")
    for day in reading.forecast:
        print(f"  {day.iso_date}: {day.mean_temp_c}°C {day.condition_text}, "
              f"rain {day.rain_chance_pct}%, humidity {day.humidity_pct}%")
    print("Crops:")
    for rec in reading.recommendations:
        print(f"  {rec.crop_name:<10} {rec.suitability:<6} {rec.reason_text}")
    return 0


async def run_summary(args, storage):
    summary = await FarmLedger(storage).get_transaction_summary()
    print(f"Income:  ₹{summary.total_income}")
    print(f"Expense: ₹{summary.total_expense}")
    print(f"Net:     ₹{summary.net_profit}")
    return 0


async def _main(args):
    storage = create_storage()
    try:
        if args.command == "voice":
            return await run_voice(args, storage)
        if args.command == "weather":
            return await run_weather(args, storage)
        return await run_summary(args, storage)
    finally:
        await storage.close()


def main(argv=None):
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--lang", default=Config.language, help="en-IN, hi-IN or mr-IN")

    parser = argparse.ArgumentParser(description="Krishi voice assistant")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    voice = sub.add_parser("voice", parents=[common], help="Record one farm action")
    source = voice.add_mutually_exclusive_group()
    source.add_argument("--audio", help="Voice note to transcribe (ogg/wav)")
    source.add_argument("--text", help="Transcript to use instead of audio")
    voice.add_argument("--yes", action="store_true", help="Confirm without asking")
    voice.add_argument("--speak", action="store_true", help="Synthesize speech with OpenAI")

    sub.add_parser("weather", parents=[common], help="Current weather and crop suitability")
    sub.add_parser("summary", help="Income / expense summary")
    sub.add_parser("config", help="Print configuration")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "config":
        Config.check_env_variables()
        Config.print_config()
        return 0

    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
