"""Replay a stored call-event JSON file through the phone call report pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from carecall.core.config import get_settings
from carecall.core.database import dispose_engine, get_session_factory
from carecall.integrations.llm import MoodClassificationClient
from carecall.schemas.call_events import CallEventValidationError, parse_call_event
from carecall.services.call_reports import (
    CallIngestionService,
    CallReportWriter,
    IngestionResult,
)
from carecall.services.identity import IdentityResolver
from carecall.services.mood_assessment import MoodAssessmentService
from carecall.services.profiles import PatientProfileService


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ingest a call-platform webhook payload saved to disk."
    )
    parser.add_argument("path", type=Path, help="Path to the call-event JSON file.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the full pipeline but roll back instead of committing the report.",
    )
    parser.add_argument(
        "--output",
        choices=["json", "pretty"],
        default="pretty",
        help="Output format for the stored report.",
    )
    return parser.parse_args(argv)


def load_event_payload(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def summarize_result(result: IngestionResult) -> dict[str, Any]:
    report = result.report
    return {
        "report_id": str(report.id),
        "user_id": report.user_id,
        "conversation_id": report.conversation_id,
        "created": result.created,
        "identity_source": result.identity.source if result.identity else None,
        "mood": result.judgment.mood,
        "mood_description": result.judgment.mood_description,
        "emotions": list(result.judgment.emotions),
    }


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        payload = load_event_payload(args.path)
    except (OSError, ValueError) as exc:
        print(f"Unable to read call event: {exc}", file=sys.stderr)
        return 2

    try:
        event = parse_call_event(payload)
    except CallEventValidationError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    settings = get_settings()
    classifier = MoodClassificationClient(settings)
    if not classifier.is_configured:
        print("No mood classification provider configured; the default judgment will be stored.", file=sys.stderr)

    try:
        session_factory = get_session_factory()
        async with session_factory() as session:
            service = CallIngestionService(
                IdentityResolver(PatientProfileService(session), strategy=settings.call_identity_strategy),
                MoodAssessmentService(classifier if classifier.is_configured else None),
                CallReportWriter(session),
            )
            result = await service.ingest(event)
            summary = summarize_result(result)

            if args.dry_run:
                await session.rollback()
            else:
                await session.commit()
    except SQLAlchemyError as exc:
        print(f"Failed to store call report: {exc}", file=sys.stderr)
        return 2
    finally:
        await dispose_engine()

    if args.output == "json":
        print(json.dumps(summary, ensure_ascii=False, indent=2))
    else:
        if args.dry_run:
            print("[dry-run] changes were rolled back.")
        for key, value in summary.items():
            print(f"{key}: {value}")

    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
