from __future__ import annotations

from typing import Any

import pytest

from carecall.schemas.call_events import (
    CallEvent,
    CallEventValidationError,
    parse_call_event,
)


def _payload(**data_overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "agent_id": "agent-7",
        "conversation_id": "conv-123",
        "status": "done",
        "user_id": "user-1",
        "transcript": [
            {"role": "agent", "message": "How was your day?", "time_in_call_secs": 0},
            {"role": "user", "message": "Pretty good.", "time_in_call_secs": 4.5},
        ],
        "metadata": {"call_duration_secs": 61, "cost": 12},
        "analysis": {"call_successful": "success", "transcript_summary": "Check-in went well."},
    }
    data.update(data_overrides)
    return {"type": "post_call_transcription", "event_timestamp": 1739537297, "data": data}


def test_parse_call_event_builds_typed_event() -> None:
    event = parse_call_event(_payload())

    assert isinstance(event, CallEvent)
    assert event.type == "post_call_transcription"
    assert event.event_timestamp == 1739537297
    assert event.subject_id == "user-1"
    assert event.conversation_id == "conv-123"
    assert [turn.role for turn in event.data.transcript or []] == ["agent", "user"]
    assert event.data.metadata is not None
    assert event.data.metadata.call_duration_secs == 61
    assert event.data.analysis is not None
    assert event.data.analysis.transcript_summary == "Check-in went well."


def test_parse_call_event_keeps_unknown_platform_fields() -> None:
    payload = _payload(conversation_initiation_client_data={"dynamic_variables": {"name": "Ann"}})
    payload["extra_envelope_field"] = True

    event = parse_call_event(payload)

    assert event.data.model_extra == {
        "conversation_initiation_client_data": {"dynamic_variables": {"name": "Ann"}}
    }
    assert event.model_extra == {"extra_envelope_field": True}


def test_parse_call_event_accepts_zero_timestamp_and_minimal_data() -> None:
    event = parse_call_event({"type": "post_call_transcription", "event_timestamp": 0, "data": {}})

    assert event.event_timestamp == 0
    assert event.subject_id is None
    assert event.conversation_id is None
    assert event.data.transcript is None


def test_parse_call_event_treats_empty_identifiers_as_absent() -> None:
    event = parse_call_event(_payload(user_id="", conversation_id=""))

    assert event.subject_id is None
    assert event.conversation_id is None


def test_parse_call_event_skips_non_object_transcript_entries() -> None:
    event = parse_call_event(
        _payload(transcript=["stray", {"role": "user", "message": "Hi"}, None])
    )

    assert event.data.transcript is not None
    assert len(event.data.transcript) == 1
    assert event.data.transcript[0].message == "Hi"


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ([], "Invalid JSON body"),
        ("text", "Invalid JSON body"),
        ({"event_timestamp": 1, "data": {}}, "Type field is required and must be a string"),
        ({"type": 5, "event_timestamp": 1, "data": {}}, "Type field is required and must be a string"),
        ({"type": "t", "data": {}}, "Event timestamp field is required and must be a number"),
        (
            {"type": "t", "event_timestamp": "1739537297", "data": {}},
            "Event timestamp field is required and must be a number",
        ),
        (
            {"type": "t", "event_timestamp": True, "data": {}},
            "Event timestamp field is required and must be a number",
        ),
        ({"type": "t", "event_timestamp": 1}, "Data field is required and must be an object"),
        (
            {"type": "t", "event_timestamp": 1, "data": []},
            "Data field is required and must be an object",
        ),
        (
            {"type": "t", "event_timestamp": 1, "data": {"user_id": 42}},
            "User ID field must be a string, null, or undefined",
        ),
        (
            {"type": "t", "event_timestamp": 1, "data": {"conversation_id": 7}},
            "Conversation ID field must be a string if provided",
        ),
        (
            {"type": "t", "event_timestamp": 1, "data": {"transcript": "agent: hi"}},
            "Transcript field must be an array if provided",
        ),
        (
            {"type": "t", "event_timestamp": 1, "data": {"analysis": ["x"]}},
            "Analysis field must be an object if provided",
        ),
    ],
)
def test_parse_call_event_rejects_malformed_payloads(body: Any, message: str) -> None:
    with pytest.raises(CallEventValidationError) as exc_info:
        parse_call_event(body)

    assert str(exc_info.value) == message


def test_parse_call_event_reports_first_failing_check() -> None:
    body = {"event_timestamp": "soon", "data": "none"}

    with pytest.raises(CallEventValidationError, match="Type field is required"):
        parse_call_event(body)


@pytest.mark.parametrize("timestamp", [10**400, -(10**400), float("inf"), float("nan")])
def test_parse_call_event_rejects_timestamps_outside_float_range(timestamp: Any) -> None:
    body = {"type": "post_call_transcription", "event_timestamp": timestamp, "data": {}}

    with pytest.raises(CallEventValidationError) as exc_info:
        parse_call_event(body)

    assert str(exc_info.value) == "Event timestamp field is required and must be a number"


def test_parse_call_event_drops_oversized_auxiliary_numbers() -> None:
    event = parse_call_event(
        _payload(
            transcript=[{"role": "user", "message": "Hi", "time_in_call_secs": 10**400}],
            metadata={"call_duration_secs": 10**400, "cost": 3},
        )
    )

    assert event.data.transcript is not None
    assert event.data.transcript[0].time_in_call_secs is None
    assert event.data.metadata is not None
    assert event.data.metadata.call_duration_secs is None
    assert event.data.metadata.cost == 3
