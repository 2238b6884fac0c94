from __future__ import annotations

import logging
import math
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


logger = logging.getLogger(__name__)


class CallEventValidationError(ValueError):
    """Raised when an inbound webhook payload violates the call event contract."""


def _is_number(value: Any) -> bool:
    """True for JSON numbers that fit a finite float; bools are not numbers."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def _text_or_none(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return None
    return str(value)


def _number_or_none(value: Any) -> float | None:
    return value if _is_number(value) else None


OptionalText = Annotated[str | None, BeforeValidator(_text_or_none)]
OptionalNumber = Annotated[float | None, BeforeValidator(_number_or_none)]


class TranscriptTurn(BaseModel):
    """One utterance of the call; auxiliary platform fields stay in the extras."""

    model_config = ConfigDict(extra="allow")

    role: OptionalText = None
    message: OptionalText = None
    time_in_call_secs: OptionalNumber = None


class CallMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    start_time_unix_secs: OptionalNumber = None
    call_duration_secs: OptionalNumber = None
    cost: OptionalNumber = None
    termination_reason: OptionalText = None
    authorization_method: OptionalText = None


class CallAnalysis(BaseModel):
    model_config = ConfigDict(extra="allow")

    call_successful: OptionalText = None
    transcript_summary: OptionalText = None


class CallEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    agent_id: OptionalText = None
    conversation_id: str | None = None
    status: OptionalText = None
    user_id: str | None = None
    transcript: list[TranscriptTurn] | None = None
    metadata: CallMetadata | None = None
    analysis: CallAnalysis | None = None

    @field_validator("metadata", "analysis", mode="before")
    @classmethod
    def _object_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, BaseModel)) else None


class CallEvent(BaseModel):
    """Webhook envelope describing one completed phone conversation."""

    model_config = ConfigDict(extra="allow")

    type: str
    event_timestamp: float
    data: CallEventData = Field(default_factory=CallEventData)

    @property
    def subject_id(self) -> str | None:
        return self.data.user_id

    @property
    def conversation_id(self) -> str | None:
        return self.data.conversation_id


def parse_call_event(body: Any) -> CallEvent:
    """Validate a decoded webhook body and build a typed :class:`CallEvent`.

    The checks run in a fixed order and the first failure wins, so callers
    always see the same message for the same payload.
    """
    if not isinstance(body, dict):
        raise CallEventValidationError("Invalid JSON body")

    event_type = body.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise CallEventValidationError("Type field is required and must be a string")

    if not _is_number(body.get("event_timestamp")):
        raise CallEventValidationError("Event timestamp field is required and must be a number")

    data = body.get("data")
    if not isinstance(data, dict):
        raise CallEventValidationError("Data field is required and must be an object")

    user_id = data.get("user_id")
    if user_id is not None and not isinstance(user_id, str):
        raise CallEventValidationError("User ID field must be a string, null, or undefined")

    conversation_id = data.get("conversation_id")
    if conversation_id is not None and not isinstance(conversation_id, str):
        raise CallEventValidationError("Conversation ID field must be a string if provided")

    transcript = data.get("transcript")
    if transcript is not None and not isinstance(transcript, list):
        raise CallEventValidationError("Transcript field must be an array if provided")

    analysis = data.get("analysis")
    if analysis is not None and not isinstance(analysis, dict):
        raise CallEventValidationError("Analysis field must be an object if provided")

    turns: list[dict[str, Any]] | None = None
    if transcript is not None:
        turns = []
        for index, entry in enumerate(transcript):
            if not isinstance(entry, dict):
                logger.warning("Skipping non-object transcript entry at index %d", index)
                continue
            turns.append(entry)

    event_data = CallEventData.model_validate(
        {
            **data,
            "user_id": user_id or None,
            "conversation_id": conversation_id or None,
            "transcript": turns,
        }
    )
    return CallEvent.model_validate({**body, "data": event_data})
