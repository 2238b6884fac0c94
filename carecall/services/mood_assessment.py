from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from carecall.schemas.profile import PROFILE_FIELDS


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MoodJudgment:
    """Structured mood assessment of one call."""

    mood: int
    mood_description: str
    emotions: tuple[str, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        return {
            "mood": self.mood,
            "mood_description": self.mood_description,
            "emotions": list(self.emotions),
        }


DEFAULT_MOOD_JUDGMENT = MoodJudgment(
    mood=3,
    mood_description="Unable to analyze mood",
    emotions=(),
)

MOOD_MIN = 1
MOOD_MAX = 5

MOOD_ANALYSIS_SCHEMA_NAME = "mood_analysis"
MOOD_ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "mood": {
            "type": "integer",
            "minimum": MOOD_MIN,
            "maximum": MOOD_MAX,
            "description": "Mood rating from 1 (very negative) to 5 (very positive)",
        },
        "mood_description": {
            "type": "string",
            "description": "Detailed description of the emotional state",
        },
        "emotions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "List of specific emotions detected",
        },
    },
    "required": ["mood", "mood_description", "emotions"],
    "additionalProperties": False,
}

MOOD_SYSTEM_PROMPT = (
    "You are a mental health AI assistant. Analyze conversations and provide "
    "structured mood assessments."
)

NO_PATIENT_CONTEXT = (
    "No patient information available - analyzing conversation without patient context"
)
NOT_SPECIFIED = "Not specified"


class MoodClassifier(Protocol):
    """Schema-constrained completion capability used for mood scoring.

    Implementations return the raw response text (``None`` when the provider
    answered with no content) and raise on transport or provider errors.
    """

    async def classify(
        self,
        prompt: str,
        *,
        system_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> str | None:
        ...


def render_patient_context(profile: Any | None) -> str:
    if profile is None:
        return NO_PATIENT_CONTEXT

    lines = ["Patient Information:"]
    for name, label in PROFILE_FIELDS:
        value = getattr(profile, name, None)
        if isinstance(value, str):
            value = value.strip()
        lines.append(f"- {label}: {value or NOT_SPECIFIED}")
    return "\n".join(lines)


def build_mood_prompt(profile: Any | None, transcript: str) -> str:
    """Compose the user prompt sent to the classifier."""
    return "\n".join(
        [
            "You are a mental health AI assistant analyzing a phone call transcript "
            "to assess the patient's emotional state and mood.",
            "",
            render_patient_context(profile),
            "",
            "Phone Call Transcript:",
            transcript,
            "",
            "Please analyze this conversation and provide:",
            "1. A mood rating from 1-5 (1 = very negative, 5 = very positive)",
            "2. A detailed mood description explaining the emotional state",
            "3. A list of specific emotions detected (e.g., anxiety, sadness, hope, frustration, etc.)",
            "",
            "Focus on the emotional indicators in the conversation, the patient's tone, "
            "and any expressed feelings or concerns.",
        ]
    )


def parse_mood_judgment(content: str | None) -> MoodJudgment:
    """Turn classifier output into a judgment, repairing each field independently."""
    if not content or not content.strip():
        logger.warning("Mood classifier returned no content; using default judgment.")
        return DEFAULT_MOOD_JUDGMENT

    try:
        parsed = json.loads(_strip_json_fences(content.strip()))
    except json.JSONDecodeError:
        logger.warning("Mood classifier response is not valid JSON; using default judgment.")
        return DEFAULT_MOOD_JUDGMENT

    if not isinstance(parsed, dict):
        logger.warning("Mood classifier response is not a JSON object; using default judgment.")
        return DEFAULT_MOOD_JUDGMENT

    return MoodJudgment(
        mood=_coerce_mood(parsed.get("mood")),
        mood_description=_coerce_description(parsed.get("mood_description")),
        emotions=_coerce_emotions(parsed.get("emotions")),
    )


def _coerce_mood(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_MOOD_JUDGMENT.mood
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and MOOD_MIN <= value <= MOOD_MAX:
        return value
    logger.debug("Discarding out-of-contract mood value %r", value)
    return DEFAULT_MOOD_JUDGMENT.mood


def _coerce_description(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_MOOD_JUDGMENT.mood_description


def _coerce_emotions(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return DEFAULT_MOOD_JUDGMENT.emotions
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def _strip_json_fences(value: str) -> str:
    if value.startswith("```"):
        value = value.strip()
        if value.lower().startswith("```json"):
            value = value[7:]
        elif value.startswith("```"):
            value = value[3:]
        if value.endswith("```"):
            value = value[:-3]
    return value.strip()


class MoodAssessmentService:
    """Score a call transcript against the patient's context.

    Exactly one classifier call is made per assessment. Any failure (no
    classifier configured, provider error, timeout, unusable output) yields
    :data:`DEFAULT_MOOD_JUDGMENT` instead of an error, so a model outage never
    blocks report creation.
    """

    def __init__(self, classifier: MoodClassifier | None):
        self._classifier = classifier

    async def assess(self, profile: Any | None, transcript: str) -> MoodJudgment:
        if self._classifier is None:
            logger.warning("No mood classifier configured; using default judgment.")
            return DEFAULT_MOOD_JUDGMENT

        prompt = build_mood_prompt(profile, transcript)
        try:
            content = await self._classifier.classify(
                prompt,
                system_prompt=MOOD_SYSTEM_PROMPT,
                schema_name=MOOD_ANALYSIS_SCHEMA_NAME,
                schema=MOOD_ANALYSIS_SCHEMA,
            )
        except Exception as exc:
            logger.warning("Mood classification failed; using default judgment.", exc_info=exc)
            return DEFAULT_MOOD_JUDGMENT

        return parse_mood_judgment(content)
