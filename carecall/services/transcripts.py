from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from carecall.schemas.call_events import TranscriptTurn


def normalize_transcript(turns: Any) -> str:
    """Flatten call turns into ``"<role>: <message>"`` lines in spoken order.

    Anything other than a list (including ``None``) yields an empty string;
    downstream analysis treats that as a call with nothing said.
    """
    if not isinstance(turns, list):
        return ""

    lines: list[str] = []
    for turn in turns:
        if isinstance(turn, TranscriptTurn):
            role, message = turn.role, turn.message
        elif isinstance(turn, Mapping):
            role, message = turn.get("role"), turn.get("message")
        else:
            continue
        lines.append(f"{_render(role)}: {_render(message)}")
    return "\n".join(lines)


def _render(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
