"""Session events pushed to the presentation layer.

A SessionEvent is an observable occurrence during a session: lifecycle,
phase changes, artifacts as soon as they are extracted, and in-progress
narrative or question text while a terminal tool's arguments stream in.

Standard kinds:
    session_started, step_started, progress, visualization, tool_error,
    phase_changed, step_completed, session_completed, session_failed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .types import InvocationState, ToolInvocation

# Argument fields that carry user-facing text while a call is still streaming
PROGRESS_FIELDS = ("narrative", "question")


@dataclass
class SessionEvent:
    """A single event in a session's timeline.

    Attributes:
        session_id: The session this event belongs to.
        kind: Event type (see module docstring).
        seq: Monotonic sequence number within the session.
        ts: Timestamp of the event.
        step_id: Step the event refers to, if any.
        payload: Event-specific data.
    """

    session_id: str
    kind: str
    seq: int
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    step_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "kind": self.kind,
            "seq": self.seq,
            "ts": self.ts.isoformat(),
            "step_id": self.step_id,
            "payload": self.payload,
        }


EventSink = Callable[[SessionEvent], None]


def progress_text(invocation: ToolInvocation) -> Optional[str]:
    """Partially streamed narrative/question text for incremental display.

    Only calls whose arguments are still in flight or just finalized are
    considered; once output is available the artifact takes over.
    """
    if invocation.state not in (InvocationState.STREAMING, InvocationState.INPUT_AVAILABLE):
        return None
    for name in PROGRESS_FIELDS:
        value = invocation.input.get(name)
        if isinstance(value, str) and value:
            return value
    return None


class EventRecorder:
    """EventSink that keeps every event in memory.

    Used by the API and CLI to return the event log with the outcome.
    """

    def __init__(self) -> None:
        self.events: List[SessionEvent] = []

    def __call__(self, event: SessionEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [e.kind for e in self.events]

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.events]
