"""Core types for the phase-gated orchestrator.

This module holds the data model shared by every runtime component:

- Phase / InvocationState enums
- ToolDescriptor: one catalog entry
- ToolInvocation / Step: what the model-step collaborator produces
- SessionState: the per-session mutable record
- Artifact types: VisualizationArtifact plus the three terminal outcomes

Recorded transcripts (YAML/JSON) are parsed with ``step_from_dict`` and
``invocation_from_dict``. Artifacts serialize with the camelCase keys the
presentation layer consumes.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union


# =============================================================================
# Enums
# =============================================================================


class Phase(str, Enum):
    """Pipeline phases in forward order.

    The declaration order is the progress order; there are no backward
    transitions.
    """

    PLANNING = "planning"
    BUILDING = "building"
    EXECUTION = "execution"
    REPORTING = "reporting"

    @property
    def order(self) -> int:
        return PHASE_ORDER.index(self)

    def next(self) -> Optional["Phase"]:
        """Return the phase after this one, or None for Reporting."""
        idx = self.order
        if idx + 1 < len(PHASE_ORDER):
            return PHASE_ORDER[idx + 1]
        return None

    @classmethod
    def parse(cls, value: Union[str, "Phase"]) -> "Phase":
        if isinstance(value, Phase):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown phase: {value!r}") from None


PHASE_ORDER: Tuple[Phase, ...] = (
    Phase.PLANNING,
    Phase.BUILDING,
    Phase.EXECUTION,
    Phase.REPORTING,
)


class InvocationState(str, Enum):
    """Lifecycle state of a single tool invocation inside a step."""

    PENDING = "pending"
    STREAMING = "input-streaming"  # arguments still arriving
    INPUT_AVAILABLE = "input-available"  # arguments final, no output yet
    OUTPUT_AVAILABLE = "output-available"
    ERRORED = "output-error"

    @classmethod
    def parse(cls, value: Union[str, "InvocationState"]) -> "InvocationState":
        if isinstance(value, InvocationState):
            return value
        key = str(value).strip().lower()
        key = _STATE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown invocation state: {value!r}") from None


_STATE_ALIASES: Dict[str, str] = {
    "streaming": "input-streaming",
    "available": "output-available",
    "errored": "output-error",
    "error": "output-error",
}


class ChartType(str, Enum):
    """Chart kinds a visualization artifact may carry."""

    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    SCATTER = "scatter"
    AREA = "area"
    COMPOSED = "composed"


CHART_TYPES: Tuple[str, ...] = tuple(c.value for c in ChartType)


# =============================================================================
# Catalog entry
# =============================================================================


@dataclass(frozen=True)
class ToolDescriptor:
    """A single tool known to the orchestrator.

    Attributes:
        name: Tool name as declared to the model.
        phase: The phase whose active set contains this tool.
        is_terminal: A successful result ends the session.
        advances_phase: A successful result moves the session to the phase
            after ``phase``.
        description: Free text for catalog listings.
    """

    name: str
    phase: Phase
    is_terminal: bool = False
    advances_phase: bool = False
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "phase": self.phase.value,
            "is_terminal": self.is_terminal,
            "advances_phase": self.advances_phase,
            "description": self.description,
        }


# =============================================================================
# Steps and invocations
# =============================================================================


@dataclass(frozen=True)
class ToolInvocation:
    """One tool call observed in a step.

    ``output`` is only meaningful once ``state`` is OUTPUT_AVAILABLE; while
    the call is STREAMING or INPUT_AVAILABLE the ``input`` may already carry
    partial text the presentation layer can show.
    """

    tool_name: str
    input: Dict[str, Any] = field(default_factory=dict)
    state: InvocationState = InvocationState.PENDING
    output: Any = None
    error_text: Optional[str] = None
    tool_call_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == InvocationState.OUTPUT_AVAILABLE

    @property
    def errored(self) -> bool:
        return self.state == InvocationState.ERRORED

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "tool_name": self.tool_name,
            "input": self.input,
            "state": self.state.value,
        }
        if self.output is not None:
            result["output"] = self.output
        if self.error_text:
            result["error_text"] = self.error_text
        if self.tool_call_id:
            result["tool_call_id"] = self.tool_call_id
        return result


@dataclass(frozen=True)
class Step:
    """One round of model invocation.

    Attributes:
        step_id: Identifier unique within the session.
        phase: Phase active when the step was requested.
        invocations: Tool calls in the order the model emitted them.
        text: Any plain assistant text produced alongside the calls.
    """

    step_id: str
    phase: Phase = Phase.PLANNING
    invocations: Tuple[ToolInvocation, ...] = ()
    text: str = ""

    def tool_names(self) -> List[str]:
        return [inv.tool_name for inv in self.invocations]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "phase": self.phase.value,
            "invocations": [inv.to_dict() for inv in self.invocations],
            "text": self.text,
        }


def invocation_from_dict(data: Mapping[str, Any]) -> ToolInvocation:
    """Parse a recorded tool invocation.

    Accepts both snake_case and the camelCase keys emitted by streaming
    chat clients (``toolName``, ``toolCallId``, ``errorText``).
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"Tool invocation must be an object, got {type(data).__name__}")
    name = data.get("tool_name") or data.get("toolName") or data.get("name")
    if not name or not isinstance(name, str):
        raise ValueError(f"Tool invocation is missing a tool name: {dict(data)!r}")

    raw_input = data.get("input")
    if raw_input is None:
        raw_input = data.get("args", {})
    if not isinstance(raw_input, dict):
        raise ValueError(f"Tool invocation input for {name} must be an object")

    if "state" in data:
        state = InvocationState.parse(data["state"])
    elif "output" in data:
        state = InvocationState.OUTPUT_AVAILABLE
    else:
        state = InvocationState.INPUT_AVAILABLE

    return ToolInvocation(
        tool_name=name,
        input=dict(raw_input),
        state=state,
        output=data.get("output"),
        error_text=data.get("error_text") or data.get("errorText"),
        tool_call_id=data.get("tool_call_id") or data.get("toolCallId"),
    )


def step_from_dict(
    data: Mapping[str, Any],
    default_step_id: Optional[str] = None,
    default_phase: Phase = Phase.PLANNING,
) -> Step:
    """Parse a recorded step.

    Args:
        data: Step mapping with ``invocations`` (or ``tool_calls``).
        default_step_id: Used when the mapping carries no ``step_id``.
        default_phase: Used when the mapping carries no ``phase``.

    Returns:
        The parsed Step.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"Step must be an object, got {type(data).__name__}")
    step_id = data.get("step_id") or data.get("id") or default_step_id
    if not step_id:
        raise ValueError("Step is missing a step_id")

    raw_invocations = data.get("invocations")
    if raw_invocations is None:
        raw_invocations = data.get("tool_calls", [])
    if not isinstance(raw_invocations, list):
        raise ValueError(f"Step {step_id}: invocations must be a list")

    phase = Phase.parse(data["phase"]) if data.get("phase") else default_phase

    return Step(
        step_id=str(step_id),
        phase=phase,
        invocations=tuple(invocation_from_dict(item) for item in raw_invocations),
        text=str(data.get("text") or ""),
    )


def format_step_id(step_number: int) -> str:
    """Format the id the session assigns to its n-th step."""
    return f"step-{step_number:03d}"


# =============================================================================
# Session state
# =============================================================================


def generate_session_id() -> str:
    """Generate a unique session ID: ``sess-YYYYMMDD-HHMMSS-xxxxxx``."""
    now = datetime.now(timezone.utc)
    timestamp = now.strftime("%Y%m%d-%H%M%S")
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(6))
    return f"sess-{timestamp}-{suffix}"


@dataclass
class SessionState:
    """Mutable per-session record.

    Only AgentSession (step history, counters, processed keys) and
    PhaseController (current_phase) write to it.
    """

    session_id: str = field(default_factory=generate_session_id)
    current_phase: Phase = Phase.PLANNING
    step_count: int = 0
    step_history: List[Step] = field(default_factory=list)
    processed_artifact_keys: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "current_phase": self.current_phase.value,
            "step_count": self.step_count,
            "step_history": [s.to_dict() for s in self.step_history],
            "processed_artifact_keys": sorted(self.processed_artifact_keys),
        }


# =============================================================================
# Artifacts
# =============================================================================


@dataclass(frozen=True)
class VisualizationArtifact:
    """A chart config extracted from a tool result."""

    artifact_id: str
    kind: ChartType
    title: str
    data_rows: Tuple[Dict[str, Any], ...]
    config: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None
    source_key: str = ""

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.artifact_id,
            "type": self.kind.value,
            "title": self.title,
            "dataRows": [dict(row) for row in self.data_rows],
            "config": dict(self.config),
            "sourceKey": self.source_key,
        }
        if self.description is not None:
            result["description"] = self.description
        return result


@dataclass(frozen=True)
class ReportArtifact:
    """The final answer: SQL, narrative, confidence and result payloads."""

    sql: str
    narrative: str
    confidence: float
    csv_payload: str = ""
    preview_rows: Tuple[Dict[str, Any], ...] = ()
    chart_spec: Optional[Dict[str, Any]] = None

    kind = "report"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "sql": self.sql,
            "narrative": self.narrative,
            "confidence": self.confidence,
            "csvPayload": self.csv_payload,
            "previewRows": [dict(row) for row in self.preview_rows],
            "chartSpec": self.chart_spec,
        }


@dataclass(frozen=True)
class NoDataArtifact:
    """Terminal outcome when the question cannot be answered from the data."""

    message: str

    kind = "no_data"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


@dataclass(frozen=True)
class ClarificationArtifact:
    """Terminal outcome asking the user to clarify intent."""

    question: str

    kind = "clarification"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "question": self.question}


TerminalArtifact = Union[ReportArtifact, NoDataArtifact, ClarificationArtifact]


@dataclass(frozen=True)
class TerminalCandidate:
    """A terminal artifact together with where it came from."""

    artifact: TerminalArtifact
    tool_name: str
    source_key: str


@dataclass
class ExtractionResult:
    """Artifacts pulled out of one step snapshot.

    ``processed_keys`` lists every invocation key that was eligible for
    extraction, including those that produced nothing; the caller records
    them so the same result is never scanned twice.
    """

    visualizations: List[VisualizationArtifact] = field(default_factory=list)
    terminals: List[TerminalCandidate] = field(default_factory=list)
    processed_keys: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.visualizations and not self.terminals
