# askdata/runtime package
# The phase-gated step loop and everything it is built from.
#
# Core components:
#   - types: Phase, Step, ToolInvocation, SessionState and the artifact types
#   - phase_gate: active tool set and directive per phase
#   - phase_controller: forward-only phase transitions
#   - termination: complete / budget exhausted / continue
#   - artifacts: structural extraction of charts and terminal results
#   - stepper: ModelStepper interface + ScriptedStepper
#   - session: AgentSession, the composition root
#
# Usage:
#     from askdata.runtime import AgentSession, ScriptedStepper
#     session = AgentSession(ScriptedStepper(steps))
#     outcome = session.run_to_outcome(messages)

from .errors import (
    MalformedTerminalResultError,
    SessionCancelledError,
    SessionError,
    StepBudgetExceededError,
    ToolCatalogError,
    UnknownToolError,
)
from .events import EventRecorder, EventSink, SessionEvent
from .phase_controller import PhaseController
from .phase_gate import PhaseGate
from .session import AgentSession, SessionOutcome
from .stepper import ModelStepper, ScriptedStepper, StepRequest, load_transcript
from .termination import TerminationPolicy, TerminationStatus
from .types import (
    PHASE_ORDER,
    ClarificationArtifact,
    InvocationState,
    NoDataArtifact,
    Phase,
    ReportArtifact,
    SessionState,
    Step,
    ToolDescriptor,
    ToolInvocation,
    VisualizationArtifact,
)

__all__ = [
    "AgentSession",
    "ClarificationArtifact",
    "EventRecorder",
    "EventSink",
    "InvocationState",
    "MalformedTerminalResultError",
    "ModelStepper",
    "NoDataArtifact",
    "PHASE_ORDER",
    "Phase",
    "PhaseController",
    "PhaseGate",
    "ReportArtifact",
    "ScriptedStepper",
    "SessionCancelledError",
    "SessionError",
    "SessionEvent",
    "SessionOutcome",
    "SessionState",
    "Step",
    "StepBudgetExceededError",
    "StepRequest",
    "TerminationPolicy",
    "TerminationStatus",
    "ToolCatalogError",
    "ToolDescriptor",
    "ToolInvocation",
    "UnknownToolError",
    "VisualizationArtifact",
    "load_transcript",
]
