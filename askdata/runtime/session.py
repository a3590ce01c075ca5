"""
session.py - The step loop that drives one question to a terminal outcome.

AgentSession is the composition root. Each iteration it:

1. Asks the PhaseGate for the current phase's active tools and directive,
   appending a note about earlier tool failures when there are any.
2. Streams one step from the model stepper. Every snapshot is validated
   against the catalog, scanned for in-progress narrative text and passed
   to the artifact extractor; cancellation is checked between snapshots.
3. Appends the final snapshot to the history and bumps the step count.
4. Lets the PhaseController apply the transition rule.
5. Asks the TerminationPolicy whether to return, fail or continue.

The next step is never requested before the previous one has been reduced
into SessionState.

Usage:
    session = AgentSession(ScriptedStepper(steps), on_event=print)
    artifact = session.run([{"role": "user", "content": "Top customers?"}])
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from askdata.config.runtime_config import DirectiveContext, get_directive_context, get_max_steps

if TYPE_CHECKING:
    from askdata.config.tool_catalog import ToolCatalog

from .artifacts import artifact_key, extract
from .errors import (
    MalformedTerminalResultError,
    SessionCancelledError,
    SessionError,
    StepBudgetExceededError,
    UnknownToolError,
)
from .events import EventSink, SessionEvent, progress_text
from .phase_controller import PhaseController
from .phase_gate import PhaseGate, describe_tool_errors
from .stepper import ModelStepper, StepRequest
from .termination import TerminationPolicy, TerminationStatus
from .types import (
    SessionState,
    Step,
    TerminalArtifact,
    TerminalCandidate,
    VisualizationArtifact,
    format_step_id,
    generate_session_id,
)

logger = logging.getLogger(__name__)

FAILED_MESSAGE = "Sorry, I could not complete this request."


@dataclass
class SessionOutcome:
    """What the presentation layer shows when a session ends.

    Attributes:
        kind: One of "report", "no_data", "clarification" or "failed".
        artifact: The terminal artifact; None for failed outcomes.
        message: User-facing failure message.
        error_code: Machine-readable code of the fatal error.
        detail: Diagnostic text for logs, never shown to the user.
    """

    kind: str
    artifact: Optional[TerminalArtifact] = None
    message: Optional[str] = None
    error_code: Optional[str] = None
    detail: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.kind == "failed"

    @classmethod
    def from_error(cls, error: SessionError) -> "SessionOutcome":
        return cls(
            kind="failed",
            message=FAILED_MESSAGE,
            error_code=error.error_code,
            detail=str(error),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"kind": self.kind}
        if self.artifact is not None:
            result["artifact"] = self.artifact.to_dict()
        if self.failed:
            result["message"] = self.message
            result["error_code"] = self.error_code
        return result


class AgentSession:
    """Runs one question through Planning, Building, Execution and Reporting.

    A session is single-use: ``run`` may be called once. ``cancel`` may be
    called from any thread.
    """

    def __init__(
        self,
        stepper: ModelStepper,
        catalog: Optional[ToolCatalog] = None,
        max_steps: Optional[int] = None,
        directive_context: Optional[DirectiveContext] = None,
        on_event: Optional[EventSink] = None,
        session_id: Optional[str] = None,
    ):
        if catalog is None:
            from askdata.config.tool_catalog import get_default_catalog

            catalog = get_default_catalog()

        self._stepper = stepper
        self._catalog = catalog
        self._max_steps = max_steps if max_steps is not None else get_max_steps()
        self._gate = PhaseGate(self._catalog, directive_context or get_directive_context())
        self._termination = TerminationPolicy(self._catalog, self._max_steps)

        self.state = SessionState(session_id=session_id or generate_session_id())
        self._controller = PhaseController(self._catalog, self.state)

        self._on_event = on_event
        self._seq = 0
        self._cancel_requested = threading.Event()
        self._started = False

        self._visualizations: List[VisualizationArtifact] = []
        self._terminal_candidates: List[TerminalCandidate] = []
        self._progress_seen: Dict[str, str] = {}
        self._errors_seen: Set[str] = set()
        self._inactive_warned: Set[Tuple[str, str]] = set()

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def session_id(self) -> str:
        return self.state.session_id

    @property
    def max_steps(self) -> int:
        return self._max_steps

    @property
    def visualizations(self) -> List[VisualizationArtifact]:
        """Charts extracted so far, in extraction order."""
        return list(self._visualizations)

    def cancel(self) -> None:
        """Request cancellation; honoured between snapshots and between steps."""
        self._cancel_requested.set()
        logger.info("Cancel requested for session %s", self.state.session_id)

    def run(self, initial_messages: Optional[Iterable[Mapping[str, Any]]] = None) -> TerminalArtifact:
        """Drive the loop until a terminal artifact is produced.

        Args:
            initial_messages: Conversation so far, passed to every step.

        Returns:
            The single terminal artifact of the session.

        Raises:
            UnknownToolError: A step named a tool outside the catalog.
            StepBudgetExceededError: The step ceiling was reached.
            SessionCancelledError: ``cancel`` was called.
            MalformedTerminalResultError: A terminal tool succeeded with an
                output of no terminal shape.
        """
        if self._started:
            raise RuntimeError(f"Session {self.state.session_id} has already run")
        self._started = True

        messages = tuple(dict(m) for m in (initial_messages or ()))
        logger.info(
            "Session %s started (stepper=%s, max_steps=%d)",
            self.state.session_id,
            self._stepper.stepper_id,
            self._max_steps,
        )
        self._emit(
            "session_started",
            phase=self.state.current_phase.value,
            max_steps=self._max_steps,
            stepper=self._stepper.stepper_id,
        )

        try:
            artifact = self._run_loop(messages)
        except SessionError as exc:
            logger.warning("Session %s failed: %s", self.state.session_id, exc)
            self._emit(
                "session_failed",
                error_code=exc.error_code,
                message=str(exc),
                step_count=self.state.step_count,
            )
            raise

        logger.info(
            "Session %s completed with %s after %d steps",
            self.state.session_id,
            artifact.kind,
            self.state.step_count,
        )
        self._emit(
            "session_completed",
            outcome=artifact.kind,
            artifact=artifact.to_dict(),
            step_count=self.state.step_count,
        )
        return artifact

    def run_to_outcome(
        self, initial_messages: Optional[Iterable[Mapping[str, Any]]] = None
    ) -> SessionOutcome:
        """Like ``run`` but maps every fatal error to a failed outcome."""
        try:
            artifact = self.run(initial_messages)
        except SessionError as exc:
            return SessionOutcome.from_error(exc)
        return SessionOutcome(kind=artifact.kind, artifact=artifact)

    # =========================================================================
    # Loop
    # =========================================================================

    def _run_loop(self, messages: Tuple[Dict[str, Any], ...]) -> TerminalArtifact:
        while True:
            self._check_cancelled()

            phase = self.state.current_phase
            step_number = self.state.step_count + 1
            active_tools, directive = self._gate.active_tools_and_directive(phase)
            addendum = describe_tool_errors(self.state.step_history)
            if addendum:
                directive = f"{directive}\n\n{addendum}"

            request = StepRequest(
                session_id=self.state.session_id,
                step_number=step_number,
                phase=phase,
                messages=messages,
                active_tools=active_tools,
                system_directive=directive,
                history=tuple(self.state.step_history),
            )
            self._emit(
                "step_started",
                step_id=format_step_id(step_number),
                phase=phase.value,
                active_tools=sorted(active_tools),
            )

            step = self._stream_step(request)
            self.state.step_history.append(step)
            self.state.step_count += 1

            new_phase = self._controller.advance()
            if new_phase is not None:
                self._emit(
                    "phase_changed",
                    step_id=step.step_id,
                    from_phase=phase.value,
                    to_phase=new_phase.value,
                    label=self._catalog.phase_label(new_phase),
                )

            display_phase = self._catalog.display_phase(step.tool_names())
            self._emit(
                "step_completed",
                step_id=step.step_id,
                phase=step.phase.value,
                tools=step.tool_names(),
                display_phase=display_phase.value if display_phase else None,
                step_count=self.state.step_count,
            )

            status = self._termination.evaluate(self.state.step_history, self.state.step_count)
            if status == TerminationStatus.COMPLETE:
                return self._resolve_terminal()
            if status == TerminationStatus.BUDGET_EXHAUSTED:
                raise StepBudgetExceededError(self.state.step_count, self._max_steps)

    def _stream_step(self, request: StepRequest) -> Step:
        """Consume one step's snapshots and return the final one."""
        last: Optional[Step] = None
        snapshots = self._stepper.stream_step(request)
        try:
            for raw in snapshots:
                snapshot = self._stamp(raw, request)
                self._validate_tools(snapshot, request.active_tools)
                self._observe(snapshot)
                last = snapshot
                self._check_cancelled()
        finally:
            close = getattr(snapshots, "close", None)
            if close is not None:
                close()

        if last is None:
            return Step(step_id=format_step_id(request.step_number), phase=request.phase)
        return last

    def _stamp(self, snapshot: Step, request: StepRequest) -> Step:
        """Bind the snapshot to the step number and phase it was requested in.

        Step ids always come from the step number; any id the stepper
        supplied is replaced.
        """
        step_id = format_step_id(request.step_number)
        if snapshot.phase == request.phase and step_id == snapshot.step_id:
            return snapshot
        return replace(snapshot, step_id=step_id, phase=request.phase)

    def _validate_tools(self, snapshot: Step, active_tools: Iterable[str]) -> None:
        active = set(active_tools)
        for invocation in snapshot.invocations:
            name = invocation.tool_name
            if name not in self._catalog:
                raise UnknownToolError(name, snapshot.step_id)
            if name not in active and (snapshot.step_id, name) not in self._inactive_warned:
                self._inactive_warned.add((snapshot.step_id, name))
                logger.warning(
                    "Session %s: tool %s called outside its phase (step %s, phase %s)",
                    self.state.session_id,
                    name,
                    snapshot.step_id,
                    snapshot.phase.value,
                )

    def _observe(self, snapshot: Step) -> None:
        """Emit progress and errors, then extract newly available artifacts."""
        for index, invocation in enumerate(snapshot.invocations):
            key = artifact_key(snapshot.step_id, index)

            text = progress_text(invocation)
            if text and self._progress_seen.get(key) != text:
                self._progress_seen[key] = text
                self._emit(
                    "progress",
                    step_id=snapshot.step_id,
                    tool_name=invocation.tool_name,
                    text=text,
                )

            if invocation.errored and key not in self._errors_seen:
                self._errors_seen.add(key)
                logger.warning(
                    "Session %s: tool %s failed in %s: %s",
                    self.state.session_id,
                    invocation.tool_name,
                    snapshot.step_id,
                    invocation.error_text or "no error details",
                )
                self._emit(
                    "tool_error",
                    step_id=snapshot.step_id,
                    tool_name=invocation.tool_name,
                    error_text=invocation.error_text,
                )

        result = extract(snapshot, self.state.processed_artifact_keys)
        self.state.processed_artifact_keys.update(result.processed_keys)

        for viz in result.visualizations:
            self._visualizations.append(viz)
            self._emit("visualization", step_id=snapshot.step_id, artifact=viz.to_dict())

        for candidate in result.terminals:
            if self._catalog.is_terminal(candidate.tool_name):
                self._terminal_candidates.append(candidate)
            else:
                logger.debug(
                    "Ignoring terminal-shaped output of non-terminal tool %s (%s)",
                    candidate.tool_name,
                    candidate.source_key,
                )

    def _resolve_terminal(self) -> TerminalArtifact:
        """Pick the artifact of the first successful terminal invocation."""
        found = self._termination.first_terminal_result(self.state.step_history)
        if found is None:
            raise RuntimeError("Termination reported complete without a terminal result")
        step, index, invocation = found
        key = artifact_key(step.step_id, index)

        chosen: Optional[TerminalCandidate] = None
        for candidate in self._terminal_candidates:
            if candidate.source_key == key:
                chosen = candidate
                break
        if chosen is None:
            raise MalformedTerminalResultError(invocation.tool_name, step.step_id)

        extra = [c for c in self._terminal_candidates if c is not chosen]
        if extra:
            logger.warning(
                "Session %s: ignoring %d additional terminal result(s) after %s",
                self.state.session_id,
                len(extra),
                key,
            )
        return chosen.artifact

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_cancelled(self) -> None:
        if self._cancel_requested.is_set():
            raise SessionCancelledError(self.state.session_id, self.state.step_count)

    def _emit(self, kind: str, step_id: Optional[str] = None, **payload: Any) -> None:
        self._seq += 1
        if self._on_event is None:
            return
        self._on_event(
            SessionEvent(
                session_id=self.state.session_id,
                kind=kind,
                seq=self._seq,
                step_id=step_id,
                payload=payload,
            )
        )
