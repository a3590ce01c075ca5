"""
stepper.py - Model-step collaborator interface and the scripted stub.

The orchestrator treats the language model as a black box that, given the
conversation, the active tool set and the system directive, produces one
Step. Streaming collaborators yield successive snapshots of the same step as
tool calls move from ``input-streaming`` to ``output-available``; the last
snapshot is the completed step.

ScriptedStepper replays a recorded transcript without calling any model. It
backs tests, the replay CLI and the replay API endpoint.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Tuple

import yaml

from .types import Phase, Step, format_step_id, step_from_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepRequest:
    """Everything the model collaborator receives for one step.

    Attributes:
        session_id: Session requesting the step.
        step_number: 1-based number of the step being requested.
        phase: Current phase.
        messages: Initial conversation messages.
        active_tools: Tool names the model may call in this step.
        system_directive: System directive for this step.
        history: Completed steps so far, oldest first.
    """

    session_id: str
    step_number: int
    phase: Phase
    messages: Tuple[Dict[str, Any], ...]
    active_tools: FrozenSet[str]
    system_directive: str
    history: Tuple[Step, ...] = ()


class ModelStepper(ABC):
    """Abstract base class for model-step collaborators.

    Steppers are responsible for:
    - Presenting the conversation, tools and directive to the model
    - Rejecting tool calls outside ``request.active_tools``
    - Executing the called tools and reporting their states

    Steppers do NOT own phase tracking, termination or artifact extraction.
    """

    @property
    @abstractmethod
    def stepper_id(self) -> str:
        """Unique identifier for this stepper (e.g., 'scripted')."""
        ...

    @abstractmethod
    def stream_step(self, request: StepRequest) -> Iterator[Step]:
        """Yield snapshots of one step; the last one is the completed step.

        The session may stop iterating early (cancellation); implementations
        should release resources when the generator is closed.
        """
        ...

    def run_step(self, request: StepRequest) -> Step:
        """Run a step to completion and return its final snapshot."""
        last: Optional[Step] = None
        for snapshot in self.stream_step(request):
            last = snapshot
        if last is None:
            return Step(step_id=format_step_id(request.step_number), phase=request.phase)
        return last


class ScriptedStepper(ModelStepper):
    """Replays a recorded transcript step by step.

    Each transcript entry is either a step mapping (``invocations``,
    optional ``step_id`` and ``text``) or ``{"snapshots": [...]}`` listing
    successive snapshots of one step. When the script runs out the stepper
    keeps producing empty steps, like a model that stops calling tools.
    """

    def __init__(self, steps: Sequence[Mapping[str, Any]]):
        self._entries: List[Mapping[str, Any]] = list(steps)
        self._cursor = 0
        self.requests: List[StepRequest] = []

    @property
    def stepper_id(self) -> str:
        return "scripted"

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._entries)

    def stream_step(self, request: StepRequest) -> Iterator[Step]:
        self.requests.append(request)
        default_id = format_step_id(request.step_number)

        if self.exhausted:
            logger.debug("Script exhausted; returning empty step %s", default_id)
            yield Step(step_id=default_id, phase=request.phase)
            return

        entry = self._entries[self._cursor]
        self._cursor += 1

        if not isinstance(entry, Mapping):
            raise ValueError(f"Transcript entry {self._cursor} must be an object")
        snapshots = entry.get("snapshots")
        if snapshots is None:
            snapshots = [entry]
        if not isinstance(snapshots, list) or not snapshots:
            raise ValueError(f"Transcript entry {self._cursor} has no snapshots")

        step_id = entry.get("step_id") or default_id
        for snapshot in snapshots:
            if not isinstance(snapshot, Mapping):
                raise ValueError(f"Transcript entry {self._cursor} has a snapshot that is not an object")
            yield step_from_dict(snapshot, default_step_id=step_id, default_phase=request.phase)


def load_transcript(path: Path) -> Dict[str, Any]:
    """Load a recorded transcript from YAML or JSON.

    The file holds either a list of steps or a mapping with ``steps`` and
    optional ``messages``.

    Returns:
        Mapping with ``messages`` (list) and ``steps`` (list).
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if isinstance(data, list):
        data = {"steps": data}
    if not isinstance(data, dict):
        raise ValueError(f"Transcript {path} must be a list of steps or a mapping")

    steps = data.get("steps") or []
    messages = data.get("messages") or []
    if not isinstance(steps, list) or not isinstance(messages, list):
        raise ValueError(f"Transcript {path}: 'steps' and 'messages' must be lists")
    return {"messages": messages, "steps": steps}
