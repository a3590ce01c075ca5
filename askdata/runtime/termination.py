"""Termination decisions for the step loop.

Two independent conditions end a session:

- COMPLETE: some step holds a successful result for a terminal tool.
- BUDGET_EXHAUSTED: the step count reached the ceiling without one.

When both hold after the same step, completion wins.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional, Tuple

if TYPE_CHECKING:
    from askdata.config.tool_catalog import ToolCatalog

from .types import Step, ToolInvocation


class TerminationStatus(str, Enum):
    """Outcome of evaluating the termination policy after a step."""

    CONTINUE = "continue"
    COMPLETE = "complete"
    BUDGET_EXHAUSTED = "budget_exhausted"


class TerminationPolicy:
    """Pure decision over the step history."""

    def __init__(self, catalog: ToolCatalog, max_steps: int):
        if max_steps < 1:
            raise ValueError(f"max_steps must be positive, got {max_steps}")
        self._catalog = catalog
        self._max_steps = max_steps

    @property
    def max_steps(self) -> int:
        return self._max_steps

    def first_terminal_result(
        self, history: Iterable[Step]
    ) -> Optional[Tuple[Step, int, ToolInvocation]]:
        """Locate the earliest successful terminal invocation.

        Returns:
            (step, invocation index, invocation) or None.
        """
        for step in history:
            for index, invocation in enumerate(step.invocations):
                if invocation.succeeded and self._catalog.is_terminal(invocation.tool_name):
                    return step, index, invocation
        return None

    def is_complete(self, history: Iterable[Step]) -> bool:
        return self.first_terminal_result(history) is not None

    def evaluate(self, history: Iterable[Step], step_count: int) -> TerminationStatus:
        if self.is_complete(history):
            return TerminationStatus.COMPLETE
        if step_count >= self._max_steps:
            return TerminationStatus.BUDGET_EXHAUSTED
        return TerminationStatus.CONTINUE
