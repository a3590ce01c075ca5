"""
phase_controller.py - Forward-only phase state machine.

Planning -> Building -> Execution -> Reporting. The controller re-evaluates
the whole step history after every step, because a tool result can land in a
later step than the call that produced it. A successful result of a
phase-advancing tool moves the session to the phase after that tool's own
phase. The phase never moves backward.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from askdata.config.tool_catalog import ToolCatalog

from .types import Phase, SessionState, Step

logger = logging.getLogger(__name__)


def target_phase(history: Iterable[Step], catalog: ToolCatalog) -> Phase:
    """Furthest phase implied by the successful advancing tools in history.

    Raises:
        UnknownToolError: If history names a tool outside the catalog.
    """
    furthest = Phase.PLANNING
    for step in history:
        for invocation in step.invocations:
            if not invocation.succeeded:
                continue
            tool = catalog.get(invocation.tool_name)
            if not tool.advances_phase:
                continue
            reached = tool.phase.next()
            if reached is not None and reached.order > furthest.order:
                furthest = reached
    return furthest


class PhaseController:
    """Owner of ``SessionState.current_phase``.

    Attributes:
        _catalog: Catalog used to classify tools.
        _state: The session record whose phase this controller updates.
    """

    def __init__(self, catalog: ToolCatalog, state: SessionState):
        self._catalog = catalog
        self._state = state

    @property
    def current_phase(self) -> Phase:
        return self._state.current_phase

    def advance(self) -> Optional[Phase]:
        """Apply the transition rule to the full history.

        Returns:
            The new phase if a transition happened, else None.
        """
        reached = target_phase(self._state.step_history, self._catalog)
        current = self._state.current_phase
        if reached.order <= current.order:
            return None

        self._state.current_phase = reached
        logger.info(
            "Session %s phase %s -> %s",
            self._state.session_id,
            current.value,
            reached.value,
        )
        return reached
