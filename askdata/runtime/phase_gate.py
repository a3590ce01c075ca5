"""
phase_gate.py - Active tool set and system directive per phase.

PhaseGate declares which tools the model may call in a phase and the system
directive that goes with it. It does not reject calls; the model-step
collaborator enforces the restriction.

Usage:
    gate = PhaseGate(catalog, context)
    tools, directive = gate.active_tools_and_directive(Phase.BUILDING)
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Tuple

from askdata.config.runtime_config import DirectiveContext

if TYPE_CHECKING:
    from askdata.config.tool_catalog import ToolCatalog

from .types import Phase, Step


class PhaseGate:
    """Pure mapping from phase to (active tool names, directive).

    The same phase always yields the same result for a given catalog and
    context; nothing here reads session state.
    """

    def __init__(self, catalog: ToolCatalog, context: Optional[DirectiveContext] = None):
        self._catalog = catalog
        self._context = context or DirectiveContext()

    def active_tools(self, phase: Phase) -> FrozenSet[str]:
        return self._catalog.tool_names_for_phase(phase)

    def directive(self, phase: Phase) -> str:
        """Compose the directive: preamble, context blocks, callable tools."""
        phase = Phase.parse(phase)
        parts: List[str] = []

        preamble = self._catalog.phase_directive(phase)
        if preamble:
            parts.append(preamble)

        parts.extend(self._context_blocks(phase))
        parts.append(_tool_enumeration(phase, self.active_tools(phase)))
        return "\n\n".join(parts)

    def active_tools_and_directive(self, phase: Phase) -> Tuple[FrozenSet[str], str]:
        return self.active_tools(phase), self.directive(phase)

    def _context_blocks(self, phase: Phase) -> List[str]:
        ctx = self._context
        if phase == Phase.PLANNING:
            blocks = []
            if ctx.possible_entities:
                blocks.append(
                    f"<PossibleEntities>{', '.join(ctx.possible_entities)}</PossibleEntities>"
                )
            if ctx.verified_queries:
                blocks.append(
                    f"<VerifiedQueries>{json.dumps(list(ctx.verified_queries))}</VerifiedQueries>"
                )
            return blocks
        if phase == Phase.BUILDING:
            return [
                f"You are generating SQL for a {ctx.sql_dialect} database. "
                f"Use SQL syntax compatible with {ctx.sql_dialect}."
            ]
        if phase == Phase.EXECUTION:
            return [
                f"You are working with a {ctx.sql_dialect} database. "
                "Use ExecuteSQLWithRepair to run the final query."
            ]
        return []


def _tool_enumeration(phase: Phase, names: Iterable[str]) -> str:
    listed = ", ".join(sorted(names))
    return (
        f"Phase: {phase.value}. You may call only these tools: {listed}. "
        "Any other tool call will be rejected."
    )


def describe_tool_errors(history: Iterable[Step]) -> str:
    """Render errored invocations from history as a directive addendum.

    Returns an empty string when nothing has failed, so the directive for a
    clean session is exactly the gate's directive.
    """
    lines: List[str] = []
    for step in history:
        for invocation in step.invocations:
            if invocation.errored:
                detail = invocation.error_text or "no error details"
                lines.append(f"- {invocation.tool_name} ({step.step_id}): {detail}")
    if not lines:
        return ""
    return (
        "Earlier tool calls failed. Take these failures into account and "
        "mention them to the user where relevant:\n" + "\n".join(lines)
    )
