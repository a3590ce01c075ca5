"""Tests for the termination policy."""

import pytest

from askdata.runtime.termination import TerminationPolicy, TerminationStatus
from askdata.runtime.types import InvocationState, Phase

from builders import failed, invocation, report_output, step


class TestIsComplete:
    """Completion iff a successful terminal-tool result exists."""

    def test_empty_history(self, catalog):
        assert not TerminationPolicy(catalog, 100).is_complete([])

    def test_successful_terminal_tool(self, catalog):
        history = [step("step-001", invocation("FinalizeReport", output=report_output()), phase=Phase.REPORTING)]
        assert TerminationPolicy(catalog, 100).is_complete(history)

    @pytest.mark.parametrize("tool", ["FinalizeNoData", "ClarifyIntent"])
    def test_planning_terminal_tools(self, catalog, tool):
        history = [step("step-001", invocation(tool, output={"message": "x"}))]
        assert TerminationPolicy(catalog, 100).is_complete(history)

    def test_errored_terminal_tool(self, catalog):
        history = [step("step-001", failed("FinalizeReport", "boom"), phase=Phase.REPORTING)]
        assert not TerminationPolicy(catalog, 100).is_complete(history)

    def test_streaming_terminal_tool(self, catalog):
        history = [
            step(
                "step-001",
                invocation("FinalizeReport", state=InvocationState.STREAMING, narrative="Acme"),
                phase=Phase.REPORTING,
            )
        ]
        assert not TerminationPolicy(catalog, 100).is_complete(history)

    def test_advancing_tool_is_not_terminal(self, catalog):
        history = [step("step-001", invocation("FinalizePlan", output={"ok": True}))]
        assert not TerminationPolicy(catalog, 100).is_complete(history)


class TestEvaluate:
    """Complete, budget exhausted or continue."""

    def test_continue(self, catalog):
        history = [step("step-001", invocation("SearchCatalog", output={"hits": []}))]
        assert TerminationPolicy(catalog, 100).evaluate(history, 1) == TerminationStatus.CONTINUE

    def test_budget_exhausted(self, catalog):
        history = [step(f"step-{n:03d}") for n in range(1, 4)]
        assert TerminationPolicy(catalog, 3).evaluate(history, 3) == TerminationStatus.BUDGET_EXHAUSTED

    def test_completion_wins_over_budget(self, catalog):
        history = [step("step-001", invocation("FinalizeNoData", output={"message": "no data"}))]
        assert TerminationPolicy(catalog, 1).evaluate(history, 1) == TerminationStatus.COMPLETE

    def test_rejects_non_positive_ceiling(self, catalog):
        with pytest.raises(ValueError):
            TerminationPolicy(catalog, 0)


class TestFirstTerminalResult:
    """Locating the terminal invocation in history order."""

    def test_none(self, catalog):
        assert TerminationPolicy(catalog, 100).first_terminal_result([step("step-001")]) is None

    def test_earliest_wins(self, catalog):
        history = [
            step("step-001", invocation("SearchCatalog", output={}), invocation("ClarifyIntent", output={"question": "Which year?"})),
            step("step-002", invocation("FinalizeNoData", output={"message": "none"})),
        ]
        found_step, index, found = TerminationPolicy(catalog, 100).first_terminal_result(history)
        assert found_step.step_id == "step-001"
        assert index == 1
        assert found.tool_name == "ClarifyIntent"
