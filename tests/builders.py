"""Builders for steps, invocations and recorded transcripts used across tests."""

from typing import Any, Dict, List, Optional

from askdata.runtime.types import InvocationState, Phase, Step, ToolInvocation

SQL = "SELECT name, revenue FROM companies ORDER BY revenue DESC LIMIT 3"

ROWS = [
    {"name": "Acme", "revenue": 120},
    {"name": "Globex", "revenue": 95},
    {"name": "Initech", "revenue": 40},
]


def invocation(
    tool_name: str,
    output: Any = None,
    state: Optional[InvocationState] = None,
    error_text: Optional[str] = None,
    **tool_input: Any,
) -> ToolInvocation:
    """Build an invocation; output-available when an output is given."""
    if state is None:
        state = InvocationState.OUTPUT_AVAILABLE if output is not None else InvocationState.INPUT_AVAILABLE
    return ToolInvocation(
        tool_name=tool_name,
        input=dict(tool_input),
        state=state,
        output=output,
        error_text=error_text,
    )


def failed(tool_name: str, error_text: str) -> ToolInvocation:
    return invocation(tool_name, state=InvocationState.ERRORED, error_text=error_text)


def step(step_id: str, *invocations: ToolInvocation, phase: Phase = Phase.PLANNING) -> Step:
    return Step(step_id=step_id, phase=phase, invocations=tuple(invocations))


def report_output(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "narrative": "Acme leads revenue, followed by Globex and Initech.",
        "sql": SQL,
        "confidence": 0.9,
        "csvBase64": "bmFtZSxyZXZlbnVlCkFjbWUsMTIw",
        "preview": ROWS,
        "vegaLite": {},
    }
    payload.update(overrides)
    return payload


def bar_chart(title: str = "Revenue by company") -> Dict[str, Any]:
    return {"type": "bar", "title": title, "data": ROWS, "config": {"xKey": "name"}}


def happy_path_steps() -> List[Dict[str, Any]]:
    """A recorded four-step transcript that ends with a report."""
    return [
        {
            "invocations": [
                {"toolName": "SearchCatalog", "input": {"query": "revenue"}, "output": {"hits": ["companies"]}},
                {"toolName": "FinalizePlan", "input": {"entities": ["companies"]}, "output": {"ok": True}},
            ]
        },
        {
            "invocations": [
                {"toolName": "BuildSQL", "output": {"sql": SQL}},
                {"toolName": "ValidateSQL", "output": {"valid": True}},
                {"toolName": "FinalizeBuild", "output": {"sql": SQL}},
            ]
        },
        {
            "invocations": [
                {"toolName": "ExecuteSQLWithRepair", "output": {"rows": ROWS, "rowCount": 3}},
            ]
        },
        {
            "snapshots": [
                {
                    "invocations": [
                        {"toolName": "generateBarChart", "output": {"visualization": bar_chart()}},
                        {"toolName": "FinalizeReport", "state": "input-streaming",
                         "input": {"narrative": "Acme leads"}},
                    ]
                },
                {
                    "invocations": [
                        {"toolName": "generateBarChart", "output": {"visualization": bar_chart()}},
                        {"toolName": "FinalizeReport", "state": "input-available",
                         "input": {"narrative": "Acme leads revenue"}},
                    ]
                },
                {
                    "invocations": [
                        {"toolName": "generateBarChart", "output": {"visualization": bar_chart()}},
                        {"toolName": "FinalizeReport", "input": {"narrative": "Acme leads revenue"},
                         "output": report_output()},
                    ]
                },
            ]
        },
    ]
