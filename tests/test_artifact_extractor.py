"""Tests for structural artifact extraction."""

import json

from askdata.runtime.artifacts import (
    artifact_key,
    build_terminal_artifact,
    extract,
    extract_invocation,
    extract_visualizations,
)
from askdata.runtime.types import (
    ChartType,
    ClarificationArtifact,
    InvocationState,
    NoDataArtifact,
    Phase,
    ReportArtifact,
)

from builders import ROWS, SQL, bar_chart, failed, invocation, report_output, step


class TestVisualizationShapes:
    """Single and list chart payloads."""

    def test_single_visualization(self):
        found = extract_visualizations({"visualization": bar_chart()}, "step-001:0")
        assert len(found) == 1
        viz = found[0]
        assert viz.kind == ChartType.BAR
        assert viz.title == "Revenue by company"
        assert list(viz.data_rows) == ROWS
        assert viz.config == {"xKey": "name"}
        assert viz.source_key == "step-001:0"
        assert viz.artifact_id == "viz:step-001:0:0"

    def test_unknown_chart_type_dropped(self):
        """One valid and one unknown-type entry yield exactly one artifact."""
        payload = {
            "visualizations": [
                bar_chart(),
                {"type": "unknown", "title": "Mystery", "data": ROWS},
            ]
        }
        found = extract_visualizations(payload, "step-004:0")
        assert len(found) == 1
        assert found[0].kind == ChartType.BAR

    def test_empty_title_dropped(self):
        assert extract_visualizations({"visualization": bar_chart(title="")}, "k") == []

    def test_data_must_be_list_of_objects(self):
        chart = {"type": "line", "title": "Trend", "data": [1, 2, 3]}
        assert extract_visualizations({"visualization": chart}, "k") == []

    def test_missing_config_becomes_empty(self):
        chart = {"type": "pie", "title": "Share", "data": ROWS}
        viz = extract_visualizations({"visualization": chart}, "k")[0]
        assert viz.config == {}
        assert viz.description is None

    def test_positions_are_stable_across_dropped_entries(self):
        payload = {
            "visualization": {"type": "bogus"},
            "visualizations": [bar_chart("A"), bar_chart("B")],
        }
        found = extract_visualizations(payload, "k")
        assert [v.artifact_id for v in found] == ["viz:k:1", "viz:k:2"]

    def test_to_dict_uses_camel_case(self):
        viz = extract_visualizations({"visualization": bar_chart()}, "step-001:0")[0]
        data = viz.to_dict()
        assert data["type"] == "bar"
        assert data["dataRows"] == ROWS
        assert data["sourceKey"] == "step-001:0"


class TestTerminalShapes:
    """Report, no-data and clarification payloads."""

    def test_report(self):
        artifact = build_terminal_artifact(report_output())
        assert isinstance(artifact, ReportArtifact)
        assert artifact.sql == SQL
        assert artifact.confidence == 0.9
        assert list(artifact.preview_rows) == ROWS
        assert artifact.csv_payload == "bmFtZSxyZXZlbnVlCkFjbWUsMTIw"

    def test_empty_chart_spec_is_none(self):
        assert build_terminal_artifact(report_output(vegaLite={})).chart_spec is None

    def test_chart_spec_kept(self):
        spec = {"mark": "bar", "encoding": {"x": {"field": "name"}}}
        assert build_terminal_artifact(report_output(vegaLite=spec)).chart_spec == spec

    def test_report_to_dict(self):
        data = build_terminal_artifact(report_output()).to_dict()
        assert data["kind"] == "report"
        assert data["previewRows"] == ROWS
        assert data["csvPayload"]
        assert data["chartSpec"] is None

    def test_confidence_out_of_range_is_dropped(self):
        assert build_terminal_artifact(report_output(confidence=1.5)) is None

    def test_no_data(self):
        artifact = build_terminal_artifact({"message": "no data found"})
        assert isinstance(artifact, NoDataArtifact)
        assert artifact.message == "no data found"

    def test_message_with_narrative_is_not_no_data(self):
        assert build_terminal_artifact({"message": "done", "narrative": "Acme leads"}) is None

    def test_message_with_visualizations_is_not_no_data(self):
        assert build_terminal_artifact({"message": "done", "visualizations": []}) is None

    def test_clarification(self):
        artifact = build_terminal_artifact({"question": "Which fiscal year?"})
        assert isinstance(artifact, ClarificationArtifact)
        assert artifact.question == "Which fiscal year?"

    def test_unrelated_payload(self):
        assert build_terminal_artifact({"rows": ROWS}) is None


class TestExtract:
    """Per-step extraction and at-most-once bookkeeping."""

    def test_no_data_result(self):
        s = step("step-001", invocation("FinalizeNoData", output={"message": "no data found"}))
        result = extract(s, set())

        assert result.visualizations == []
        assert len(result.terminals) == 1
        assert isinstance(result.terminals[0].artifact, NoDataArtifact)
        assert result.terminals[0].tool_name == "FinalizeNoData"
        assert result.terminals[0].source_key == "step-001:0"

    def test_mixed_visualizations(self):
        output = {
            "visualizations": [
                bar_chart(),
                {"type": "unknown", "title": "Mystery", "data": ROWS},
            ]
        }
        s = step("step-004", invocation("autoSelectVisualization", output=output), phase=Phase.REPORTING)
        result = extract(s, set())
        assert len(result.visualizations) == 1

    def test_second_pass_yields_nothing(self):
        s = step(
            "step-004",
            invocation("generateBarChart", output={"visualization": bar_chart()}),
            invocation("FinalizeReport", output=report_output()),
            phase=Phase.REPORTING,
        )
        processed = set()
        first = extract(s, processed)
        processed.update(first.processed_keys)
        second = extract(s, processed)

        assert len(first.visualizations) == 1
        assert len(first.terminals) == 1
        assert second.empty
        assert second.processed_keys == []

    def test_does_not_mutate_processed_keys(self):
        s = step("step-001", invocation("SearchCatalog", output={"hits": []}))
        processed = {"step-000:0"}
        extract(s, processed)
        assert processed == {"step-000:0"}

    def test_key_recorded_without_artifact(self):
        s = step("step-001", invocation("SearchCatalog", output={"hits": []}))
        result = extract(s, set())
        assert result.empty
        assert result.processed_keys == ["step-001:0"]

    def test_input_available_is_ignored(self):
        s = step(
            "step-004",
            invocation("FinalizeReport", state=InvocationState.INPUT_AVAILABLE, **report_output()),
            phase=Phase.REPORTING,
        )
        result = extract(s, set())
        assert result.empty
        assert result.processed_keys == []

    def test_errored_is_ignored(self):
        result = extract(step("step-001", failed("FinalizeReport", "boom")), set())
        assert result.processed_keys == []

    def test_json_string_output(self):
        s = step("step-001", invocation("ClarifyIntent", output=json.dumps({"question": "Which region?"})))
        result = extract(s, set())
        assert result.terminals[0].artifact == ClarificationArtifact(question="Which region?")

    def test_non_object_output(self):
        s = step("step-001", invocation("SearchCatalog", output=["companies"]))
        result = extract(s, set())
        assert result.empty
        assert result.processed_keys == ["step-001:0"]

    def test_extract_invocation_orders_charts_before_terminal(self):
        output = report_output(visualization=bar_chart())
        artifacts, key = extract_invocation("step-004", 2, invocation("FinalizeReport", output=output), set())
        assert key == artifact_key("step-004", 2) == "step-004:2"
        assert [type(a).__name__ for a in artifacts] == ["VisualizationArtifact", "ReportArtifact"]

    def test_extract_invocation_skips_processed(self):
        inv = invocation("FinalizeReport", output=report_output())
        assert extract_invocation("step-004", 0, inv, {"step-004:0"}) == ([], None)
