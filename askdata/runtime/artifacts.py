"""
artifacts.py - Structural extraction of artifacts from tool results.

The extractor looks at tool outputs by shape, not by tool name, because
several tools can return chart-shaped payloads:

- ``visualization``: one chart object {type, title, data}
- ``visualizations``: a list of chart objects; malformed entries are dropped
- report shape: {narrative, sql, confidence}
- clarification shape: {question}
- no-data shape: {message} without narrative, sql or charts

Each invocation is identified by ``"{step_id}:{index}"``. The extractor is
stateless: it skips keys the caller has already processed and returns the
keys it looked at, including ones that yielded nothing, so the caller can
record them and never scan the same result twice. Only invocations in
``output-available`` state are eligible; ``input-available`` snapshots carry
arguments, not results.

Usage:
    result = extract(step, state.processed_artifact_keys)
    state.processed_artifact_keys.update(result.processed_keys)
"""

from __future__ import annotations

import json
import logging
from typing import AbstractSet, Any, Dict, List, Optional, Tuple

from jsonschema import Draft7Validator

from .types import (
    CHART_TYPES,
    ChartType,
    ClarificationArtifact,
    ExtractionResult,
    NoDataArtifact,
    ReportArtifact,
    Step,
    TerminalArtifact,
    TerminalCandidate,
    ToolInvocation,
    VisualizationArtifact,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Shape schemas
# =============================================================================

VISUALIZATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["type", "title", "data"],
    "properties": {
        "type": {"type": "string", "enum": list(CHART_TYPES)},
        "title": {"type": "string", "minLength": 1},
        "description": {"type": ["string", "null"]},
        "data": {"type": "array", "items": {"type": "object"}},
        "config": {"type": ["object", "null"]},
    },
}

REPORT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["narrative", "sql", "confidence"],
    "properties": {
        "narrative": {"type": "string", "minLength": 1},
        "sql": {"type": "string", "minLength": 1},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        "csvBase64": {"type": "string"},
        "preview": {"type": "array", "items": {"type": "object"}},
        "vegaLite": {"type": ["object", "null"]},
    },
}

CLARIFICATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["question"],
    "properties": {
        "question": {"type": "string", "minLength": 1},
    },
}

NO_DATA_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["message"],
    "properties": {
        "message": {"type": "string", "minLength": 1},
    },
    "not": {
        "anyOf": [
            {"required": ["narrative"]},
            {"required": ["sql"]},
            {"required": ["visualization"]},
            {"required": ["visualizations"]},
        ]
    },
}

_VISUALIZATION_VALIDATOR = Draft7Validator(VISUALIZATION_SCHEMA)
_REPORT_VALIDATOR = Draft7Validator(REPORT_SCHEMA)
_CLARIFICATION_VALIDATOR = Draft7Validator(CLARIFICATION_SCHEMA)
_NO_DATA_VALIDATOR = Draft7Validator(NO_DATA_SCHEMA)


# =============================================================================
# Helpers
# =============================================================================


def artifact_key(step_id: str, invocation_index: int) -> str:
    """Key identifying one tool result within a session."""
    return f"{step_id}:{invocation_index}"


def _coerce_payload(output: Any) -> Optional[Dict[str, Any]]:
    """Normalize a tool output to a dict, or None if it has no object shape.

    Tools sometimes return their JSON serialized as a string.
    """
    if isinstance(output, dict):
        return output
    if isinstance(output, str):
        try:
            decoded = json.loads(output)
        except ValueError:
            return None
        return decoded if isinstance(decoded, dict) else None
    return None


def _build_visualization(entry: Any, key: str, position: int) -> Optional[VisualizationArtifact]:
    if not _VISUALIZATION_VALIDATOR.is_valid(entry):
        logger.debug("Dropping malformed visualization %s#%d", key, position)
        return None
    return VisualizationArtifact(
        artifact_id=f"viz:{key}:{position}",
        kind=ChartType(entry["type"]),
        title=entry["title"],
        description=entry.get("description"),
        data_rows=tuple(dict(row) for row in entry["data"]),
        config=dict(entry.get("config") or {}),
        source_key=key,
    )


def extract_visualizations(payload: Dict[str, Any], key: str) -> List[VisualizationArtifact]:
    """Pull chart artifacts out of a single payload."""
    found: List[VisualizationArtifact] = []
    position = 0

    if "visualization" in payload:
        viz = _build_visualization(payload["visualization"], key, position)
        position += 1
        if viz is not None:
            found.append(viz)

    entries = payload.get("visualizations")
    if isinstance(entries, list):
        for entry in entries:
            viz = _build_visualization(entry, key, position)
            position += 1
            if viz is not None:
                found.append(viz)

    return found


def build_terminal_artifact(payload: Dict[str, Any]) -> Optional[TerminalArtifact]:
    """Construct a terminal artifact if the payload has a terminal shape.

    The report check runs first; the no-data shape explicitly excludes
    payloads carrying ``narrative`` or ``sql`` so a report is never mistaken
    for a "no data" message.
    """
    if _REPORT_VALIDATOR.is_valid(payload):
        chart_spec = payload.get("vegaLite")
        return ReportArtifact(
            sql=payload["sql"],
            narrative=payload["narrative"],
            confidence=float(payload["confidence"]),
            csv_payload=payload.get("csvBase64", ""),
            preview_rows=tuple(dict(row) for row in payload.get("preview", [])),
            chart_spec=dict(chart_spec) if chart_spec else None,
        )
    if _CLARIFICATION_VALIDATOR.is_valid(payload):
        return ClarificationArtifact(question=payload["question"])
    if _NO_DATA_VALIDATOR.is_valid(payload):
        return NoDataArtifact(message=payload["message"])
    return None


# =============================================================================
# Extraction
# =============================================================================


def extract_invocation(
    step_id: str,
    index: int,
    invocation: ToolInvocation,
    already_processed: AbstractSet[str],
) -> Tuple[List[Any], Optional[str]]:
    """Extract artifacts from one invocation.

    Args:
        step_id: Step the invocation belongs to.
        index: Position of the invocation in the step.
        invocation: The invocation snapshot.
        already_processed: Keys recorded by the caller.

    Returns:
        (artifacts, key). ``key`` is None when the invocation was skipped
        (not yet output-available, or already processed); otherwise it is
        the key to record, even if no artifact was produced. Artifacts are
        VisualizationArtifacts followed by at most one terminal artifact.
    """
    if not invocation.succeeded:
        return [], None

    key = artifact_key(step_id, index)
    if key in already_processed:
        return [], None

    payload = _coerce_payload(invocation.output)
    if payload is None:
        return [], key

    artifacts: List[Any] = list(extract_visualizations(payload, key))
    terminal = build_terminal_artifact(payload)
    if terminal is not None:
        artifacts.append(terminal)
    return artifacts, key


def extract(step: Step, already_processed: AbstractSet[str]) -> ExtractionResult:
    """Extract artifacts from every eligible invocation in a step snapshot."""
    result = ExtractionResult()
    for index, invocation in enumerate(step.invocations):
        artifacts, key = extract_invocation(step.step_id, index, invocation, already_processed)
        if key is None:
            continue
        result.processed_keys.append(key)
        for artifact in artifacts:
            if isinstance(artifact, VisualizationArtifact):
                result.visualizations.append(artifact)
            else:
                result.terminals.append(
                    TerminalCandidate(artifact=artifact, tool_name=invocation.tool_name, source_key=key)
                )
    return result
