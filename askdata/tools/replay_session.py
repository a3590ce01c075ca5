#!/usr/bin/env python3
"""
Replay Session

Runs a recorded transcript (YAML or JSON) through the orchestrator with the
scripted stepper and prints the outcome as JSON.

Usage:
    askdata-replay transcripts/top_customers.yaml
    askdata-replay transcripts/top_customers.json --max-steps 10 --events

Exit codes:
    0 - session completed with a report, no-data or clarification outcome
    1 - session failed (unknown tool, step budget, malformed terminal result)
    2 - transcript could not be read or parsed
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from askdata.runtime.events import EventRecorder
from askdata.runtime.session import AgentSession
from askdata.runtime.stepper import ScriptedStepper, load_transcript

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BAD_INPUT = 2


def replay(
    transcript: Dict[str, Any],
    max_steps: Optional[int] = None,
    include_events: bool = False,
) -> Dict[str, Any]:
    """Run a loaded transcript and build the printable report.

    Raises:
        ValueError: If a recorded step cannot be parsed.
    """
    recorder = EventRecorder()
    session = AgentSession(
        ScriptedStepper(transcript["steps"]),
        max_steps=max_steps,
        on_event=recorder,
    )
    outcome = session.run_to_outcome(transcript["messages"])

    report: Dict[str, Any] = {
        "session_id": session.session_id,
        "outcome": outcome.to_dict(),
        "visualizations": [v.to_dict() for v in session.visualizations],
        "final_phase": session.state.current_phase.value,
        "step_count": session.state.step_count,
    }
    if include_events:
        report["events"] = recorder.to_list()
    return report


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint for transcript replay."""
    parser = argparse.ArgumentParser(
        description="Replay a recorded transcript through the phase-gated orchestrator"
    )
    parser.add_argument(
        "transcript",
        type=Path,
        help="Transcript file (YAML or JSON)",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Step ceiling (default: configured max_steps)",
    )
    parser.add_argument(
        "--events",
        action="store_true",
        help="Include the session event log in the output",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log orchestrator progress to stderr",
    )

    args = parser.parse_args(argv)

    if args.max_steps is not None and args.max_steps < 1:
        parser.error("--max-steps must be at least 1")

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        transcript = load_transcript(args.transcript)
    except (OSError, yaml.YAMLError, ValueError) as e:
        print(f"Error: cannot read transcript '{args.transcript}': {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    try:
        report = replay(transcript, max_steps=args.max_steps, include_events=args.events)
    except ValueError as e:
        logger.exception("Transcript %s could not be replayed", args.transcript)
        print(f"Error: invalid transcript '{args.transcript}': {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    print(json.dumps(report, indent=2))
    return EXIT_FAILED if report["outcome"]["kind"] == "failed" else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
