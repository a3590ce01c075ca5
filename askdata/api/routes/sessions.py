"""
Session endpoints for the askdata API.

Provides REST endpoints for:
- Replaying a recorded transcript through AgentSession
  (POST /api/sessions/replay)

Replays run the real orchestrator with ScriptedStepper standing in for the
model, so the response shows exactly which phases, artifacts and events a
transcript produces.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from askdata.config.runtime_config import MAX_STEPS_MAX, MAX_STEPS_MIN
from askdata.runtime.events import EventRecorder
from askdata.runtime.session import AgentSession
from askdata.runtime.stepper import ScriptedStepper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


# =============================================================================
# Pydantic Models
# =============================================================================


class ReplayRequest(BaseModel):
    """Request for POST /api/sessions/replay."""

    messages: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Conversation messages passed to every step",
    )
    steps: List[Dict[str, Any]] = Field(
        ...,
        description="Recorded steps; each may carry a 'snapshots' list",
    )
    max_steps: Optional[int] = Field(
        default=None,
        ge=MAX_STEPS_MIN,
        le=MAX_STEPS_MAX,
        description="Step ceiling; defaults to the configured value",
    )


class ReplayResponse(BaseModel):
    """Response for POST /api/sessions/replay."""

    session_id: str
    outcome: Dict[str, Any]
    visualizations: List[Dict[str, Any]]
    final_phase: str
    step_count: int
    events: List[Dict[str, Any]]


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/replay", response_model=ReplayResponse)
def replay_session(request: ReplayRequest) -> ReplayResponse:
    """Run a recorded transcript to its outcome.

    Fatal session errors come back as a ``failed`` outcome with status 200;
    a transcript that cannot be parsed is a 422.
    """
    recorder = EventRecorder()
    session = AgentSession(
        ScriptedStepper(request.steps),
        max_steps=request.max_steps,
        on_event=recorder,
    )

    try:
        outcome = session.run_to_outcome(request.messages)
    except ValueError as e:
        logger.warning("Rejected transcript for session %s: %s", session.session_id, e)
        raise HTTPException(
            status_code=422,
            detail={"error": "invalid_transcript", "message": str(e)},
        )

    return ReplayResponse(
        session_id=session.session_id,
        outcome=outcome.to_dict(),
        visualizations=[v.to_dict() for v in session.visualizations],
        final_phase=session.state.current_phase.value,
        step_count=session.state.step_count,
        events=recorder.to_list(),
    )
