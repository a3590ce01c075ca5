"""
Catalog endpoints for the askdata API.

Provides REST endpoints for:
- Listing phases and tools (GET /api/catalog)
- Inspecting one phase's gate (GET /api/phases/{phase})
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from askdata.config.runtime_config import get_directive_context
from askdata.config.tool_catalog import get_default_catalog
from askdata.runtime.phase_gate import PhaseGate
from askdata.runtime.types import Phase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog"])


# =============================================================================
# Pydantic Models
# =============================================================================


class ToolInfo(BaseModel):
    """One catalog entry."""

    name: str
    phase: str
    is_terminal: bool = False
    advances_phase: bool = False
    description: str = ""


class PhaseInfo(BaseModel):
    """A phase and the tool names active in it."""

    key: str
    label: str
    tools: List[str] = Field(default_factory=list)


class CatalogResponse(BaseModel):
    """Response for GET /api/catalog."""

    phases: List[PhaseInfo]
    tools: List[ToolInfo]


class PhaseGateResponse(BaseModel):
    """Response for GET /api/phases/{phase}."""

    phase: str
    label: str
    active_tools: List[str]
    directive: str = Field(..., description="System directive sent with every step in this phase")


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/catalog", response_model=CatalogResponse)
async def get_catalog() -> CatalogResponse:
    """List phases in order and every tool the orchestrator knows."""
    catalog = get_default_catalog()
    return CatalogResponse(**catalog.to_dict())


@router.get("/phases/{phase}", response_model=PhaseGateResponse)
async def get_phase(phase: str) -> PhaseGateResponse:
    """Show what the gate presents to the model in one phase.

    Raises:
        HTTPException: 404 if the phase does not exist.
    """
    try:
        parsed = Phase.parse(phase)
    except ValueError:
        raise HTTPException(
            status_code=404,
            detail={"error": "phase_not_found", "message": f"Unknown phase '{phase}'"},
        )

    catalog = get_default_catalog()
    gate = PhaseGate(catalog, get_directive_context())
    tools, directive = gate.active_tools_and_directive(parsed)
    return PhaseGateResponse(
        phase=parsed.value,
        label=catalog.phase_label(parsed),
        active_tools=sorted(tools),
        directive=directive,
    )
