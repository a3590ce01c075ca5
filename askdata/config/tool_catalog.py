"""
tool_catalog.py - Load the tool catalog from tool_catalog.yaml

This module is the single source of truth for which tools exist, which phase
may call them, and which of them end the session or advance the phase. Both
the orchestrator and presentation helpers classify tools through it.

Usage:
    from askdata.config.tool_catalog import get_default_catalog

    catalog = get_default_catalog()
    catalog.tools_for_phase(Phase.BUILDING)
    catalog.is_terminal("FinalizeReport")   # True
    catalog.phase_of("BuildSQL")            # Phase.BUILDING
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import yaml

from askdata.runtime.errors import ToolCatalogError, UnknownToolError
from askdata.runtime.types import PHASE_ORDER, Phase, ToolDescriptor

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "tool_catalog.yaml"


@dataclass(frozen=True)
class PhaseDefinition:
    """Per-phase metadata from the catalog file.

    Attributes:
        phase: The phase this entry describes.
        label: Display label for the presentation layer.
        directive: Preamble of the system directive for this phase.
    """

    phase: Phase
    label: str
    directive: str


class ToolCatalog:
    """Immutable registry of tools keyed by name.

    Instances are safe to share between sessions: nothing mutates them after
    construction.
    """

    def __init__(
        self,
        tools: Iterable[ToolDescriptor],
        phases: Optional[Iterable[PhaseDefinition]] = None,
    ):
        self._by_name: Dict[str, ToolDescriptor] = {}
        for tool in tools:
            if tool.name in self._by_name:
                raise ToolCatalogError(f"Duplicate tool name in catalog: {tool.name}")
            if tool.advances_phase and tool.phase.next() is None:
                raise ToolCatalogError(
                    f"Tool '{tool.name}' advances the phase but belongs to the last "
                    f"phase '{tool.phase.value}'"
                )
            self._by_name[tool.name] = tool

        self._by_phase: Dict[Phase, FrozenSet[ToolDescriptor]] = {}
        for phase in PHASE_ORDER:
            members = frozenset(t for t in self._by_name.values() if t.phase == phase)
            if not members:
                raise ToolCatalogError(f"Phase '{phase.value}' has no tools")
            self._by_phase[phase] = members

        self._phases: Dict[Phase, PhaseDefinition] = {
            p: PhaseDefinition(phase=p, label=p.value.title(), directive="") for p in PHASE_ORDER
        }
        for definition in phases or ():
            self._phases[definition.phase] = definition

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolCatalog":
        """Build a catalog from the parsed YAML structure."""
        if not isinstance(data, Mapping):
            raise ToolCatalogError("Tool catalog must be a mapping")

        phases: List[PhaseDefinition] = []
        for entry in data.get("phases", []) or []:
            phase = _parse_phase(entry.get("key"), "phases")
            phases.append(
                PhaseDefinition(
                    phase=phase,
                    label=str(entry.get("label") or phase.value.title()),
                    directive=str(entry.get("directive") or "").strip(),
                )
            )

        tools: List[ToolDescriptor] = []
        for entry in data.get("tools", []) or []:
            name = entry.get("name")
            if not name or not isinstance(name, str):
                raise ToolCatalogError(f"Tool entry without a name: {entry!r}")
            tools.append(
                ToolDescriptor(
                    name=name,
                    phase=_parse_phase(entry.get("phase"), f"tool '{name}'"),
                    is_terminal=bool(entry.get("terminal", False)),
                    advances_phase=bool(entry.get("advances_phase", False)),
                    description=str(entry.get("description") or ""),
                )
            )

        return cls(tools, phases)

    @classmethod
    def from_yaml(cls, path: Path) -> "ToolCatalog":
        """Load a catalog from a YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        catalog = cls.from_dict(data)
        logger.debug("Loaded tool catalog from %s (%d tools)", path, len(catalog))
        return catalog

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._by_name

    def get(self, tool_name: str) -> ToolDescriptor:
        """Return the descriptor for a tool.

        Raises:
            UnknownToolError: If the tool is not in the catalog.
        """
        try:
            return self._by_name[tool_name]
        except KeyError:
            raise UnknownToolError(tool_name) from None

    def tools_for_phase(self, phase: Phase) -> FrozenSet[ToolDescriptor]:
        return self._by_phase[Phase.parse(phase)]

    def tool_names_for_phase(self, phase: Phase) -> FrozenSet[str]:
        return frozenset(t.name for t in self.tools_for_phase(phase))

    def is_terminal(self, tool_name: str) -> bool:
        return self.get(tool_name).is_terminal

    def phase_of(self, tool_name: str) -> Phase:
        return self.get(tool_name).phase

    def advancing_tools(self) -> Tuple[ToolDescriptor, ...]:
        return tuple(t for t in self.all_tools() if t.advances_phase)

    def terminal_tools(self) -> Tuple[ToolDescriptor, ...]:
        return tuple(t for t in self.all_tools() if t.is_terminal)

    def all_tools(self) -> Tuple[ToolDescriptor, ...]:
        """All descriptors in phase order, then declaration order."""
        return tuple(
            sorted(self._by_name.values(), key=lambda t: t.phase.order)
        )

    def phase_label(self, phase: Phase) -> str:
        return self._phases[Phase.parse(phase)].label

    def phase_directive(self, phase: Phase) -> str:
        return self._phases[Phase.parse(phase)].directive

    def display_phase(self, tool_names: Iterable[str]) -> Optional[Phase]:
        """Infer the phase to show for a message from its tool calls.

        A phase-advancing tool counts as the phase it leads into, since the
        session has moved on once it appears. Returns None when there are no
        tool calls.
        """
        latest: Optional[Phase] = None
        for name in tool_names:
            tool = self.get(name)
            phase = tool.phase.next() if tool.advances_phase else tool.phase
            if phase is not None and (latest is None or phase.order > latest.order):
                latest = phase
        return latest

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phases": [
                {
                    "key": d.phase.value,
                    "label": d.label,
                    "tools": sorted(self.tool_names_for_phase(d.phase)),
                }
                for d in (self._phases[p] for p in PHASE_ORDER)
            ],
            "tools": [t.to_dict() for t in self.all_tools()],
        }


def _parse_phase(value: Any, where: str) -> Phase:
    try:
        return Phase.parse(value)
    except ValueError:
        raise ToolCatalogError(f"Unknown phase {value!r} in {where}") from None


# Cache for the default catalog (immutable, shared by all sessions)
_default_catalog: Optional[ToolCatalog] = None
_default_catalog_path: Optional[Path] = None


def get_default_catalog(path: Optional[Path] = None) -> ToolCatalog:
    """Load and cache the catalog.

    Args:
        path: Catalog file. Defaults to the configured catalog path.

    Returns:
        The cached ToolCatalog for that path.
    """
    global _default_catalog, _default_catalog_path
    from askdata.config.runtime_config import get_catalog_path

    catalog_path = path or get_catalog_path()
    if _default_catalog is not None and _default_catalog_path == catalog_path:
        return _default_catalog

    _default_catalog = ToolCatalog.from_yaml(catalog_path)
    _default_catalog_path = catalog_path
    return _default_catalog


def reset_default_catalog() -> None:
    """Drop the cached catalog (for testing)."""
    global _default_catalog, _default_catalog_path
    _default_catalog = None
    _default_catalog_path = None
