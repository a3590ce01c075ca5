"""Runtime configuration registry for the orchestrator.

Provides centralized configuration for the step budget, the default model
and the context blocks attached to phase directives. Environment variables
take precedence over YAML config.

Usage:
    from askdata.config.runtime_config import get_max_steps, get_directive_context

    max_steps = get_max_steps()  # 100 unless overridden
    context = get_directive_context()
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "runtime.yaml"
_cached_config: Optional[Dict[str, Any]] = None

# Step ceiling bounds
MAX_STEPS_MIN = 1
MAX_STEPS_MAX = 1000
DEFAULT_MAX_STEPS = 100


@dataclass(frozen=True)
class DirectiveContext:
    """Context blocks attached to phase directives.

    Attributes:
        sql_dialect: Target SQL dialect named in Building/Execution directives.
        possible_entities: Entity names listed in the Planning directive.
        verified_queries: Example question/SQL pairs for the Planning directive,
            already cut down to the configured maximum.
    """

    sql_dialect: str = "sqlite"
    possible_entities: Tuple[str, ...] = ()
    verified_queries: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)


def _load_config() -> Dict[str, Any]:
    """Load runtime.yaml configuration, with caching."""
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH, encoding="utf-8") as f:
            _cached_config = yaml.safe_load(f) or {}
    else:
        _cached_config = _default_config()

    return _cached_config


def _default_config() -> Dict[str, Any]:
    """Return default configuration if runtime.yaml doesn't exist."""
    return {
        "version": "1.0",
        "defaults": {
            "max_steps": DEFAULT_MAX_STEPS,
            "model": "gpt-4.1",
        },
        "directives": {
            "sql_dialect": "sqlite",
            "max_verified_queries": 3,
            "possible_entities": [],
            "verified_queries": [],
        },
    }


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config
    _cached_config = None


def _clamp_max_steps(value: int) -> int:
    """Clamp the step ceiling to sanity bounds with logging."""
    if value < MAX_STEPS_MIN:
        logger.warning(
            "max_steps %d is below minimum %d. Clamping to %d.",
            value,
            MAX_STEPS_MIN,
            MAX_STEPS_MIN,
        )
        return MAX_STEPS_MIN
    if value > MAX_STEPS_MAX:
        logger.warning(
            "max_steps %d exceeds maximum %d. Clamping to %d.",
            value,
            MAX_STEPS_MAX,
            MAX_STEPS_MAX,
        )
        return MAX_STEPS_MAX
    return value


def get_max_steps() -> int:
    """Get the step ceiling for a session.

    Priority:
    1. ASKDATA_MAX_STEPS environment variable
    2. runtime.yaml defaults.max_steps
    3. 100

    Returns:
        The clamped step ceiling.
    """
    env_value = os.environ.get("ASKDATA_MAX_STEPS")
    if env_value:
        try:
            return _clamp_max_steps(int(env_value))
        except ValueError:
            logger.warning("Ignoring non-integer ASKDATA_MAX_STEPS=%r", env_value)

    config = _load_config()
    value = config.get("defaults", {}).get("max_steps", DEFAULT_MAX_STEPS)
    return _clamp_max_steps(int(value))


def get_default_model() -> str:
    """Get the model name passed to the model-step collaborator."""
    env_value = os.environ.get("ASKDATA_MODEL")
    if env_value:
        return env_value
    config = _load_config()
    return str(config.get("defaults", {}).get("model", "gpt-4.1"))


def get_catalog_path() -> Path:
    """Get the tool catalog file (ASKDATA_CATALOG_PATH overrides the bundled file)."""
    env_value = os.environ.get("ASKDATA_CATALOG_PATH")
    if env_value:
        return Path(env_value)
    return Path(__file__).parent / "tool_catalog.yaml"


def get_directive_context() -> DirectiveContext:
    """Build the DirectiveContext from config and environment.

    Returns:
        DirectiveContext with verified queries truncated to
        ``directives.max_verified_queries``.
    """
    config = _load_config()
    directives = config.get("directives", {}) or {}

    dialect = os.environ.get("ASKDATA_SQL_DIALECT") or directives.get("sql_dialect", "sqlite")
    entities: List[str] = [str(e) for e in directives.get("possible_entities", []) or []]

    max_queries = int(directives.get("max_verified_queries", 3))
    queries = [q for q in directives.get("verified_queries", []) or [] if isinstance(q, dict)]

    return DirectiveContext(
        sql_dialect=str(dialect),
        possible_entities=tuple(entities),
        verified_queries=tuple(queries[:max(max_queries, 0)]),
    )
