"""Error types raised by the orchestrator.

Every fatal session error derives from SessionError and carries an
``error_code`` so callers can map it to a single user-facing failure without
string matching.
"""

from __future__ import annotations

from typing import Optional


# =============================================================================
# Error Types
# =============================================================================


class SessionError(Exception):
    """Base exception for fatal session errors."""

    error_code = "session_error"


class UnknownToolError(SessionError):
    """Raised when a step names a tool that is not in the catalog."""

    error_code = "unknown_tool"

    def __init__(self, tool_name: str, step_id: Optional[str] = None):
        self.tool_name = tool_name
        self.step_id = step_id
        msg = f"Tool '{tool_name}' is not declared in the tool catalog"
        if step_id:
            msg += f" (step {step_id})"
        super().__init__(msg)


class StepBudgetExceededError(SessionError):
    """Raised when the step ceiling is reached without a terminal result."""

    error_code = "step_budget_exceeded"

    def __init__(self, step_count: int, max_steps: int):
        self.step_count = step_count
        self.max_steps = max_steps
        super().__init__(
            f"Step budget exhausted after {step_count} steps (limit {max_steps}) "
            "without a terminal tool result"
        )


class SessionCancelledError(SessionError):
    """Raised when the caller cancels a session between steps."""

    error_code = "cancelled"

    def __init__(self, session_id: str, step_count: int):
        self.session_id = session_id
        self.step_count = step_count
        super().__init__(f"Session {session_id} cancelled after {step_count} steps")


class MalformedTerminalResultError(SessionError):
    """Raised when a terminal tool succeeded but its output has no terminal shape.

    A successful terminal call ends the session whatever its output looks
    like, so an unusable payload fails the session instead of letting the
    model try again.
    """

    error_code = "malformed_terminal_result"

    def __init__(self, tool_name: str, step_id: str):
        self.tool_name = tool_name
        self.step_id = step_id
        super().__init__(
            f"Terminal tool '{tool_name}' in step {step_id} returned an output "
            "that is neither a report, a no-data message nor a clarification"
        )


class ToolCatalogError(Exception):
    """Raised when the tool catalog configuration is invalid."""

    pass
