"""
Exceptions raised by the Godot MCP bridge.

Every error carries a message, a list of suggested remediations and any
output captured from the Godot process, so the tool handlers can turn it
into a uniform error payload.
"""

from typing import Optional


class GodotBridgeError(Exception):
    """Base class for all bridge errors."""

    error_type = "GodotBridgeError"

    def __init__(
        self,
        message: str,
        solutions: Optional[list[str]] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        self.message = message
        self.solutions = list(solutions or [])
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


class ConfigurationError(GodotBridgeError):
    """No usable Godot executable or an invalid server configuration."""

    error_type = "ConfigurationError"


class ValidationError(GodotBridgeError):
    """A tool call was rejected before anything was executed."""

    error_type = "ValidationError"


class ExecutionFailure(GodotBridgeError):
    """Godot ran but reported a failure, or could not be started."""

    error_type = "ExecutionFailure"

    def __init__(
        self,
        message: str,
        solutions: Optional[list[str]] = None,
        stdout: str = "",
        stderr: str = "",
        returncode: Optional[int] = None,
    ):
        super().__init__(message, solutions, stdout, stderr)
        self.returncode = returncode


class ExtractionError(GodotBridgeError):
    """A structured result was requested but no JSON line was found."""

    error_type = "ExtractionError"


class OperationTimeoutError(GodotBridgeError):
    """A one-shot command exceeded its time budget."""

    error_type = "TimeoutError"
