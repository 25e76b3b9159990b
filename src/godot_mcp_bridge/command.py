"""
Command line construction for invoking Godot.

This is the only place that quotes user-supplied data for a shell. The
functions here build strings; they never execute anything.
"""

import json
import os
import re
import sys
from typing import Any, Optional

DEBUG_GODOT_FLAG = "--debug-godot"

_TRAILING_BACKSLASHES = re.compile(r"(\\*)$")
_BACKSLASHES_BEFORE_QUOTE = re.compile(r'(\\*)"')
_CMD_METACHARACTERS = set("^&|<>%()")


def is_windows(platform: Optional[str] = None) -> bool:
    return (platform or sys.platform) == "win32"


def godot_debug_enabled() -> bool:
    """Whether GODOT_DEBUG_MODE asks for the debug flag to be forwarded."""
    return os.environ.get("GODOT_DEBUG_MODE", "").lower() == "true"


def quote_posix_argument(value: str) -> str:
    """Single-quote for sh; an embedded quote becomes '\\''."""
    return "'" + value.replace("'", "'\\''") + "'"


def quote_windows_argument(value: str) -> str:
    """
    Double-quote for cmd.exe.

    cmd.exe does not strip single quotes, so the argument is wrapped in
    double quotes and embedded double quotes are backslash-escaped. Any
    backslashes preceding a quote (or the closing quote) are doubled so the
    Windows argument parser hands back the original string. Metacharacters
    that cmd.exe sees outside its own quote state are caret-escaped.
    """
    escaped = _BACKSLASHES_BEFORE_QUOTE.sub(
        lambda m: m.group(1) * 2 + '\\"', value
    )
    escaped = _TRAILING_BACKSLASHES.sub(lambda m: m.group(1) * 2, escaped)
    return _caret_escape(f'"{escaped}"')


def _caret_escape(quoted: str) -> str:
    # cmd.exe toggles its quote state at every '"', backslash or not, and
    # only honours metacharacters while outside quotes.
    result = []
    in_quotes = False
    for char in quoted:
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes and char in _CMD_METACHARACTERS:
            result.append("^")
        result.append(char)
    return "".join(result)


def quote_path(path: str, platform: Optional[str] = None) -> str:
    """Double-quote a filesystem path so embedded spaces survive."""
    if is_windows(platform):
        return f'"{path}"'
    # Characters that stay special inside POSIX double quotes
    escaped = re.sub(r'([\\"$`])', r"\\\1", path)
    return f'"{escaped}"'


def serialize_params(params: dict[str, Any]) -> str:
    return json.dumps(params, separators=(",", ":"))


def quote_params(params: dict[str, Any], platform: Optional[str] = None) -> str:
    """Serialize parameters to JSON and quote them as a single argument."""
    payload = serialize_params(params)
    if is_windows(platform):
        return quote_windows_argument(payload)
    return quote_posix_argument(payload)


def build_operation_command(
    operation: str,
    params: dict[str, Any],
    project_path: str,
    godot_path: str,
    script_path: str,
    platform: Optional[str] = None,
    debug: Optional[bool] = None,
) -> str:
    """
    Build the command line that runs an operation through the bootstrap script.

    Args:
        operation: Operation name understood by the operations script
        params: Parameters already converted to the engine naming convention
        project_path: Godot project directory
        godot_path: Godot executable
        script_path: Path to the operations script
        platform: Override for ``sys.platform`` (used for quoting)
        debug: Force the debug flag on or off; defaults to GODOT_DEBUG_MODE

    Returns:
        The full command line, ready for a shell
    """
    if debug is None:
        debug = godot_debug_enabled()

    parts = [
        quote_path(godot_path, platform),
        "--headless",
        "--path",
        quote_path(project_path, platform),
        "--script",
        quote_path(script_path, platform),
        operation,
        quote_params(params, platform),
    ]
    if debug:
        parts.append(DEBUG_GODOT_FLAG)
    return " ".join(parts)


def build_version_command(godot_path: str, platform: Optional[str] = None) -> str:
    """Build the ``--version`` query; the bare ``godot`` command stays unquoted."""
    if godot_path == "godot":
        return "godot --version"
    return f"{quote_path(godot_path, platform)} --version"
