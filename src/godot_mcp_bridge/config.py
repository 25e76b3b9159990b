"""
Server configuration.

Configuration is merged from JSON objects in the MCP_ARGUMENT_CONFIG,
MCP_SERVER_ARGUMENT_CONFIG and MCP_CONFIG environment variables, then from
command line flags. Keys may be given in snake_case or camelCase.
"""

import argparse
import json
import os
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError

CONFIG_ENV_VARS = ("MCP_ARGUMENT_CONFIG", "MCP_SERVER_ARGUMENT_CONFIG", "MCP_CONFIG")


class ServerConfig(BaseModel):
    """Settings for the Godot MCP server."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    godot_path: Optional[str] = Field(default=None, alias="godotPath")
    debug_mode: bool = Field(default=False, alias="debugMode")
    godot_debug_mode: Optional[bool] = Field(default=None, alias="godotDebugMode")
    strict_path_validation: bool = Field(default=False, alias="strictPathValidation")
    operations_script_path: Optional[str] = Field(default=None, alias="operationsScriptPath")

    @field_validator("godot_path", "operations_script_path", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def merge(self, overrides: Mapping[str, Any]) -> "ServerConfig":
        """Return a new config with ``overrides`` applied on top."""
        data = self.model_dump()
        try:
            update = ServerConfig.model_validate(dict(overrides))
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        data.update(update.model_dump(exclude_unset=True))
        return ServerConfig.model_validate(data)


def parse_json_config(raw: str) -> dict[str, Any]:
    """Parse a JSON config object, raising ConfigurationError on bad input."""
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"Failed to parse argument config: {e}") from e
    if not isinstance(parsed, dict):
        raise ConfigurationError("Failed to parse argument config: Expected a JSON object")
    return parsed


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="godot-mcp",
        description="MCP server for driving the Godot engine",
    )
    parser.add_argument("--godot-path", "--godotPath", dest="godot_path", help="Path to the Godot executable")
    parser.add_argument(
        "--config",
        "--argument-config",
        "--argumentConfig",
        dest="config",
        action="append",
        default=[],
        help="JSON object with configuration values",
    )
    parser.add_argument(
        "--strict-path-validation",
        action="store_true",
        default=None,
        help="Fail instead of falling back when Godot cannot be found",
    )
    parser.add_argument("--debug", action="store_true", default=None, help="Enable verbose logging")
    parser.add_argument(
        "--godot-debug", action="store_true", default=None, help="Pass --debug-godot to the operations script"
    )
    return parser


def load_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ServerConfig:
    """
    Build the server configuration.

    Args:
        argv: Command line arguments (without the program name)
        environ: Environment mapping, defaults to os.environ

    Raises:
        ConfigurationError: If a JSON config is malformed
    """
    env = os.environ if environ is None else environ
    config = ServerConfig()

    for name in CONFIG_ENV_VARS:
        raw = env.get(name)
        if raw and raw.strip():
            config = config.merge(parse_json_config(raw))

    args, _ = build_arg_parser().parse_known_args(list(argv or []))
    for raw in args.config:
        config = config.merge(parse_json_config(raw))

    overrides: dict[str, Any] = {}
    if args.godot_path is not None:
        overrides["godot_path"] = args.godot_path
    if args.strict_path_validation is not None:
        overrides["strict_path_validation"] = True
    if args.debug is not None:
        overrides["debug_mode"] = True
    if args.godot_debug is not None:
        overrides["godot_debug_mode"] = True
    if overrides:
        config = config.merge(overrides)

    if env.get("DEBUG", "").lower() == "true":
        config = config.merge({"debug_mode": True})
    return config
