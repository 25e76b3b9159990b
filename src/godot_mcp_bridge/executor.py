"""
Runs operations through the Godot operations script.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .command import build_operation_command, build_version_command
from .godot_path import GodotPathManager
from .params import Params, to_external
from .process import CommandResult, ProcessOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_OPERATIONS_SCRIPT = str(Path(__file__).parent / "scripts" / "godot_operations.gd")


@dataclass(frozen=True)
class OperationRequest:
    operation: str
    project_path: str
    params: Params = field(default_factory=dict)


class OperationExecutor:
    """Turns an OperationRequest into a Godot invocation and runs it."""

    def __init__(
        self,
        path_manager: GodotPathManager,
        orchestrator: ProcessOrchestrator,
        operations_script_path: Optional[str] = None,
        godot_debug_mode: Optional[bool] = None,
        platform: Optional[str] = None,
    ):
        self.path_manager = path_manager
        self.orchestrator = orchestrator
        self.operations_script_path = operations_script_path or DEFAULT_OPERATIONS_SCRIPT
        self.godot_debug_mode = godot_debug_mode
        self.platform = platform

        if not os.path.exists(self.operations_script_path):
            logger.warning("Operations script not found: %s", self.operations_script_path)

    async def execute(self, request: OperationRequest, timeout: Optional[float] = None) -> CommandResult:
        """
        Execute an operation.

        ``request.params`` must be in the camelCase convention; they are
        converted to snake_case here, right before the command is built.

        Raises:
            ConfigurationError: If no Godot executable can be resolved
            ExecutionFailure: If the process could not be started
        """
        logger.debug("Executing operation: %s in project: %s", request.operation, request.project_path)
        logger.debug("Original operation params: %s", json.dumps(request.params))

        snake_params = to_external(request.params)
        logger.debug("Converted snake_case params: %s", json.dumps(snake_params))

        godot_path = await self.path_manager.ensure_path()
        command = build_operation_command(
            request.operation,
            snake_params,
            request.project_path,
            godot_path,
            self.operations_script_path,
            platform=self.platform,
            debug=self.godot_debug_mode,
        )
        return await self.orchestrator.run_command(command, timeout=timeout)

    async def query_version(self, timeout: Optional[float] = None) -> CommandResult:
        """Run ``godot --version``."""
        godot_path = await self.path_manager.ensure_path()
        return await self.orchestrator.run_command(
            build_version_command(godot_path, self.platform), timeout=timeout
        )
