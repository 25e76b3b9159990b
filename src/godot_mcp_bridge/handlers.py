"""
Tool handlers for the Godot MCP server.

Every handler returns a ToolResult. Bridge errors raised anywhere below a
handler are caught here and turned into an error payload with suggested
solutions and any output Godot produced; nothing is allowed to escape to
the MCP transport.
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from mcp.types import TextContent

from . import project
from .errors import (
    ExecutionFailure,
    ExtractionError,
    GodotBridgeError,
    OperationTimeoutError,
    ValidationError,
)
from .executor import OperationExecutor, OperationRequest
from .godot_path import GodotPathManager
from .params import Params, to_internal
from .process import ProcessOrchestrator

logger = logging.getLogger(__name__)

FAILURE_MARKER = "Failed to"
VERSION_QUERY_TIMEOUT = 10.0
UID_MINIMUM_VERSION = (4, 4)

GODOT_SOLUTIONS = [
    "Ensure Godot is installed correctly",
    "Check if the GODOT_PATH environment variable is set correctly",
    "Verify the project path is accessible",
]
INVALID_PATH_SOLUTIONS = ['Provide valid paths without ".." or other potentially unsafe characters']
INVALID_PROJECT_SOLUTIONS = [
    "Ensure the path points to a directory containing a project.godot file",
    "Use list_projects to find valid Godot projects",
]
NO_PROCESS_SOLUTIONS = [
    "Use run_project to start a Godot project first",
    "The process may have already terminated",
]


class ResultMode(Enum):
    TEXT = "text"
    JSON = "json"


@dataclass
class ToolResult:
    """Outcome of a tool call, independent of the MCP content types."""

    message: str
    data: Any = None
    is_error: bool = False
    error_type: Optional[str] = None
    solutions: list[str] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""

    @classmethod
    def success(cls, message: str, data: Any = None) -> "ToolResult":
        return cls(message=message, data=data)

    @classmethod
    def failure(cls, error: GodotBridgeError, prefix: str = "") -> "ToolResult":
        message = f"{prefix}{error.message}" if prefix else error.message
        logger.error("Error response: %s", message)
        if error.solutions:
            logger.error("Possible solutions: %s", ", ".join(error.solutions))
        return cls(
            message=message,
            is_error=True,
            error_type=error.error_type,
            solutions=error.solutions,
            stdout=error.stdout,
            stderr=error.stderr,
        )

    def to_dict(self) -> dict[str, Any]:
        if not self.is_error:
            return {"message": self.message, "data": self.data}
        payload: dict[str, Any] = {
            "error": True,
            "type": self.error_type,
            "message": self.message,
            "solutions": self.solutions,
        }
        if self.stdout:
            payload["stdout"] = self.stdout
        if self.stderr:
            payload["stderr"] = self.stderr
        return payload

    def to_content(self) -> list[TextContent]:
        if self.is_error:
            return [TextContent(type="text", text=json.dumps(self.to_dict(), indent=2))]
        content = [TextContent(type="text", text=self.message)]
        if self.data is not None:
            content.append(TextContent(type="text", text=json.dumps(self.data, indent=2)))
        return content


def extract_json_from_output(output: str) -> Any:
    """
    Return the last stdout line that parses as JSON.

    Godot prints engine banners and log lines before the operations script
    prints its result, so lines are scanned from the end.

    Raises:
        ExtractionError: If the output is empty or no line parses
    """
    lines = [line.strip() for line in (output or "").strip().splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        raise ExtractionError("No JSON content returned from Godot")

    for line in reversed(lines):
        try:
            return json.loads(line)
        except ValueError:
            logger.debug("Failed to parse JSON line: %s", line)

    raise ExtractionError("Unable to parse JSON content from Godot output")


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


class ToolHandlers:
    """
    Implements every tool on top of the path manager, executor and
    process orchestrator, which are injected so tests can replace them.
    """

    def __init__(
        self,
        path_manager: GodotPathManager,
        executor: OperationExecutor,
        orchestrator: ProcessOrchestrator,
    ):
        self.path_manager = path_manager
        self.executor = executor
        self.orchestrator = orchestrator

    async def cleanup(self) -> None:
        logger.debug("Cleaning up resources")
        if self.orchestrator.active is not None:
            logger.debug("Killing active Godot process")
            await self.orchestrator.stop()

    # Validation

    def check_required(self, args: Params, required_params: list[str]) -> None:
        missing = [name for name in required_params if _is_missing(args.get(name))]
        if missing:
            names = ", ".join(missing)
            raise ValidationError(f"Missing required parameters: {names}", [f"Provide {names}"])

    def check_paths(self, args: Params) -> None:
        """Every path-named parameter that is present must be a safe string."""
        invalid = [
            name
            for name, value in args.items()
            if "path" in name.lower() and value is not None and not project.validate_path(value)
        ]
        if invalid:
            logger.debug("Rejected path parameters: %s", ", ".join(invalid))
            raise ValidationError("Invalid path", INVALID_PATH_SOLUTIONS)

    async def check_project(self, project_path: str) -> None:
        if not await asyncio.to_thread(project.is_valid_godot_project, project_path):
            raise ValidationError(f"Not a valid Godot project: {project_path}", INVALID_PROJECT_SOLUTIONS)

    async def check_uid_support(self) -> str:
        version = await self.godot_version()
        if not project.is_version_at_least(version, UID_MINIMUM_VERSION):
            raise ValidationError(
                f"UIDs are only supported in Godot 4.4 or later. Current version: {version}",
                [
                    "Upgrade to Godot 4.4 or later to use UIDs",
                    "Use resource paths instead of UIDs for this version of Godot",
                ],
            )
        return version

    async def godot_version(self, timeout: Optional[float] = None) -> str:
        result = await self.executor.query_version(timeout=timeout)
        if result.timed_out:
            raise OperationTimeoutError(
                "Timed out while querying the Godot version",
                ["Ensure the Godot executable is responsive"],
                stdout=result.stdout,
                stderr=result.stderr,
            )
        if result.returncode != 0:
            raise ExecutionFailure(
                f"Godot --version exited with code {result.returncode}",
                GODOT_SOLUTIONS[:2],
                stdout=result.stdout,
                stderr=result.stderr,
                returncode=result.returncode,
            )
        return result.stdout.strip()

    # Generic dispatch

    async def dispatch(
        self,
        tool_name: str,
        operation: str,
        args: Optional[dict[str, Any]],
        required_params: list[str],
        result_mode: ResultMode = ResultMode.TEXT,
        success_message: Optional[str] = None,
        require_project: bool = True,
    ) -> ToolResult:
        """
        Validate arguments, run ``operation`` and classify the outcome.

        Args:
            tool_name: Human readable name used in messages
            operation: Operation name passed to the operations script
            args: Raw tool arguments in either naming convention
            required_params: camelCase names that must be present
            result_mode: Whether a JSON result must be extracted from stdout
            success_message: Message used instead of the default
            require_project: Whether projectPath must contain project.godot
        """
        try:
            params = to_internal(args or {})
            return await self._run_operation(
                tool_name, operation, params, required_params, result_mode, success_message, require_project
            )
        except GodotBridgeError as e:
            return ToolResult.failure(e, prefix=f"Failed to {tool_name}: " if _is_run_error(e) else "")

    async def _run_operation(
        self,
        tool_name: str,
        operation: str,
        params: Params,
        required_params: list[str],
        result_mode: ResultMode,
        success_message: Optional[str],
        require_project: bool,
    ) -> ToolResult:
        self.check_required(params, required_params)
        self.check_paths(params)

        operation_params = dict(params)
        project_path = operation_params.pop("projectPath", None)
        if require_project and project_path:
            await self.check_project(project_path)

        result = await self.executor.execute(
            OperationRequest(operation=operation, project_path=project_path or "", params=operation_params)
        )

        if result.stderr and FAILURE_MARKER in result.stderr:
            raise ExecutionFailure(
                result.stderr.strip(),
                [
                    "Check the operation parameters",
                    "Verify file paths are correct",
                    "Ensure proper permissions",
                ],
                stdout=result.stdout,
                stderr=result.stderr,
                returncode=result.returncode,
            )
        if result.returncode != 0:
            raise ExecutionFailure(
                f"Godot exited with code {result.returncode}",
                ["Check the Godot output for errors", "Run with DEBUG=true for verbose logging"],
                stdout=result.stdout,
                stderr=result.stderr,
                returncode=result.returncode,
            )

        if result_mode is ResultMode.JSON:
            try:
                data = extract_json_from_output(result.stdout)
            except ExtractionError as e:
                logger.debug("Failed to parse JSON output for operation '%s': %s", operation, e.message)
                logger.debug("Raw stdout: %s", result.stdout)
                raise ExtractionError(
                    "Unable to parse JSON output",
                    [
                        "Run with DEBUG=true for verbose logging",
                        "Verify the requested resource exists and is readable",
                    ],
                    stdout=result.stdout,
                    stderr=result.stderr,
                ) from e
            return ToolResult.success(success_message or f"{tool_name} completed successfully.", data)

        return ToolResult.success(
            success_message or f"{tool_name} completed successfully.\n\nOutput: {result.stdout}"
        )

    # Process tools

    async def handle_launch_editor(self, args: Optional[dict[str, Any]]) -> ToolResult:
        try:
            params = to_internal(args or {})
            project_path = await self._validated_project(params)
            godot_path = await self.path_manager.ensure_path()
            logger.debug("Launching Godot editor for project: %s", project_path)
            await self.orchestrator.launch(godot_path, ["-e", "--path", project_path])
        except GodotBridgeError as e:
            return ToolResult.failure(e, prefix="Failed to launch Godot editor: " if _is_run_error(e) else "")
        return ToolResult.success(f"Godot editor launched successfully for project at {project_path}.")

    async def handle_run_project(self, args: Optional[dict[str, Any]]) -> ToolResult:
        try:
            params = to_internal(args or {})
            project_path = await self._validated_project(params)
            godot_path = await self.path_manager.ensure_path()

            cmd_args = ["-d", "--path", project_path]
            scene = params.get("scene")
            if isinstance(scene, str) and project.validate_path(scene):
                logger.debug("Adding scene parameter: %s", scene)
                cmd_args.append(scene)

            logger.debug("Running Godot project: %s", project_path)
            await self.orchestrator.start(godot_path, cmd_args)
        except GodotBridgeError as e:
            return ToolResult.failure(e, prefix="Failed to run Godot project: " if _is_run_error(e) else "")
        return ToolResult.success("Godot project started in debug mode. Use get_debug_output to see output.")

    async def handle_get_debug_output(self, args: Optional[dict[str, Any]] = None) -> ToolResult:
        captured = self.orchestrator.get_output()
        if captured is None:
            return ToolResult.failure(
                ValidationError(
                    "No active Godot process.",
                    [
                        "Use run_project to start a Godot project first",
                        "Check if the Godot process crashed unexpectedly",
                    ],
                )
            )
        output, errors = captured
        return ToolResult.success("Debug output", {"output": output, "errors": errors})

    async def handle_stop_project(self, args: Optional[dict[str, Any]] = None) -> ToolResult:
        logger.debug("Stopping active Godot process")
        captured = await self.orchestrator.stop()
        if captured is None:
            return ToolResult.failure(ValidationError("No active Godot process to stop.", NO_PROCESS_SOLUTIONS))
        output, errors = captured
        return ToolResult.success(
            "Godot project stopped",
            {"message": "Godot project stopped", "finalOutput": output, "finalErrors": errors},
        )

    async def handle_get_godot_version(self, args: Optional[dict[str, Any]] = None) -> ToolResult:
        try:
            logger.debug("Getting Godot version")
            version = await self.godot_version()
        except GodotBridgeError as e:
            return ToolResult.failure(e, prefix="Failed to get Godot version: " if _is_run_error(e) else "")
        return ToolResult.success(version)

    async def handle_set_godot_path(self, args: Optional[dict[str, Any]]) -> ToolResult:
        params = to_internal(args or {})
        godot_path = params.get("godotPath")
        if _is_missing(godot_path) or not isinstance(godot_path, str):
            return ToolResult.failure(
                ValidationError("Missing required parameters: godotPath", ["Provide godotPath"])
            )
        if not await self.path_manager.set_godot_path(godot_path):
            return ToolResult.failure(
                ValidationError(
                    f"Not a valid Godot executable: {godot_path}",
                    ["Ensure the path points to a Godot binary that answers --version"],
                )
            )
        return ToolResult.success(f"Godot path set to: {self.path_manager.get_path()}")

    # Project tools

    async def handle_list_projects(self, args: Optional[dict[str, Any]]) -> ToolResult:
        params = to_internal(args or {})
        directory = params.get("directory")
        try:
            self.check_required(params, ["directory"])
            if not project.validate_path(directory):
                raise ValidationError("Invalid directory path", INVALID_PATH_SOLUTIONS)
            logger.debug("Listing Godot projects in directory: %s", directory)
            if not await asyncio.to_thread(os.path.isdir, directory):
                raise ValidationError(
                    f"Directory does not exist: {directory}",
                    ["Provide a valid directory path that exists on the system"],
                )
            projects = await asyncio.to_thread(
                project.find_godot_projects, directory, params.get("recursive") is True
            )
        except GodotBridgeError as e:
            return ToolResult.failure(e)
        return ToolResult.success(f"Found {len(projects)} Godot project(s) in {directory}", projects)

    async def handle_get_project_info(self, args: Optional[dict[str, Any]]) -> ToolResult:
        try:
            params = to_internal(args or {})
            project_path = await self._validated_project(params)
            logger.debug("Getting project info for: %s", project_path)
            version = await self.godot_version(timeout=VERSION_QUERY_TIMEOUT)
            structure = await asyncio.to_thread(project.get_project_structure, project_path)
            name = await asyncio.to_thread(project.get_project_name, project_path)
        except GodotBridgeError as e:
            return ToolResult.failure(e, prefix="Failed to get project info: " if _is_run_error(e) else "")
        return ToolResult.success(
            f"Project info for {name}",
            {"name": name, "path": project_path, "godotVersion": version, "structure": structure},
        )

    # Scene and resource operations

    async def handle_create_scene(self, args: Optional[dict[str, Any]]) -> ToolResult:
        params = to_internal(args or {})
        if _is_missing(params.get("rootNodeType")):
            params["rootNodeType"] = "Node2D"
        scene_path = params.get("scenePath")
        return await self.dispatch(
            "create scene",
            "create_scene",
            params,
            ["projectPath", "scenePath"],
            success_message=f"Scene created successfully at: {scene_path}",
        )

    async def handle_add_node(self, args: Optional[dict[str, Any]]) -> ToolResult:
        params = to_internal(args or {})
        required = ["projectPath", "scenePath", "nodeType", "nodeName"]
        try:
            self.check_required(params, required)
            self.check_paths(params)
            await self.check_project(params["projectPath"])
            scene_file = os.path.join(params["projectPath"], params["scenePath"])
            if not await asyncio.to_thread(os.path.exists, scene_file):
                raise ValidationError(
                    f"Scene file does not exist: {params['scenePath']}",
                    ["Ensure the scene path is correct", "Use create_scene to create a new scene first"],
                )
        except GodotBridgeError as e:
            return ToolResult.failure(e)
        return await self.dispatch(
            "add node",
            "add_node",
            params,
            required,
            success_message=(
                f"Node '{params['nodeName']}' of type '{params['nodeType']}' "
                f"added successfully to '{params['scenePath']}'."
            ),
        )

    async def handle_load_sprite(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch(
            "load sprite", "load_sprite", args, ["projectPath", "scenePath", "nodePath", "texturePath"]
        )

    async def handle_export_mesh_library(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch(
            "export mesh library", "export_mesh_library", args, ["projectPath", "scenePath", "outputPath"]
        )

    async def handle_save_scene(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch("save scene", "save_scene", args, ["projectPath", "scenePath"])

    async def handle_get_uid(self, args: Optional[dict[str, Any]]) -> ToolResult:
        params = to_internal(args or {})
        try:
            self.check_required(params, ["projectPath", "filePath"])
            await self.check_uid_support()
        except GodotBridgeError as e:
            return ToolResult.failure(e, prefix="Failed to get UID: " if _is_run_error(e) else "")
        return await self.dispatch("get UID", "get_uid", params, ["projectPath", "filePath"])

    async def handle_update_project_uids(self, args: Optional[dict[str, Any]]) -> ToolResult:
        params = to_internal(args or {})
        try:
            self.check_required(params, ["projectPath"])
            await self.check_uid_support()
        except GodotBridgeError as e:
            return ToolResult.failure(e, prefix="Failed to update project UIDs: " if _is_run_error(e) else "")
        return await self.dispatch("update project UIDs", "resave_resources", params, ["projectPath"])

    async def handle_create_tilemap(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch(
            "create TileMap", "create_tilemap", args, ["projectPath", "scenePath", "tilemapName"]
        )

    async def handle_create_tileset(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch("create TileSet", "create_tileset", args, ["projectPath", "tilesetPath"])

    async def handle_set_tilemap_source(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch(
            "set TileMap source",
            "set_tilemap_source",
            args,
            ["projectPath", "scenePath", "tilemapPath", "tilesetPath"],
        )

    async def handle_paint_tiles(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch(
            "paint tiles", "paint_tiles", args, ["projectPath", "scenePath", "tilemapPath", "tiles"]
        )

    async def handle_add_tileset_source(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch(
            "add TileSet source", "add_tileset_source", args, ["projectPath", "tilesetPath", "texturePath"]
        )

    async def handle_read_tilemap(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch(
            "read TileMap",
            "read_tilemap",
            args,
            ["projectPath", "scenePath"],
            result_mode=ResultMode.JSON,
            success_message="TileMap data retrieved successfully.",
        )

    async def handle_read_tileset(self, args: Optional[dict[str, Any]]) -> ToolResult:
        return await self.dispatch(
            "read TileSet",
            "read_tileset",
            args,
            ["projectPath", "tilesetPath"],
            result_mode=ResultMode.JSON,
            success_message="TileSet data retrieved successfully.",
        )

    async def _validated_project(self, params: Params) -> str:
        self.check_required(params, ["projectPath"])
        project_path = params["projectPath"]
        if not isinstance(project_path, str) or not project.validate_path(project_path):
            raise ValidationError("Invalid project path", INVALID_PATH_SOLUTIONS)
        await self.check_project(project_path)
        return project_path


def _is_run_error(error: GodotBridgeError) -> bool:
    # Validation messages already read as complete sentences.
    return not isinstance(error, ValidationError)
