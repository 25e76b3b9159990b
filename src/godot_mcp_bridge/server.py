"""
MCP Server for driving the Godot engine.

This module provides an MCP server that exposes tools for:
- Launching the editor and running projects with captured debug output
- Discovering projects and reading project metadata
- Creating and editing scenes, nodes, sprites and mesh libraries
- Working with TileMaps, TileSets and resource UIDs

Scene and resource edits are performed by running Godot headless with the
bundled operations script.
"""

import asyncio
import functools
import json
import logging
import signal
import sys
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import ServerConfig, load_config
from .errors import ConfigurationError
from .executor import OperationExecutor
from .godot_path import GodotPathManager
from .handlers import ToolHandlers, ToolResult
from .process import ProcessOrchestrator
from .tools import TOOLS

logger = logging.getLogger(__name__)

SERVER_NAME = "godot-mcp"
SHUTDOWN_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None)) if sig is not None
)


def configure_logging(debug: bool = False) -> None:
    """Log to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_handlers(config: Optional[ServerConfig] = None) -> ToolHandlers:
    """Wire the path manager, process orchestrator and executor together."""
    config = config or ServerConfig()
    path_manager = GodotPathManager(
        initial_path=config.godot_path,
        strict_path_validation=config.strict_path_validation,
    )
    orchestrator = ProcessOrchestrator()
    executor = OperationExecutor(
        path_manager,
        orchestrator,
        operations_script_path=config.operations_script_path,
        godot_debug_mode=config.godot_debug_mode,
    )
    return ToolHandlers(path_manager, executor, orchestrator)


def create_server(handlers: Optional[ToolHandlers] = None) -> Server:
    """Create and configure the MCP server."""
    handlers = handlers or build_handlers()
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Return the list of available tools."""
        return TOOLS

    # Arguments are accepted in snake_case as well as the camelCase the
    # schemas advertise, so schema validation is left to the handlers.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        """Handle tool calls."""
        logger.debug("Handling tool request: %s", name)
        try:
            result = await _execute_tool(handlers, name, arguments)
            return result.to_content()
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return [
                TextContent(
                    type="text",
                    text=json.dumps(
                        {
                            "error": True,
                            "message": str(e),
                        },
                        indent=2,
                    ),
                )
            ]

    return server


async def _execute_tool(
    handlers: ToolHandlers,
    name: str,
    arguments: Optional[dict[str, Any]],
) -> ToolResult:
    """Execute a tool by name."""
    tool_map = {
        # Editor and runtime
        "launch_editor": handlers.handle_launch_editor,
        "run_project": handlers.handle_run_project,
        "get_debug_output": handlers.handle_get_debug_output,
        "stop_project": handlers.handle_stop_project,
        "get_godot_version": handlers.handle_get_godot_version,
        "set_godot_path": handlers.handle_set_godot_path,
        # Projects
        "list_projects": handlers.handle_list_projects,
        "get_project_info": handlers.handle_get_project_info,
        # Scenes
        "create_scene": handlers.handle_create_scene,
        "add_node": handlers.handle_add_node,
        "load_sprite": handlers.handle_load_sprite,
        "export_mesh_library": handlers.handle_export_mesh_library,
        "save_scene": handlers.handle_save_scene,
        # UIDs
        "get_uid": handlers.handle_get_uid,
        "update_project_uids": handlers.handle_update_project_uids,
        # TileMaps and TileSets
        "create_tilemap": handlers.handle_create_tilemap,
        "create_tileset": handlers.handle_create_tileset,
        "set_tilemap_source": handlers.handle_set_tilemap_source,
        "paint_tiles": handlers.handle_paint_tiles,
        "add_tileset_source": handlers.handle_add_tileset_source,
        "read_tilemap": handlers.handle_read_tilemap,
        "read_tileset": handlers.handle_read_tileset,
    }

    if name not in tool_map:
        raise ValueError(f"Unknown tool: {name}")

    return await tool_map[name](arguments or {})


def _kill_and_interrupt(orchestrator: ProcessOrchestrator, signum, frame) -> None:
    orchestrator.kill_active()
    raise KeyboardInterrupt


def install_signal_handlers(orchestrator: ProcessOrchestrator) -> None:
    """Kill the supervised Godot process before the server exits on a signal."""
    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()

    def _shutdown(sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down", sig.name)
        orchestrator.kill_active()
        if main_task is not None:
            main_task.cancel()

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, _shutdown, sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support add_signal_handler.
            signal.signal(sig, functools.partial(_kill_and_interrupt, orchestrator))


async def run_server(config: Optional[ServerConfig] = None) -> None:
    """Resolve Godot, then run the MCP server over stdio."""
    handlers = build_handlers(config)
    path_manager = handlers.path_manager

    # Strict mode raises ConfigurationError here.
    godot_path = await path_manager.detect_godot_path()
    if not godot_path:
        raise ConfigurationError("Failed to find a valid Godot executable path")
    if not await path_manager.is_valid_godot_path(godot_path):
        logger.warning("Using potentially invalid Godot path: %s", godot_path)
        logger.warning("This may cause issues when executing Godot commands")
    logger.info("Using Godot at: %s", godot_path)

    server = create_server(handlers)
    install_signal_handlers(handlers.orchestrator)
    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Godot MCP server running on stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await handlers.cleanup()


def main():
    """Entry point for the MCP server."""
    try:
        config = load_config(sys.argv[1:])
    except ConfigurationError as e:
        configure_logging()
        logger.error(e.message)
        sys.exit(1)

    configure_logging(config.debug_mode)
    try:
        asyncio.run(run_server(config))
    except ConfigurationError as e:
        logger.error("Failed to start: %s", e.message)
        for solution in e.solutions:
            logger.error("  - %s", solution)
        sys.exit(1)
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Godot MCP server stopped")


if __name__ == "__main__":
    main()
