"""
Godot MCP Bridge - MCP server for driving the Godot engine

This package provides a Model Context Protocol (MCP) server that lets AI
agents launch, run and edit Godot projects by invoking the Godot executable.
"""

__version__ = "0.1.0"

from .server import create_server, main
from .godot_path import GodotPathManager
from .process import ProcessOrchestrator

__all__ = ["create_server", "main", "GodotPathManager", "ProcessOrchestrator", "__version__"]
