"""
Tool declarations exposed by the Godot MCP server.
"""

from mcp.types import Tool

PROJECT_PATH = {
    "type": "string",
    "description": "Path to the Godot project directory",
}
SCENE_PATH = {
    "type": "string",
    "description": "Path to the scene file (relative to project)",
}
TILEMAP_PATH = {
    "type": "string",
    "description": 'Path to the TileMap node (e.g., "root/TileMap")',
}
TILESET_PATH = {
    "type": "string",
    "description": "Path to the TileSet resource (relative to project)",
}


def _xy(description: str, x: str, y: str) -> dict:
    return {
        "type": "object",
        "properties": {
            "x": {"type": "integer", "description": x},
            "y": {"type": "integer", "description": y},
        },
        "required": ["x", "y"],
        "description": description,
    }


TOOLS: list[Tool] = [
    # Editor and runtime
    Tool(
        name="launch_editor",
        description="Launch Godot editor for a specific project",
        inputSchema={
            "type": "object",
            "properties": {"projectPath": PROJECT_PATH},
            "required": ["projectPath"],
        },
    ),
    Tool(
        name="run_project",
        description="Run the Godot project and capture output",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scene": {
                    "type": "string",
                    "description": "Optional: Specific scene to run",
                },
            },
            "required": ["projectPath"],
        },
    ),
    Tool(
        name="get_debug_output",
        description="Get the current debug output and errors",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="stop_project",
        description="Stop the currently running Godot project",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="get_godot_version",
        description="Get the installed Godot version",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="set_godot_path",
        description="Validate and use a different Godot executable",
        inputSchema={
            "type": "object",
            "properties": {
                "godotPath": {
                    "type": "string",
                    "description": "Path to the Godot executable",
                }
            },
            "required": ["godotPath"],
        },
    ),
    # Projects
    Tool(
        name="list_projects",
        description="List Godot projects in a directory",
        inputSchema={
            "type": "object",
            "properties": {
                "directory": {
                    "type": "string",
                    "description": "Directory to search for Godot projects",
                },
                "recursive": {
                    "type": "boolean",
                    "description": "Whether to search recursively (default: false)",
                },
            },
            "required": ["directory"],
        },
    ),
    Tool(
        name="get_project_info",
        description="Retrieve metadata about a Godot project",
        inputSchema={
            "type": "object",
            "properties": {"projectPath": PROJECT_PATH},
            "required": ["projectPath"],
        },
    ),
    # Scenes
    Tool(
        name="create_scene",
        description="Create a new Godot scene file",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": {
                    "type": "string",
                    "description": "Path where the scene file will be saved (relative to project)",
                },
                "rootNodeType": {
                    "type": "string",
                    "description": "Type of the root node (e.g., Node2D, Node3D)",
                    "default": "Node2D",
                },
            },
            "required": ["projectPath", "scenePath"],
        },
    ),
    Tool(
        name="add_node",
        description="Add a node to an existing scene",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": SCENE_PATH,
                "parentNodePath": {
                    "type": "string",
                    "description": 'Path to the parent node (e.g., "root" or "root/Player")',
                    "default": "root",
                },
                "nodeType": {
                    "type": "string",
                    "description": "Type of node to add (e.g., Sprite2D, CollisionShape2D)",
                },
                "nodeName": {"type": "string", "description": "Name for the new node"},
                "properties": {
                    "type": "object",
                    "description": "Optional properties to set on the node",
                },
            },
            "required": ["projectPath", "scenePath", "nodeType", "nodeName"],
        },
    ),
    Tool(
        name="load_sprite",
        description="Load a sprite into a Sprite2D node",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": SCENE_PATH,
                "nodePath": {
                    "type": "string",
                    "description": 'Path to the Sprite2D node (e.g., "root/Player/Sprite2D")',
                },
                "texturePath": {
                    "type": "string",
                    "description": "Path to the texture file (relative to project)",
                },
            },
            "required": ["projectPath", "scenePath", "nodePath", "texturePath"],
        },
    ),
    Tool(
        name="export_mesh_library",
        description="Export a scene as a MeshLibrary resource",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": {
                    "type": "string",
                    "description": "Path to the scene file (.tscn) to export",
                },
                "outputPath": {
                    "type": "string",
                    "description": "Path where the mesh library (.res) will be saved",
                },
                "meshItemNames": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional: Names of specific mesh items to include (defaults to all)",
                },
            },
            "required": ["projectPath", "scenePath", "outputPath"],
        },
    ),
    Tool(
        name="save_scene",
        description="Save changes to a scene file",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": SCENE_PATH,
                "newPath": {
                    "type": "string",
                    "description": "Optional: New path to save the scene to (for creating variants)",
                },
            },
            "required": ["projectPath", "scenePath"],
        },
    ),
    # UIDs
    Tool(
        name="get_uid",
        description="Get the UID for a specific file in a Godot project (for Godot 4.4+)",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "filePath": {
                    "type": "string",
                    "description": "Path to the file (relative to project) for which to get the UID",
                },
            },
            "required": ["projectPath", "filePath"],
        },
    ),
    Tool(
        name="update_project_uids",
        description="Update UID references in a Godot project by resaving resources (for Godot 4.4+)",
        inputSchema={
            "type": "object",
            "properties": {"projectPath": PROJECT_PATH},
            "required": ["projectPath"],
        },
    ),
    # TileMaps and TileSets
    Tool(
        name="create_tilemap",
        description="Create a TileMap node in an existing scene",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": SCENE_PATH,
                "tilemapName": {"type": "string", "description": "Name for the new TileMap node"},
                "parentNodePath": {
                    "type": "string",
                    "description": 'Path to the parent node (e.g., "root" or "root/GameWorld")',
                    "default": "root",
                },
                "properties": {
                    "type": "object",
                    "description": "Optional properties to set on the TileMap node",
                },
            },
            "required": ["projectPath", "scenePath", "tilemapName"],
        },
    ),
    Tool(
        name="create_tileset",
        description="Create a new TileSet resource",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "tilesetPath": {
                    "type": "string",
                    "description": "Path where the TileSet resource will be saved (relative to project)",
                },
            },
            "required": ["projectPath", "tilesetPath"],
        },
    ),
    Tool(
        name="set_tilemap_source",
        description="Set the TileSet resource for a TileMap node",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": SCENE_PATH,
                "tilemapPath": TILEMAP_PATH,
                "tilesetPath": TILESET_PATH,
            },
            "required": ["projectPath", "scenePath", "tilemapPath", "tilesetPath"],
        },
    ),
    Tool(
        name="paint_tiles",
        description="Paint tiles on a TileMap",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": SCENE_PATH,
                "tilemapPath": TILEMAP_PATH,
                "tiles": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "x": {"type": "integer", "description": "X coordinate of the tile"},
                            "y": {"type": "integer", "description": "Y coordinate of the tile"},
                            "sourceId": {"type": "integer", "description": "Source ID from the TileSet"},
                            "atlasX": {
                                "type": "integer",
                                "description": "X coordinate in the atlas (optional, default 0)",
                            },
                            "atlasY": {
                                "type": "integer",
                                "description": "Y coordinate in the atlas (optional, default 0)",
                            },
                            "alternativeTile": {
                                "type": "integer",
                                "description": "Alternative tile ID (optional, default 0)",
                            },
                        },
                        "required": ["x", "y", "sourceId"],
                    },
                    "description": "Array of tile data to paint",
                },
                "layer": {
                    "type": "integer",
                    "description": "TileMap layer to paint on (default 0)",
                    "default": 0,
                },
            },
            "required": ["projectPath", "scenePath", "tilemapPath", "tiles"],
        },
    ),
    Tool(
        name="add_tileset_source",
        description="Add a texture source to an existing TileSet",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "tilesetPath": TILESET_PATH,
                "texturePath": {
                    "type": "string",
                    "description": "Path to the texture file (relative to project)",
                },
                "sourceId": {
                    "type": "integer",
                    "description": "Source ID to assign (optional, auto-assigned if not provided)",
                },
                "textureRegionSize": _xy(
                    "Size of each tile region in the texture",
                    "Width of each tile in pixels",
                    "Height of each tile in pixels",
                ),
                "margins": _xy(
                    "Margins around the tile atlas",
                    "Left/right margin in pixels",
                    "Top/bottom margin in pixels",
                ),
                "separation": _xy(
                    "Separation between tiles in the atlas",
                    "Horizontal separation between tiles in pixels",
                    "Vertical separation between tiles in pixels",
                ),
                "autoCreateTiles": {
                    "type": "boolean",
                    "description": "Automatically create tiles based on texture dimensions",
                    "default": False,
                },
            },
            "required": ["projectPath", "tilesetPath", "texturePath"],
        },
    ),
    Tool(
        name="read_tilemap",
        description="Read the cells painted on the TileMaps of a scene",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "scenePath": SCENE_PATH,
                "tilemapPath": {
                    "type": "string",
                    "description": "Optional: Path to a single TileMap node",
                },
            },
            "required": ["projectPath", "scenePath"],
        },
    ),
    Tool(
        name="read_tileset",
        description="Read the sources and tiles of a TileSet resource",
        inputSchema={
            "type": "object",
            "properties": {
                "projectPath": PROJECT_PATH,
                "tilesetPath": TILESET_PATH,
            },
            "required": ["projectPath", "tilesetPath"],
        },
    ),
]
