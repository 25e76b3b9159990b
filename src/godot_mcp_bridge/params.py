"""
Parameter name normalization between the public tool API and the
Godot operations script.

Tool callers may use either camelCase or snake_case keys. Handlers only ever
see camelCase; the operations script only ever sees snake_case.
"""

import re
from typing import Any, Union

ParamValue = Union[str, int, float, bool, None, dict[str, "ParamValue"], list["ParamValue"]]
Params = dict[str, ParamValue]

# snake_case (engine side) -> camelCase (tool API)
PARAMETER_MAPPINGS: dict[str, str] = {
    "project_path": "projectPath",
    "scene_path": "scenePath",
    "root_node_type": "rootNodeType",
    "parent_node_path": "parentNodePath",
    "node_type": "nodeType",
    "node_name": "nodeName",
    "texture_path": "texturePath",
    "node_path": "nodePath",
    "output_path": "outputPath",
    "mesh_item_names": "meshItemNames",
    "new_path": "newPath",
    "file_path": "filePath",
    "tilemap_name": "tilemapName",
    "tilemap_path": "tilemapPath",
    "tileset_path": "tilesetPath",
    "source_id": "sourceId",
    "texture_region_size": "textureRegionSize",
    "auto_create_tiles": "autoCreateTiles",
    "directory": "directory",
    "recursive": "recursive",
    "scene": "scene",
}

REVERSE_PARAMETER_MAPPINGS: dict[str, str] = {
    camel: snake for snake, camel in PARAMETER_MAPPINGS.items()
}

_SNAKE_BOUNDARY = re.compile(r"(?<=[a-z0-9])_([a-z])")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def snake_to_camel(key: str) -> str:
    """Convert ``node_name`` to ``nodeName``; other keys are left alone."""
    return _SNAKE_BOUNDARY.sub(lambda m: m.group(1).upper(), key)


def camel_to_snake(key: str) -> str:
    """Convert ``nodeName`` to ``node_name`` by inserting word boundaries."""
    return _CAMEL_BOUNDARY.sub(lambda m: "_" + m.group(1).lower(), key)


def _internal_key(key: str) -> str:
    if key in PARAMETER_MAPPINGS:
        return PARAMETER_MAPPINGS[key]
    return snake_to_camel(key)


def _external_key(key: str) -> str:
    if key in REVERSE_PARAMETER_MAPPINGS:
        return REVERSE_PARAMETER_MAPPINGS[key]
    return camel_to_snake(key)


def _convert(params: Any, convert_key) -> Any:
    if not isinstance(params, dict):
        return params

    result: Params = {}
    for key, value in params.items():
        # Lists are passed through untouched; only mapping keys are renamed.
        if isinstance(value, dict):
            value = _convert(value, convert_key)
        result[convert_key(key)] = value
    return result


def to_internal(params: Any) -> Any:
    """Normalize inbound tool arguments to the camelCase convention."""
    return _convert(params, _internal_key)


def to_external(params: Any) -> Any:
    """Convert camelCase parameters to the snake_case the script expects."""
    return _convert(params, _external_key)
