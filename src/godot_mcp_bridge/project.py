"""
Helpers for Godot project directories: validation, discovery and a rough
content summary.
"""

import logging
import os
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

PROJECT_MARKER = "project.godot"

SCENE_EXTENSIONS = {"tscn"}
SCRIPT_EXTENSIONS = {"gd", "gdscript", "cs"}
ASSET_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "svg", "ttf", "wav", "mp3", "ogg"}

_PATH_SEPARATORS = re.compile(r"[\\/]")
_PROJECT_NAME = re.compile(r'config/name="([^"]+)"')
_VERSION_PREFIX = re.compile(r"^(\d+)\.(\d+)")


def validate_path(path: Optional[str]) -> bool:
    """Reject empty paths and anything with a parent-directory segment."""
    if not isinstance(path, str) or not path:
        return False
    return ".." not in _PATH_SEPARATORS.split(path)


def is_valid_godot_project(project_path: str) -> bool:
    return os.path.isfile(os.path.join(project_path, PROJECT_MARKER))


def find_godot_projects(directory: str, recursive: bool = False) -> list[dict[str, str]]:
    """
    Find Godot projects in ``directory``.

    The directory itself and its immediate children are checked; with
    ``recursive`` the search continues below children that are not projects.
    Hidden directories are skipped when recursing.
    """
    projects = []

    try:
        if is_valid_godot_project(directory):
            projects.append({"path": directory, "name": os.path.basename(os.path.normpath(directory))})

        with os.scandir(directory) as entries:
            subdirs = sorted((e for e in entries if e.is_dir()), key=lambda e: e.name)
        for entry in subdirs:
            if recursive and entry.name.startswith("."):
                continue
            subdir = os.path.join(directory, entry.name)
            if is_valid_godot_project(subdir):
                projects.append({"path": subdir, "name": entry.name})
            elif recursive:
                projects.extend(find_godot_projects(subdir, recursive=True))
    except OSError as e:
        logger.debug("Error searching directory %s: %s", directory, e)

    return projects


def get_project_structure(project_path: str) -> dict[str, Any]:
    """Count scenes, scripts, assets and other files below ``project_path``."""
    structure: dict[str, Any] = {"scenes": 0, "scripts": 0, "assets": 0, "other": 0}

    try:
        for _, dirs, files in os.walk(project_path, onerror=_raise):
            dirs[:] = [d for d in dirs if not d.startswith(".")]
            for name in files:
                if name.startswith("."):
                    continue
                ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
                if ext in SCENE_EXTENSIONS:
                    structure["scenes"] += 1
                elif ext in SCRIPT_EXTENSIONS:
                    structure["scripts"] += 1
                elif ext in ASSET_EXTENSIONS:
                    structure["assets"] += 1
                else:
                    structure["other"] += 1
    except OSError as e:
        logger.debug("Error getting project structure: %s", e)
        return {"error": "Failed to get project structure", "scenes": 0, "scripts": 0, "assets": 0, "other": 0}

    return structure


def _raise(error: OSError) -> None:
    raise error


def get_project_name(project_path: str) -> str:
    """Read ``config/name`` from project.godot, defaulting to the directory name."""
    name = os.path.basename(os.path.normpath(project_path))
    try:
        with open(os.path.join(project_path, PROJECT_MARKER), encoding="utf-8") as f:
            match = _PROJECT_NAME.search(f.read())
    except OSError as e:
        logger.debug("Error reading project file: %s", e)
        return name
    if match:
        name = match.group(1)
        logger.debug("Found project name in config: %s", name)
    return name


def parse_version(version: str) -> Optional[tuple[int, int]]:
    match = _VERSION_PREFIX.match(version.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def is_version_at_least(version: str, minimum: tuple[int, int] = (4, 4)) -> bool:
    """True if ``version`` starts with a ``major.minor`` at or above ``minimum``."""
    parsed = parse_version(version)
    return parsed is not None and parsed >= minimum
