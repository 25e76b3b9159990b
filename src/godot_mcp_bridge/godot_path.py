"""
Godot executable discovery and validation.
"""

import asyncio
import logging
import os
import sys
from typing import Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

BARE_COMMAND = "godot"
VALIDATION_TIMEOUT = 10.0


def candidate_paths(platform: Optional[str] = None, environ: Optional[dict] = None) -> list[str]:
    """Conventional install locations, in the order they are tried."""
    platform = platform or sys.platform
    env = os.environ if environ is None else environ
    home = env.get("HOME", "")

    paths = [BARE_COMMAND]
    if platform == "darwin":
        paths += [
            "/Applications/Godot.app/Contents/MacOS/Godot",
            "/Applications/Godot_mono.app/Contents/MacOS/Godot",
            "/Applications/Godot_4.app/Contents/MacOS/Godot",
            f"{home}/Applications/Godot.app/Contents/MacOS/Godot",
            f"{home}/Applications/Godot_mono.app/Contents/MacOS/Godot",
            f"{home}/Applications/Godot_4.app/Contents/MacOS/Godot",
            f"{home}/Library/Application Support/Steam/steamapps/common/Godot Engine/Godot.app/Contents/MacOS/Godot",
        ]
    elif platform == "win32":
        profile = env.get("USERPROFILE", "")
        paths += [
            "C:\\Program Files\\Godot\\Godot.exe",
            "C:\\Program Files (x86)\\Godot\\Godot.exe",
            "C:\\Program Files\\Godot_4\\Godot.exe",
            "C:\\Program Files (x86)\\Godot_4\\Godot.exe",
            f"{profile}\\Godot\\Godot.exe",
        ]
    elif platform.startswith("linux"):
        paths += [
            "/usr/bin/godot",
            "/usr/local/bin/godot",
            "/snap/bin/godot",
            f"{home}/.local/bin/godot",
        ]
    return paths


def fallback_paths(platform: Optional[str] = None) -> list[str]:
    """Defaults used in lenient mode when nothing validates."""
    platform = platform or sys.platform
    if platform == "win32":
        return ["C:\\Program Files\\Godot\\Godot.exe"]
    if platform == "darwin":
        return [
            "/Applications/Godot.app/Contents/MacOS/Godot",
            "/Applications/Godot_mono.app/Contents/MacOS/Godot",
        ]
    return ["/usr/bin/godot"]


class GodotPathManager:
    """
    Owns the resolved Godot executable path and the validation cache.

    Validation results are cached per exact path string and never
    re-checked, including negative results.
    """

    def __init__(
        self,
        initial_path: Optional[str] = None,
        strict_path_validation: bool = False,
        platform: Optional[str] = None,
        environ: Optional[dict] = None,
        validation_timeout: float = VALIDATION_TIMEOUT,
    ):
        self.strict_path_validation = strict_path_validation
        self.platform = platform or sys.platform
        self.environ = os.environ if environ is None else environ
        self.validation_timeout = validation_timeout
        self._validated: dict[str, bool] = {}
        self._path: Optional[str] = None

        if initial_path:
            path = os.path.normpath(initial_path)
            if path == BARE_COMMAND or os.path.exists(path):
                self._path = path
            else:
                logger.warning("Invalid custom Godot path provided: %s", path)

    def get_path(self) -> Optional[str]:
        return self._path

    @property
    def validated(self) -> bool:
        return self._path is not None and self._validated.get(self._path, False)

    def cached_result(self, path: str) -> Optional[bool]:
        return self._validated.get(path)

    async def _path_exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def _run_version_check(self, path: str) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                path,
                "--version",
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.debug("Invalid Godot path: %s, error: %s", path, e)
            return False

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.validation_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.debug("Version check timed out for %s", path)
            return False

        if proc.returncode != 0:
            logger.debug("Version check for %s exited with %s", path, proc.returncode)
            return False
        logger.debug("Godot at %s reports version %s", path, stdout.decode(errors="replace").strip())
        return True

    async def is_valid_godot_path(self, path: str) -> bool:
        """Check that ``path`` exists and answers ``--version``. Results are cached."""
        cached = self._validated.get(path)
        if cached is not None:
            return cached

        logger.debug("Validating Godot path: %s", path)
        if path != BARE_COMMAND and not await self._path_exists(path):
            logger.debug("Path does not exist: %s", path)
            self._validated[path] = False
            return False

        valid = await self._run_version_check(path)
        self._validated[path] = valid
        if valid:
            logger.debug("Valid Godot path: %s", path)
        return valid

    async def detect_godot_path(self) -> Optional[str]:
        """
        Resolve the Godot executable.

        Tries the current path, then GODOT_PATH, then the platform's usual
        install locations.

        Raises:
            ConfigurationError: In strict mode, when nothing validates
        """
        if self._path and await self.is_valid_godot_path(self._path):
            logger.debug("Using existing Godot path: %s", self._path)
            return self._path

        env_path = self.environ.get("GODOT_PATH")
        if env_path:
            path = os.path.normpath(env_path)
            logger.debug("Checking GODOT_PATH environment variable: %s", path)
            if await self.is_valid_godot_path(path):
                self._path = path
                logger.debug("Using Godot path from environment: %s", path)
                return path
            logger.debug("GODOT_PATH environment variable is invalid")

        logger.debug("Auto-detecting Godot path for platform: %s", self.platform)
        for candidate in candidate_paths(self.platform, self.environ):
            path = os.path.normpath(candidate)
            if await self.is_valid_godot_path(path):
                self._path = path
                logger.debug("Found Godot at: %s", path)
                return path

        logger.warning("Could not find Godot in common locations for %s", self.platform)
        logger.warning(
            "Set GODOT_PATH=/path/to/godot or provide a valid path in config to specify the correct path."
        )
        if self.strict_path_validation:
            raise ConfigurationError(
                "Could not find a valid Godot executable. Set GODOT_PATH or provide a valid path in config.",
                [
                    "Ensure Godot is installed correctly",
                    "Set GODOT_PATH environment variable to specify the correct path",
                ],
            )

        fallbacks = fallback_paths(self.platform)
        selected = fallbacks[0]
        for candidate in fallbacks:
            if await self._path_exists(candidate):
                selected = candidate
                break
        self._path = os.path.normpath(selected)
        logger.warning("Using default path: %s, but this may not work.", self._path)
        logger.warning("Enable strict_path_validation to fail instead of falling back.")
        return self._path

    async def set_godot_path(self, custom_path: str) -> bool:
        """Validate and adopt ``custom_path``; state is unchanged on failure."""
        if not custom_path:
            return False
        path = os.path.normpath(custom_path)
        if await self.is_valid_godot_path(path):
            self._path = path
            logger.debug("Godot path set to: %s", path)
            return True
        logger.debug("Failed to set invalid Godot path: %s", path)
        return False

    async def ensure_path(self) -> str:
        """Return the resolved path, detecting it first if needed."""
        if self._path is None:
            await self.detect_godot_path()
        if self._path is None:
            raise ConfigurationError(
                "Could not find a valid Godot executable path",
                [
                    "Ensure Godot is installed correctly",
                    "Set GODOT_PATH environment variable to specify the correct path",
                ],
            )
        return self._path
