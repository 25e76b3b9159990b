import os
import sys
from unittest.mock import AsyncMock, patch

import pytest

from godot_mcp_bridge.errors import ConfigurationError
from godot_mcp_bridge.godot_path import GodotPathManager, candidate_paths, fallback_paths

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="fake Godot is a POSIX shell wrapper")


def _manager(**kwargs) -> GodotPathManager:
    kwargs.setdefault("platform", "linux")
    kwargs.setdefault("environ", {})
    return GodotPathManager(**kwargs)


@pytest.mark.asyncio
async def test_validation_result_is_cached():
    manager = _manager()
    with patch.object(manager, "_path_exists", AsyncMock(return_value=True)), patch.object(
        manager, "_run_version_check", AsyncMock(return_value=True)
    ) as version_check:
        assert await manager.is_valid_godot_path("/custom/godot") is True
        assert await manager.is_valid_godot_path("/custom/godot") is True
    assert version_check.await_count == 1


@pytest.mark.asyncio
async def test_cached_false_is_not_rechecked():
    manager = _manager()
    exists = AsyncMock(return_value=False)
    version_check = AsyncMock(return_value=True)
    with patch.object(manager, "_path_exists", exists), patch.object(manager, "_run_version_check", version_check):
        assert await manager.is_valid_godot_path("/missing/godot") is False
        exists.return_value = True
        assert await manager.is_valid_godot_path("/missing/godot") is False
    assert exists.await_count == 1
    version_check.assert_not_awaited()


@pytest.mark.asyncio
async def test_bare_command_skips_existence_check():
    manager = _manager()
    exists = AsyncMock(return_value=False)
    with patch.object(manager, "_path_exists", exists), patch.object(
        manager, "_run_version_check", AsyncMock(return_value=True)
    ):
        assert await manager.is_valid_godot_path("godot") is True
    exists.assert_not_awaited()


@posix_only
@pytest.mark.asyncio
async def test_validates_real_executable(fake_godot):
    manager = _manager()
    assert await manager.is_valid_godot_path(fake_godot) is True
    os.remove(fake_godot)
    assert await manager.is_valid_godot_path(fake_godot) is True


@pytest.mark.asyncio
async def test_failed_version_query_is_invalid(tmp_path):
    not_godot = tmp_path / "godot.txt"
    not_godot.write_text("not executable")
    manager = _manager()
    assert await manager.is_valid_godot_path(str(not_godot)) is False
    assert manager.cached_result(str(not_godot)) is False


@posix_only
@pytest.mark.asyncio
async def test_detect_prefers_environment(fake_godot):
    manager = _manager(environ={"GODOT_PATH": fake_godot})
    with patch("godot_mcp_bridge.godot_path.candidate_paths", return_value=[]):
        assert await manager.detect_godot_path() == fake_godot
    assert manager.get_path() == fake_godot
    assert manager.validated


@posix_only
@pytest.mark.asyncio
async def test_detect_uses_platform_candidates(fake_godot):
    manager = _manager(environ={"GODOT_PATH": "/nowhere/godot"})
    with patch("godot_mcp_bridge.godot_path.candidate_paths", return_value=["/nowhere/else", fake_godot]):
        assert await manager.detect_godot_path() == fake_godot


@pytest.mark.asyncio
async def test_detect_strict_mode_raises():
    manager = _manager(strict_path_validation=True)
    with patch("godot_mcp_bridge.godot_path.candidate_paths", return_value=["/nowhere/godot"]):
        with pytest.raises(ConfigurationError):
            await manager.detect_godot_path()
    assert manager.get_path() is None


@posix_only
@pytest.mark.asyncio
async def test_detect_lenient_mode_falls_back():
    manager = _manager()
    with patch("godot_mcp_bridge.godot_path.candidate_paths", return_value=["/nowhere/godot"]):
        assert await manager.detect_godot_path() == "/usr/bin/godot"
    assert manager.get_path() == "/usr/bin/godot"


@posix_only
@pytest.mark.asyncio
async def test_set_godot_path(fake_godot, tmp_path):
    manager = _manager()
    assert await manager.set_godot_path(fake_godot) is True
    assert manager.get_path() == fake_godot

    assert await manager.set_godot_path(str(tmp_path / "missing")) is False
    assert await manager.set_godot_path("") is False
    assert manager.get_path() == fake_godot


def test_invalid_initial_path_is_dropped(tmp_path):
    assert _manager(initial_path=str(tmp_path / "missing")).get_path() is None
    assert _manager(initial_path="godot").get_path() == "godot"


@pytest.mark.asyncio
async def test_ensure_path_raises_when_unresolved():
    manager = _manager()
    with patch.object(manager, "detect_godot_path", AsyncMock(return_value=None)):
        with pytest.raises(ConfigurationError):
            await manager.ensure_path()


def test_candidate_paths_per_platform():
    linux = candidate_paths("linux", {"HOME": "/home/dev"})
    assert linux[0] == "godot"
    assert "/home/dev/.local/bin/godot" in linux
    assert "C:\\Program Files\\Godot\\Godot.exe" in candidate_paths("win32", {"USERPROFILE": "C:\\Users\\dev"})
    assert "/Applications/Godot.app/Contents/MacOS/Godot" in candidate_paths("darwin", {"HOME": "/Users/dev"})
    assert fallback_paths("win32") == ["C:\\Program Files\\Godot\\Godot.exe"]
