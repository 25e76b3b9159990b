import sys
from pathlib import Path

import pytest

from godot_mcp_bridge.executor import OperationExecutor
from godot_mcp_bridge.godot_path import GodotPathManager
from godot_mcp_bridge.handlers import ToolHandlers
from godot_mcp_bridge.process import CommandResult, ProcessOrchestrator

# Stand-in for the Godot binary. Prints its version, echoes its arguments
# as JSON for operations, and keeps running in debug (-d) mode.
FAKE_GODOT_SOURCE = '''
import json
import sys
import time

args = sys.argv[1:]
if args == ["--version"]:
    print("4.4.stable.official.4c311cbee")
    sys.exit(0)
if "-d" in args:
    print("running " + " ".join(args), flush=True)
    print("engine warning", file=sys.stderr, flush=True)
    time.sleep(60)
    sys.exit(0)
if "fail_op" in args:
    print("Failed to load scene", file=sys.stderr)
    sys.exit(0)
print("Godot Engine v4.4.stable.official - https://godotengine.org")
print(json.dumps({"argv": args}))
'''


@pytest.fixture
def fake_godot(tmp_path: Path) -> str:
    """An executable named ``godot`` that behaves like a tiny Godot."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    source = bin_dir / "fake_godot.py"
    source.write_text(FAKE_GODOT_SOURCE)
    wrapper = bin_dir / "godot"
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{source}" "$@"\n')
    wrapper.chmod(0o755)
    return str(wrapper)


@pytest.fixture
def godot_project(tmp_path: Path) -> Path:
    project = tmp_path / "my_game"
    (project / "scenes").mkdir(parents=True)
    (project / "scripts").mkdir()
    (project / "project.godot").write_text(
        '[application]\n\nconfig/name="My Game"\nrun/main_scene="res://scenes/main.tscn"\n'
    )
    (project / "scenes" / "main.tscn").write_text("[gd_scene format=3]\n")
    (project / "scripts" / "player.gd").write_text("extends Node2D\n")
    (project / "icon.png").write_bytes(b"\x89PNG")
    return project


class FakeExecutor:
    """Records operation requests instead of running Godot."""

    def __init__(self, result: CommandResult = None, version: str = "4.4.stable"):
        self.result = result or CommandResult(stdout="done\n", stderr="", returncode=0)
        self.version = version
        self.requests = []
        self.version_queries = 0

    async def execute(self, request, timeout=None):
        self.requests.append(request)
        return self.result

    async def query_version(self, timeout=None):
        self.version_queries += 1
        return CommandResult(stdout=self.version + "\n", stderr="", returncode=0)


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def handlers(fake_executor: FakeExecutor) -> ToolHandlers:
    return ToolHandlers(GodotPathManager(), fake_executor, ProcessOrchestrator())


@pytest.fixture
def live_handlers(fake_godot: str, monkeypatch: pytest.MonkeyPatch) -> ToolHandlers:
    """Handlers wired to real components and the fake Godot binary."""
    monkeypatch.delenv("GODOT_DEBUG_MODE", raising=False)
    path_manager = GodotPathManager(initial_path=fake_godot)
    orchestrator = ProcessOrchestrator(kill_grace=2.0)
    executor = OperationExecutor(path_manager, orchestrator, operations_script_path="/opt/godot_operations.gd")
    return ToolHandlers(path_manager, executor, orchestrator)
