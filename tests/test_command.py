import json
import shlex
import sys

import pytest

from godot_mcp_bridge.command import (
    DEBUG_GODOT_FLAG,
    build_operation_command,
    build_version_command,
    quote_params,
    quote_windows_argument,
)
from godot_mcp_bridge.process import ProcessOrchestrator

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell wrapper")


def _build(params, **kwargs):
    kwargs.setdefault("platform", "linux")
    kwargs.setdefault("debug", False)
    return build_operation_command(
        "add_node",
        params,
        "/home/dev/My Game",
        "/opt/Godot 4/godot",
        "/srv/scripts/godot_operations.gd",
        **kwargs,
    )


def test_posix_command_layout():
    tokens = shlex.split(_build({"scene_path": "main.tscn"}))
    assert tokens == [
        "/opt/Godot 4/godot",
        "--headless",
        "--path",
        "/home/dev/My Game",
        "--script",
        "/srv/scripts/godot_operations.gd",
        "add_node",
        '{"scene_path":"main.tscn"}',
    ]


def test_posix_quoting_reconstructs_embedded_single_quotes():
    params = {"node_name": "Player's Sprite", "properties": {"text": "it's 'quoted'"}}
    tokens = shlex.split(_build(params))
    assert tokens[7] == json.dumps(params, separators=(",", ":"))
    assert json.loads(tokens[7]) == params


def test_posix_quoting_neutralizes_shell_metacharacters():
    params = {"node_name": "$(rm -rf /); `id` && echo"}
    tokens = shlex.split(_build(params))
    assert len(tokens) == 8
    assert json.loads(tokens[7]) == params


def test_posix_single_quote_escape_form():
    assert quote_params({"a": "b'c"}, platform="linux") == """'{"a":"b'\\''c"}'"""


def test_windows_quoting_uses_escaped_double_quotes():
    quoted = quote_params({"scene_path": "main.tscn"}, platform="win32")
    assert quoted == '"{\\"scene_path\\":\\"main.tscn\\"}"'


def test_windows_quoting_doubles_backslashes_before_quotes():
    # JSON for a value containing a double quote: "a\"b"
    assert quote_windows_argument('"a\\"b"') == '"\\"a\\\\\\"b\\""'
    assert quote_windows_argument("C:\\dir\\") == '"C:\\dir\\\\"'


def test_windows_paths_are_double_quoted():
    command = build_operation_command(
        "save_scene",
        {},
        "C:\\Projects\\My Game",
        "C:\\Program Files\\Godot\\Godot.exe",
        "C:\\scripts\\godot_operations.gd",
        platform="win32",
        debug=False,
    )
    assert command.startswith('"C:\\Program Files\\Godot\\Godot.exe" --headless --path "C:\\Projects\\My Game"')
    assert command.endswith('save_scene "{}"')


def test_debug_flag_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GODOT_DEBUG_MODE", "true")
    assert _build({}, debug=None).endswith(DEBUG_GODOT_FLAG)
    monkeypatch.setenv("GODOT_DEBUG_MODE", "false")
    assert DEBUG_GODOT_FLAG not in _build({}, debug=None)


def test_debug_flag_forced():
    assert shlex.split(_build({}, debug=True))[-1] == DEBUG_GODOT_FLAG


def test_version_command():
    assert build_version_command("godot") == "godot --version"
    assert build_version_command("/opt/Godot 4/godot", platform="linux") == '"/opt/Godot 4/godot" --version'


@posix_only
@pytest.mark.asyncio
async def test_shell_passes_json_through_unchanged(fake_godot, tmp_path):
    params = {"node_name": "Bob's \"Node\"", "properties": {"text": "a\\b $HOME `x`"}}
    command = build_operation_command(
        "add_node", params, str(tmp_path / "my game"), fake_godot, "/opt/ops.gd", debug=False
    )

    result = await ProcessOrchestrator().run_command(command, timeout=30)

    assert result.returncode == 0, result.stderr
    argv = json.loads(result.stdout.strip().splitlines()[-1])["argv"]
    assert argv[:6] == ["--headless", "--path", str(tmp_path / "my game"), "--script", "/opt/ops.gd", "add_node"]
    assert json.loads(argv[6]) == params


def test_windows_quoting_escapes_metacharacters_outside_cmd_quotes():
    # cmd.exe leaves its quote state before "b&c", so the ampersand needs a caret
    assert quote_params({"a": "b&c"}, platform="win32") == '"{\\"a\\":\\"b^&c\\"}"'
    assert quote_params({"a": "x|y>z%PATH%"}, platform="win32") == '"{\\"a\\":\\"x^|y^>z^%PATH^%\\"}"'


def test_windows_quoting_leaves_metacharacters_inside_cmd_quotes():
    assert quote_windows_argument("Tom & Jerry") == '"Tom & Jerry"'
