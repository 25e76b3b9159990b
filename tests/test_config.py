import json

import pytest

from godot_mcp_bridge.config import ServerConfig, load_config, parse_json_config
from godot_mcp_bridge.errors import ConfigurationError


def test_defaults():
    config = load_config([], environ={})
    assert config == ServerConfig()
    assert config.godot_path is None
    assert config.strict_path_validation is False
    assert config.godot_debug_mode is None


def test_command_line_flags():
    config = load_config(
        ["--godot-path", "/opt/godot", "--strict-path-validation", "--debug", "--godot-debug"],
        environ={},
    )
    assert config.godot_path == "/opt/godot"
    assert config.strict_path_validation is True
    assert config.debug_mode is True
    assert config.godot_debug_mode is True


def test_camel_case_flag_alias():
    assert load_config(["--godotPath=/opt/godot"], environ={}).godot_path == "/opt/godot"


def test_environment_json_with_camel_case_keys():
    env = {"MCP_CONFIG": json.dumps({"godotPath": "/env/godot", "strictPathValidation": "true"})}
    config = load_config([], environ=env)
    assert config.godot_path == "/env/godot"
    assert config.strict_path_validation is True


def test_later_sources_override_earlier_ones():
    env = {
        "MCP_ARGUMENT_CONFIG": json.dumps({"godotPath": "/first", "debugMode": True}),
        "MCP_CONFIG": json.dumps({"godotPath": "/second"}),
    }
    config = load_config(["--config", json.dumps({"godot_path": "/third"})], environ=env)
    assert config.godot_path == "/third"
    assert config.debug_mode is True

    config = load_config(["--config", '{"godotPath": "/third"}', "--godot-path", "/fourth"], environ=env)
    assert config.godot_path == "/fourth"


def test_blank_path_clears_value():
    env = {"MCP_ARGUMENT_CONFIG": json.dumps({"godotPath": "/first"})}
    config = load_config(["--config", '{"godotPath": "  "}'], environ=env)
    assert config.godot_path is None


def test_debug_environment_variable():
    assert load_config([], environ={"DEBUG": "true"}).debug_mode is True
    assert load_config([], environ={"DEBUG": "no"}).debug_mode is False


def test_unknown_arguments_are_ignored():
    assert load_config(["--stdio"], environ={}) == ServerConfig()


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "42"])
def test_invalid_json_config(raw):
    with pytest.raises(ConfigurationError):
        parse_json_config(raw)
    with pytest.raises(ConfigurationError):
        load_config([], environ={"MCP_CONFIG": raw})


def test_invalid_value_type():
    with pytest.raises(ConfigurationError):
        load_config(["--config", '{"strictPathValidation": "sometimes"}'], environ={})
