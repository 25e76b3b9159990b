from godot_mcp_bridge import project


def test_validate_path_accepts_safe_paths():
    assert project.validate_path("projects/sample")
    assert project.validate_path("res://scenes/main.tscn")
    assert project.validate_path("C:\\Games\\My Game")
    assert project.validate_path("levels/boss..final.tscn")


def test_validate_path_rejects_traversal():
    assert not project.validate_path("../outside")
    assert not project.validate_path("nested/../../escape")
    assert not project.validate_path("nested\\..\\escape")
    assert not project.validate_path("..")
    assert not project.validate_path("")
    assert not project.validate_path(None)
    assert not project.validate_path(5)


def test_version_gate():
    assert project.is_version_at_least("4.4")
    assert project.is_version_at_least("4.5.1")
    assert project.is_version_at_least("5.0")
    assert project.is_version_at_least("4.4.stable.official.4c311cbee")
    assert not project.is_version_at_least("4.3")
    assert not project.is_version_at_least("3.5")
    assert not project.is_version_at_least("invalid")


def test_is_valid_godot_project(godot_project, tmp_path):
    assert project.is_valid_godot_project(str(godot_project))
    assert not project.is_valid_godot_project(str(tmp_path))


def test_find_projects_immediate_children(tmp_path, godot_project):
    nested = tmp_path / "group" / "inner_game"
    nested.mkdir(parents=True)
    (nested / "project.godot").write_text("")

    found = project.find_godot_projects(str(tmp_path))
    assert found == [{"path": str(godot_project), "name": "my_game"}]


def test_find_projects_recursive_skips_hidden(tmp_path, godot_project):
    nested = tmp_path / "group" / "inner_game"
    nested.mkdir(parents=True)
    (nested / "project.godot").write_text("")
    hidden = tmp_path / ".cache" / "hidden_game"
    hidden.mkdir(parents=True)
    (hidden / "project.godot").write_text("")

    names = sorted(p["name"] for p in project.find_godot_projects(str(tmp_path), recursive=True))
    assert names == ["inner_game", "my_game"]


def test_find_projects_missing_directory(tmp_path):
    assert project.find_godot_projects(str(tmp_path / "missing")) == []


def test_project_structure(godot_project):
    (godot_project / ".godot").mkdir()
    (godot_project / ".godot" / "cache.bin").write_bytes(b"")
    structure = project.get_project_structure(str(godot_project))
    assert structure == {"scenes": 1, "scripts": 1, "assets": 1, "other": 1}


def test_project_structure_missing_directory(tmp_path):
    structure = project.get_project_structure(str(tmp_path / "missing"))
    assert structure["error"] == "Failed to get project structure"


def test_project_name(godot_project, tmp_path):
    assert project.get_project_name(str(godot_project)) == "My Game"
    plain = tmp_path / "plain_game"
    plain.mkdir()
    assert project.get_project_name(str(plain)) == "plain_game"
