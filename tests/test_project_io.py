"""Tests for project/io.py and project/schema.py modules."""

import json

import pytest
from pydantic import ValidationError

from incbuild.errors import ProjectLoadError
from incbuild.project.io import load_project
from incbuild.project.schema import ProjectSchema, SubprojectSchema


class TestProjectSchema:
    """Tests for ProjectSchema validation."""

    def test_defaults(self):
        project = ProjectSchema(name="irc")
        assert project.root_source == "lib.rs"
        assert project.docs is True
        assert project.effective_test_binary == "test-irc"
        assert project.effective_search_paths == []

    def test_subproject_dir_is_search_path(self):
        project = ProjectSchema(
            name="irc",
            search_paths=["vendor"],
            subproject=SubprojectSchema(path="deps/sub", artifact="libsub.rlib"),
        )
        assert project.effective_search_paths == ["vendor", "deps/sub"]

    def test_rejects_bad_name(self):
        with pytest.raises(ValidationError, match="alphanumeric"):
            ProjectSchema(name="has space")

    def test_rejects_absolute_root(self):
        with pytest.raises(ValidationError, match="relative"):
            ProjectSchema(name="irc", root_source="/src/lib.rs")

    def test_rejects_escaping_paths(self):
        with pytest.raises(ValidationError, match="must not leave"):
            SubprojectSchema(path="../elsewhere", artifact="liba.rlib")

    def test_rejects_library_with_directory(self):
        with pytest.raises(ValidationError, match="plain file name"):
            ProjectSchema(name="irc", library="out/libirc.rlib")

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            ProjectSchema(name="irc", colour="blue")


class TestLoadProject:
    """Tests for load_project function."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "incbuild.yaml"
        path.write_text(
            "name: irc\n"
            "crate_name: irc\n"
            "example:\n"
            "  source: example/example.rs\n"
            "  output: example/ircbot\n"
            "subproject:\n"
            "  path: deps/sub\n"
            "  artifact: libsub.rlib\n"
        )
        project = load_project(path)
        assert project.example is not None
        assert project.example.output == "example/ircbot"
        assert project.subproject.probe_command == ["make", "-q"]

    def test_load_json(self, tmp_path):
        path = tmp_path / "incbuild.json"
        path.write_text(json.dumps({"name": "irc", "docs": False}))
        assert load_project(path).docs is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProjectLoadError) as exc_info:
            load_project(tmp_path / "incbuild.yaml")
        assert exc_info.value.code == "project_not_found"

    def test_unsupported_extension(self, tmp_path):
        with pytest.raises(ProjectLoadError, match="Unsupported file extension"):
            load_project(tmp_path / "incbuild.toml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "incbuild.yaml"
        path.write_text("name: [unclosed\n")
        with pytest.raises(ProjectLoadError, match="Cannot parse") as exc_info:
            load_project(path)
        assert exc_info.value.code == "project_invalid"

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "incbuild.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ProjectLoadError, match="Expected a YAML mapping"):
            load_project(path)

    def test_validation_error(self, tmp_path):
        path = tmp_path / "incbuild.yaml"
        path.write_text("name: irc\nroot_source: /abs/lib.rs\n")
        with pytest.raises(ProjectLoadError, match="Invalid project file"):
            load_project(path)
