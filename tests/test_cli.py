"""Tests for the command-line interface (unii.cli).

Tests cover:
- KEY=VALUE and [COURSE:]NAME argument parsing
- course new / list / delete
- template new / list / render / check, including aliases
- Course resolution for render
- Exit codes and error reporting
- Settings file creation
"""

from __future__ import annotations

import argparse
from pathlib import Path

import pytest
import yaml

from unii.cli import build_parser, main, parse_context, parse_course_template
from unii.config import Settings
from unii.course.models import Course
from unii.template.models import TemplateScope


@pytest.fixture
def settings_file(settings: Settings, tmp_path: Path) -> Path:
    return settings.save(tmp_path / "settings.json")


@pytest.fixture
def run(settings_file: Path):
    """Invoke ``main`` against the temporary settings file."""

    def _run(*argv: str) -> int:
        return main(["--settings-file", str(settings_file), *argv])

    return _run


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


class TestParseContext:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("n=3", ("n", 3)),
            ("ratio=0.5", ("ratio", 0.5)),
            ("draft=true", ("draft", True)),
            ("items=[1, 2]", ("items", [1, 2])),
            ('meta={"a": "b"}', ("meta", {"a": "b"})),
            ('quoted="3"', ("quoted", "3")),
            ("title=Higher-order functions", ("title", "Higher-order functions")),
            ("empty=", ("empty", "")),
            ("eq=a=b", ("eq", "a=b")),
        ],
    )
    def test_values(self, raw, expected):
        assert parse_context(raw) == expected

    @pytest.mark.unit
    def test_missing_equals(self):
        with pytest.raises(argparse.ArgumentTypeError, match="missing '='"):
            parse_context("novalue")


class TestParseCourseTemplate:
    @pytest.mark.unit
    def test_plain_name(self):
        assert parse_course_template("lab") == (None, "lab")

    @pytest.mark.unit
    def test_qualified_name(self):
        assert parse_course_template("COMP1100:lab") == ("COMP1100", "lab")


class TestBuildParser:
    @pytest.mark.unit
    def test_context_collected(self):
        args = build_parser().parse_args(["template", "render", "lab", "n=1", "title=x"])
        assert args.name == (None, "lab")
        assert args.context == {"n": 1, "title": "x"}

    @pytest.mark.unit
    def test_no_context(self):
        args = build_parser().parse_args(["template", "render", "lab"])
        assert args.context == {}

    @pytest.mark.unit
    def test_duplicate_context_key_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["template", "render", "lab", "n=1", "n=2"])

    @pytest.mark.unit
    @pytest.mark.parametrize("alias", ["render", "generate", "gen", "run", "use", "make"])
    def test_render_aliases(self, alias):
        args = build_parser().parse_args(["template", alias, "lab", "-c", "COMP1100"])
        assert args.course_code == "COMP1100"
        assert args.handler.__name__ == "template_render"

    @pytest.mark.unit
    @pytest.mark.parametrize("flag", ["-c", "--course-code", "--course", "--code"])
    def test_course_code_flags(self, flag):
        args = build_parser().parse_args(["template", "render", "lab", flag, "MATH1013"])
        assert args.course_code == "MATH1013"

    @pytest.mark.unit
    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ---------------------------------------------------------------------------
# course
# ---------------------------------------------------------------------------


class TestCourseCommands:
    @pytest.mark.integration
    def test_new_and_list(self, run, settings, capsys):
        assert run("course", "new", "COMP1100", "--name", "Programming") == 0
        assert Course.open(settings, "COMP1100").name == "Programming"

        assert run("course", "ls") == 0
        out = capsys.readouterr().out
        assert "COMP1100" in out
        assert "Programming" in out

    @pytest.mark.integration
    def test_new_duplicate_fails(self, run, course, capsys):
        assert run("course", "add", "COMP1100") == 1
        assert "already exists" in capsys.readouterr().err

    @pytest.mark.integration
    def test_new_regex_mismatch_fails(self, tmp_path, capsys):
        settings_file = Settings(
            path=tmp_path / "unii", course_code_regex=r"[A-Z]{4}\d{4}"
        ).save(tmp_path / "strict.json")
        assert main(["-s", str(settings_file), "course", "new", "comp"]) == 1
        assert "did not match" in capsys.readouterr().err

    @pytest.mark.integration
    def test_list_missing_root(self, tmp_path, capsys):
        settings_file = Settings(path=tmp_path / "nowhere").save(tmp_path / "s.json")
        assert main(["-s", str(settings_file), "course", "list"]) == 0
        assert "No courses yet" in capsys.readouterr().out

    @pytest.mark.integration
    def test_list_reports_broken_course(self, run, settings, course, capsys):
        Course.create(settings, "MATH1013")
        settings.course_yaml_path("MATH1013").write_text("name: [oops\n", encoding="utf-8")

        assert run("course", "list") == 1

        captured = capsys.readouterr()
        assert "COMP1100" in captured.out
        assert "Error" in captured.err

    @pytest.mark.integration
    def test_delete_with_yes(self, run, settings, course):
        assert run("course", "rm", "COMP1100", "--yes") == 0
        assert Course.open(settings, "COMP1100") is None

    @pytest.mark.integration
    def test_delete_declined(self, run, settings, course, monkeypatch):
        monkeypatch.setattr("unii.cli.Confirm.ask", lambda *a, **kw: False)
        assert run("course", "delete", "COMP1100") == 1
        assert Course.open(settings, "COMP1100") is not None

    @pytest.mark.integration
    def test_delete_missing(self, run, capsys):
        assert run("course", "delete", "NOPE", "-y") == 1
        assert "does not exist" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# template new / list / check
# ---------------------------------------------------------------------------


class TestTemplateCommands:
    @pytest.mark.integration
    def test_new_global(self, run, settings):
        assert run("template", "new", "quiz", "--pluralized-name", "quizzes") == 0
        body = yaml.safe_load((settings.template_dir() / "quiz.yml").read_text(encoding="utf-8"))
        assert body["pluralized-name"] == "quizzes"

    @pytest.mark.integration
    def test_new_course_private(self, run, settings, course):
        assert run("template", "create", "COMP1100:lab") == 0
        assert settings.template_path(TemplateScope.course("COMP1100"), "lab").exists()
        assert not (settings.template_dir() / "lab.yml").exists()

    @pytest.mark.integration
    def test_new_in_unknown_course(self, run, capsys):
        assert run("template", "new", "NOPE:lab") == 1
        assert "does not exist" in capsys.readouterr().err

    @pytest.mark.integration
    @pytest.mark.parametrize("name", ["../../escaped", "a/b", ".."])
    def test_new_invalid_name(self, run, settings, name, capsys):
        assert run("template", "new", name) == 1
        assert "is invalid" in capsys.readouterr().err
        assert not (settings.path.parent / "escaped.yml").exists()
        assert not settings.template_dir().exists()

    @pytest.mark.integration
    def test_new_duplicate(self, run, widget, capsys):
        assert run("template", "new", "widget") == 1
        assert "already exists" in capsys.readouterr().err

    @pytest.mark.integration
    def test_list(self, run, widget, capsys):
        assert run("template", "ls") == 0
        out = capsys.readouterr().out
        assert "widget" in out
        assert "widgets" in out

    @pytest.mark.integration
    def test_list_without_templates(self, run, capsys):
        assert run("template", "list") == 0
        assert "No templates yet" in capsys.readouterr().out

    @pytest.mark.integration
    def test_list_course_scope(self, run, course, write_template, widget, capsys):
        write_template("lab", {"pluralized-name": "labs"}, TemplateScope.course("COMP1100"))
        assert run("template", "list", "--course", "COMP1100") == 0
        out = capsys.readouterr().out
        assert "lab" in out
        assert "widget" not in out

    @pytest.mark.integration
    def test_check_valid(self, run, widget, capsys):
        assert run("template", "check", "widget") == 0
        assert "is valid" in capsys.readouterr().out

    @pytest.mark.integration
    def test_check_empty_command(self, run, settings, capsys):
        assert run("template", "new", "blank") == 0
        assert run("template", "check", "blank") == 1
        assert "empty command" in capsys.readouterr().err

    @pytest.mark.integration
    def test_check_missing_template(self, run, capsys):
        assert run("template", "check", "ghost") == 1
        assert "'ghost' does not exist" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# template render
# ---------------------------------------------------------------------------


class TestTemplateRender:
    @pytest.mark.integration
    def test_global_template_into_course(self, run, settings, course, widget):
        assert run("template", "render", "widget", "name=widget", "-c", "COMP1100") == 0
        readme = settings.path / "COMP1100" / "widgets" / "widget" / "README.md"
        assert readme.read_text(encoding="utf-8") == "# widget"

    @pytest.mark.integration
    def test_course_template_renders_into_its_course(self, run, settings, course, write_template, widget_body):
        write_template("lab", {**widget_body, "pluralized-name": "labs"}, TemplateScope.course("COMP1100"))

        assert run("template", "gen", "COMP1100:lab", "name=lab1") == 0

        assert (course.dir(settings) / "labs" / "lab1" / "README.md").exists()

    @pytest.mark.integration
    def test_explicit_course_wins(self, run, settings, course, write_template, widget_body):
        other = Course.create(settings, "MATH1013")
        write_template("lab", {**widget_body, "pluralized-name": "labs"}, TemplateScope.course("COMP1100"))

        assert run("template", "render", "COMP1100:lab", "name=lab1", "-c", "MATH1013") == 0

        assert (other.dir(settings) / "labs" / "lab1").is_dir()
        assert not (course.dir(settings) / "labs").exists()

    @pytest.mark.integration
    def test_no_course_given(self, run, widget, capsys):
        assert run("template", "render", "widget", "name=x") == 1
        assert "No course to render into" in capsys.readouterr().err

    @pytest.mark.integration
    def test_unknown_target_course(self, run, widget, capsys):
        assert run("template", "render", "widget", "name=x", "-c", "NOPE") == 1
        assert "'NOPE' does not exist" in capsys.readouterr().err

    @pytest.mark.integration
    def test_unknown_template(self, run, course, capsys):
        assert run("template", "render", "COMP1100:ghost") == 1
        assert "'COMP1100:ghost' does not exist" in capsys.readouterr().err

    @pytest.mark.integration
    def test_unknown_context_key(self, run, settings, course, widget, capsys):
        assert run("template", "render", "widget", "name=x", "bogus=1", "-c", "COMP1100") == 1
        assert "'bogus'" in capsys.readouterr().err
        assert not (course.dir(settings) / "widgets").exists()

    @pytest.mark.integration
    def test_second_render_fails(self, run, course, widget, capsys):
        assert run("template", "render", "widget", "name=Widget", "-c", "COMP1100") == 0
        assert run("template", "render", "widget", "name=Widget", "-c", "COMP1100") == 1
        assert "'Widget' already exists" in capsys.readouterr().err

    @pytest.mark.integration
    def test_command_failure_reported(self, run, course, write_template, widget_body, capsys):
        write_template("widget", {**widget_body, "command": "echo nope >&2; exit 2"})
        assert run("template", "render", "widget", "name=w", "-c", "COMP1100") == 1
        err = capsys.readouterr().err
        assert "exit 2" in err
        assert "nope" in err

    @pytest.mark.integration
    def test_render_error_reported(self, run, course, write_template, widget_body, capsys):
        write_template("widget", {**widget_body, "directory-name": "{name | snake_case}"})
        assert run("template", "render", "widget", "name=3", "-c", "COMP1100") == 1
        assert "expected a string" in capsys.readouterr().err

    @pytest.mark.integration
    def test_expression_type_error_reported(self, run, settings, course, write_template, widget_body, capsys):
        write_template("widget", {**widget_body, "directory-name": "{name + 1}"})
        assert run("template", "render", "widget", "name=w", "-c", "COMP1100") == 1
        assert "Error" in capsys.readouterr().err
        assert not (course.dir(settings) / "widgets").exists()

    @pytest.mark.integration
    def test_dry_run_writes_nothing(self, run, settings, course, widget, capsys):
        assert run("template", "render", "widget", "name=widget", "-c", "COMP1100", "--dry-run") == 0
        out = capsys.readouterr().out
        assert "README.md" in out
        assert not (course.dir(settings) / "widgets").exists()

    @pytest.mark.integration
    def test_quiet(self, settings_file, course, widget, capsys):
        argv = ["-s", str(settings_file), "-q", "template", "render", "widget", "name=w", "-c", "COMP1100"]
        assert main(argv) == 0
        assert capsys.readouterr().out == ""


# ---------------------------------------------------------------------------
# Settings file
# ---------------------------------------------------------------------------


class TestSettingsFile:
    @pytest.mark.integration
    def test_default_settings_created(self, tmp_path, monkeypatch):
        monkeypatch.setenv("UNII_PATH", str(tmp_path / "data"))
        assert main(["course", "new", "COMP1100"]) == 0
        settings_file = tmp_path / "xdg-config" / "unii" / "settings.json"
        assert settings_file.exists()
        assert Settings.load(settings_file).path == tmp_path / "data"
        assert (tmp_path / "data" / "COMP1100" / ".unii" / "course.yml").exists()

    @pytest.mark.integration
    def test_settings_file_env_override(self, tmp_path, monkeypatch):
        target = tmp_path / "elsewhere.json"
        monkeypatch.setenv("UNII_SETTINGS_FILE", str(target))
        monkeypatch.setenv("UNII_PATH", str(tmp_path / "data"))
        assert main(["course", "new", "COMP1100"]) == 0
        assert target.exists()

    @pytest.mark.integration
    def test_invalid_regex_in_env(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("UNII_PATH", str(tmp_path / "data"))
        monkeypatch.setenv("UNII_COURSE_CODE_REGEX", "[unclosed")
        assert main(["course", "list"]) == 1
        assert "invalid course_code_regex" in capsys.readouterr().err

    @pytest.mark.integration
    def test_invalid_regex_in_settings_file(self, tmp_path, capsys):
        target = tmp_path / "settings.json"
        target.write_text(
            '{"path": "%s", "course_code_regex": "("}' % (tmp_path / "data").as_posix(),
            encoding="utf-8",
        )
        assert main(["-s", str(target), "course", "list"]) == 1
        assert "Error" in capsys.readouterr().err
