"""Shared pytest fixtures for the unii test suite.

Provides reusable fixtures for:
- An isolated environment (no real home or config directory is touched)
- Settings rooted in a temporary directory
- A course to render into
- Writing template definition files
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from unii.config import Settings
from unii.course.models import Course
from unii.template.models import GLOBAL, Template, TemplateScope


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep every test away from the user's real settings and data."""
    for var in ("UNII_PATH", "UNII_SETTINGS_FILE", "UNII_COURSE_CODE_REGEX"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


# ---------------------------------------------------------------------------
# Settings & courses
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings whose storage root is a fresh temporary directory."""
    root = tmp_path / "unii"
    root.mkdir()
    return Settings(path=root)


@pytest.fixture
def course(settings: Settings) -> Course:
    """An existing course to render templates into."""
    return Course.create(settings, "COMP1100", "Programming as Problem Solving")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

@pytest.fixture
def write_template(settings: Settings) -> Callable[..., Template]:
    """Write a template definition file and return it re-opened from disk.

    Usage::

        template = write_template("widget", {"pluralized-name": "widgets", ...})
    """

    def _write(name: str, body: dict[str, Any], scope: TemplateScope = GLOBAL) -> Template:
        path = settings.template_path(scope, name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(body, sort_keys=False), encoding="utf-8")
        template = Template.open(settings, name, scope)
        assert template is not None
        return template

    return _write


@pytest.fixture
def widget_body() -> dict[str, Any]:
    """The single-file template used throughout the render scenarios."""
    return {
        "pluralized-name": "widgets",
        "context-parameters": ["name"],
        "directory-name": "{name}",
        "files": {"README.md": "# {name}"},
        "command": "true",
    }


@pytest.fixture
def widget(write_template, widget_body) -> Template:
    return write_template("widget", widget_body)
