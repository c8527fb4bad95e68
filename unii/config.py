"""unii configuration.

Typed settings for the whole tool. ``Settings`` is a Pydantic v2 model so it is
validated at construction time and serialised to/from JSON without
boiler-plate.  An instance is created once by the CLI entry point and then
passed explicitly to every component that needs a base path.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, field_validator

from unii.errors import CourseCodeDidNotMatchRegex

if TYPE_CHECKING:
    from unii.template.models import TemplateScope


TEMPLATE_EXTENSION = "yml"
COURSE_RECORD = "course.yml"
UNII_DIR = ".unii"


def default_config_dir() -> Path:
    """Directory holding the settings file (``$XDG_CONFIG_HOME/unii``)."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "unii"


def default_settings_file() -> Path:
    """Settings file location, honouring ``UNII_SETTINGS_FILE``."""
    override = os.environ.get("UNII_SETTINGS_FILE")
    if override:
        return Path(override)
    return default_config_dir() / "settings.json"


def _default_path() -> Path:
    return Path.home() / "unii"


class Settings(BaseModel):
    """Global unii settings.

    Holds the root storage path and derives every other location from it:

    * ``<path>/templates/<name>.yml`` -- global templates
    * ``<path>/<code>/`` -- a course, with its record and private templates
      under ``<path>/<code>/.unii/``
    """

    path: Path = Field(default_factory=_default_path)
    course_code_regex: Optional[str] = Field(
        default=None,
        description="Pattern every new course code must fully match",
    )

    @field_validator("course_code_regex")
    @classmethod
    def _regex_compiles(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid course_code_regex: {exc}") from exc
        return value

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    def template_dir(self) -> Path:
        """Directory of the global templates."""
        return self.path / "templates"

    def course_dir(self, code: str) -> Path:
        return self.path / code

    def course_unii_dir(self, code: str) -> Path:
        """Per-course metadata directory (``<course>/.unii``)."""
        return self.course_dir(code) / UNII_DIR

    def course_template_dir(self, code: str) -> Path:
        """Directory of the templates private to one course."""
        return self.course_unii_dir(code) / "templates"

    def course_yaml_path(self, code: str) -> Path:
        return self.course_unii_dir(code) / COURSE_RECORD

    def template_path(self, scope: "TemplateScope", name: str) -> Path:
        """Definition file of template *name* within *scope*."""
        return scope.template_dir(self) / f"{name}.{TEMPLATE_EXTENSION}"

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_course_code(self, code: str) -> None:
        """Raise ``CourseCodeDidNotMatchRegex`` if *code* fails the configured pattern."""
        if self.course_code_regex is None:
            return
        if re.fullmatch(self.course_code_regex, code) is None:
            raise CourseCodeDidNotMatchRegex(code, self.course_code_regex)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the settings to a JSON file, creating parent directories.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Settings":
        """Load and validate settings from a JSON file."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def try_open_from(cls, path: Path) -> Optional["Settings"]:
        """Load settings from *path*, or return ``None`` if the file is absent."""
        if not Path(path).exists():
            return None
        return cls.load(path)

    @classmethod
    def open_or_create_default_at(cls, path: Path) -> "Settings":
        """Load settings from *path*, writing the defaults there first if missing.

        Defaults come from :meth:`from_env`, so ``UNII_PATH`` applies to a
        freshly created settings file.
        """
        settings = cls.try_open_from(path)
        if settings is not None:
            return settings
        settings = cls.from_env()
        settings.save(path)
        return settings

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional): UNII_PATH, UNII_COURSE_CODE_REGEX.
        """
        kwargs: dict[str, object] = {}
        if os.environ.get("UNII_PATH"):
            kwargs["path"] = Path(os.environ["UNII_PATH"]).expanduser()
        if os.environ.get("UNII_COURSE_CODE_REGEX"):
            kwargs["course_code_regex"] = os.environ["UNII_COURSE_CODE_REGEX"]
        return cls(**kwargs)
