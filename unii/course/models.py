"""Course records.

A course is a directory ``<settings.path>/<code>/`` holding a small YAML record
at ``.unii/course.yml``.  Rendered template instances are placed under the
course directory, and a course can carry its own private templates.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterator
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from unii.config import Settings
from unii.errors import CourseAlreadyExists
from unii.utils import load_yaml, save_yaml


class Course(BaseModel):
    """A course, identified by its code."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., exclude=True, description="Course code, also the directory name")
    name: Optional[str] = Field(default=None, description="Human-readable course name")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, settings: Settings, code: str, name: str | None = None) -> "Course":
        """Create a course directory and write its record.

        Raises:
            CourseCodeDidNotMatchRegex: If *code* fails ``course_code_regex``.
            CourseAlreadyExists: If the course directory already exists.
        """
        settings.validate_course_code(code)

        course = cls(code=code, name=name)
        if course.dir(settings).exists():
            raise CourseAlreadyExists(code)

        settings.course_unii_dir(code).mkdir(parents=True, exist_ok=True)
        course.write(settings)
        return course

    def write(self, settings: Settings) -> None:
        save_yaml(self.model_dump(), self.yaml_path(settings))

    @classmethod
    def open(cls, settings: Settings, code: str) -> Optional["Course"]:
        """Load the course *code*, or ``None`` if its directory does not exist."""
        if not settings.course_dir(code).exists():
            return None
        data = load_yaml(settings.course_yaml_path(code))
        return cls(code=code, **data)

    @classmethod
    def all(cls, settings: Settings) -> Iterator[Union["Course", Exception]]:
        """Lazily open every course under ``settings.path``.

        Listing the root directory happens eagerly, so a missing or unreadable
        root raises immediately.  Directories without a course record are
        skipped; a course that fails to open is yielded as the exception
        instead of aborting the rest.
        """
        entries = sorted(settings.path.iterdir())
        return cls._open_each(settings, entries)

    @classmethod
    def _open_each(
        cls, settings: Settings, entries: list[Path]
    ) -> Iterator[Union["Course", Exception]]:
        for entry in entries:
            if not entry.is_dir():
                continue
            if not settings.course_yaml_path(entry.name).exists():
                continue
            try:
                course = cls.open(settings, entry.name)
            except Exception as exc:
                yield exc
                continue
            if course is not None:
                yield course

    def delete(self, settings: Settings) -> None:
        """Remove the course directory and everything rendered into it."""
        shutil.rmtree(self.dir(settings))

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def dir(self, settings: Settings) -> Path:
        return settings.course_dir(self.code)

    def template_dir(self, settings: Settings) -> Path:
        return settings.course_template_dir(self.code)

    def yaml_path(self, settings: Settings) -> Path:
        return settings.course_yaml_path(self.code)
