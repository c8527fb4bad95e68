"""Template definitions and their storage.

A template is one YAML file, ``<templates dir>/<name>.yml``::

    pluralized-name: assignments
    context-parameters: [number, title]
    directory-name: "a{number}"
    files:
      README.md: "# {title}"
      src:
        main.py: "# {title | snake_case}"
    command: git init -q

The template's name is never stored in the file; it comes from the file name.
Templates live either in the global store or privately inside one course.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from unii.config import TEMPLATE_EXTENSION, Settings
from unii.errors import TemplateAlreadyExists, TemplateNameInvalid
from unii.template.file_tree import Directory, flatten, parse_file_tree
from unii.utils import load_yaml, save_yaml


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TemplateScope:
    """Where template definitions are stored.

    ``course_code`` is ``None`` for the global store; otherwise the templates
    private to that course are meant.
    """

    course_code: Optional[str] = None

    @classmethod
    def course(cls, code: str) -> "TemplateScope":
        return cls(course_code=code)

    def template_dir(self, settings: Settings) -> Path:
        if self.course_code is None:
            return settings.template_dir()
        return settings.course_template_dir(self.course_code)

    def __str__(self) -> str:
        return "global" if self.course_code is None else f"course {self.course_code}"


GLOBAL = TemplateScope()


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------


def check_template_name(name: str) -> None:
    """A template name becomes a file name, so it must be one plain segment."""
    if not name:
        raise TemplateNameInvalid(name, "name is empty")
    if "/" in name or "\\" in name:
        raise TemplateNameInvalid(name, "name contains a path separator")
    if name in (".", ".."):
        raise TemplateNameInvalid(name, "name is a relative reference")


def _kebab(field_name: str) -> str:
    return field_name.replace("_", "-")


class Template(BaseModel):
    """A reusable scaffold: directory name, files and command, all template source."""

    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True)

    name: str = Field(default="", exclude=True, description="Derived from the file name")
    pluralized_name: str = Field(..., description="Collection directory under a course")
    context_parameters: list[str] = Field(default_factory=list)
    directory_name: str = Field(default="")
    files: dict[str, str] = Field(
        default_factory=dict,
        description="Flattened file tree: relative path -> content source",
    )
    command: str = Field(default="")

    @field_validator("files", mode="before")
    @classmethod
    def _flatten_files(cls, value: Any) -> Any:
        if value is None:
            return {}
        try:
            tree = parse_file_tree(value)
        except TypeError as exc:
            raise ValueError(str(exc)) from exc
        if not isinstance(tree, Directory):
            raise ValueError("files must be a mapping of names to files or directories")
        return flatten(tree)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        settings: Settings,
        name: str,
        pluralized_name: str | None = None,
        scope: TemplateScope = GLOBAL,
    ) -> "Template":
        """Write an empty definition for *name* and return it.

        ``pluralized_name`` defaults to ``name + "s"``.

        Raises:
            TemplateNameInvalid: If *name* is not a single path segment.
            TemplateAlreadyExists: If a definition already exists in *scope*.
        """
        check_template_name(name)
        template = cls(name=name, pluralized_name=pluralized_name or f"{name}s")
        path = settings.template_path(scope, name)
        if path.exists():
            raise TemplateAlreadyExists(name, str(scope))

        path.parent.mkdir(parents=True, exist_ok=True)
        template.write(path)
        return template

    def write(self, path: Path) -> None:
        save_yaml(self.to_document(), path)

    def to_document(self) -> dict[str, Any]:
        """The persisted body: every field except ``name``, with kebab-case keys."""
        return self.model_dump(by_alias=True)

    @classmethod
    def open(
        cls,
        settings: Settings,
        name: str,
        scope: TemplateScope = GLOBAL,
    ) -> Optional["Template"]:
        """Load template *name* from *scope*, or ``None`` if it is not defined there."""
        check_template_name(name)
        path = settings.template_path(scope, name)
        if not path.exists():
            return None
        template = cls.model_validate(load_yaml(path))
        template.name = name
        return template

    @classmethod
    def all(
        cls, settings: Settings, scope: TemplateScope = GLOBAL
    ) -> Iterator[Union["Template", Exception]]:
        """Lazily open every template defined in *scope*.

        Listing the directory happens eagerly, so a missing or unreadable
        templates directory raises immediately.  Entries that are not
        ``.yml`` files are skipped; a definition that fails to load is
        yielded as the exception instead of aborting the rest.
        """
        entries = sorted(scope.template_dir(settings).iterdir())
        return cls._open_each(settings, scope, entries)

    @classmethod
    def _open_each(
        cls, settings: Settings, scope: TemplateScope, entries: list[Path]
    ) -> Iterator[Union["Template", Exception]]:
        for entry in entries:
            if not entry.is_file() or entry.suffix != f".{TEMPLATE_EXTENSION}":
                continue
            try:
                template = cls.open(settings, entry.stem, scope)
            except Exception as exc:
                yield exc
                continue
            if template is not None:
                yield template
