"""Rendering templates into a course.

The ``TemplateRenderer`` turns a :class:`~unii.template.models.Template` plus a
context into a directory under a course::

    <course>/<pluralized-name>/<rendered directory-name>/

Rendering is strictly ordered and fails fast: validate the context, compile
every template source, render the directory name, refuse to clobber an
existing target, create it, run the rendered command inside it, then render
and write every file.  Nothing is rolled back on failure; a failed command or
write leaves the target directory on disk.

Template sources are Jinja2 with single-brace variables, so ``{name}`` and
``{name | PascalCase}`` work, alongside ``{% ... %}`` blocks.
"""

from __future__ import annotations

import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from jinja2 import Environment, StrictUndefined
from jinja2 import Template as JinjaTemplate
from jinja2.ext import Extension
from jinja2.lexer import TOKEN_NAME, TOKEN_PIPE, TOKEN_SUB, Token, TokenStream
from pydantic import JsonValue
from rich.markup import escape

from unii.config import Settings
from unii.course.models import Course
from unii.errors import (
    RenderAlreadyExists,
    RenderPathInvalid,
    TemplateCommandFailed,
    TemplateCommandIsEmpty,
    TemplateContextParameterDoesNotExist,
)
from unii.template.filters import case_filters
from unii.template.models import Template
from unii.utils import console, write_file

Context = Mapping[str, JsonValue]


# ---------------------------------------------------------------------------
# Jinja2 environment
# ---------------------------------------------------------------------------


class HyphenatedFilterNames(Extension):
    """Let ``{value | kebab-case}`` call the filter named ``kebab-case``.

    Jinja2 lexes ``kebab-case`` as ``kebab - case``.  After a pipe, the longest
    run of ``name - name ...`` tokens whose joined name is a registered filter
    is merged back into a single name token.
    """

    def filter_stream(self, stream: TokenStream) -> Iterable[Token]:
        tokens = list(stream)
        i = 0
        while i < len(tokens):
            token = tokens[i]
            yield token
            i += 1
            if token.type != TOKEN_PIPE:
                continue
            merged, consumed = self._merge_filter_name(tokens, i)
            if merged is not None:
                yield merged
                i += consumed

    def _merge_filter_name(self, tokens: list[Token], start: int) -> tuple[Optional[Token], int]:
        if start >= len(tokens) or tokens[start].type != TOKEN_NAME:
            return None, 0

        parts = [tokens[start].value]
        j = start
        while (
            j + 2 < len(tokens)
            and tokens[j + 1].type == TOKEN_SUB
            and tokens[j + 2].type == TOKEN_NAME
        ):
            parts.append(tokens[j + 2].value)
            j += 2

        for count in range(len(parts), 1, -1):
            candidate = "-".join(parts[:count])
            if candidate in self.environment.filters:
                return Token(tokens[start].lineno, TOKEN_NAME, candidate), 2 * count - 1
        return None, 0


def create_environment() -> Environment:
    """A fresh Jinja2 environment with the case-conversion filters registered."""
    env = Environment(
        variable_start_string="{",
        variable_end_string="}",
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        extensions=[HyphenatedFilterNames],
    )
    env.filters.update(case_filters())
    return env


# ---------------------------------------------------------------------------
# Compiled and planned renders
# ---------------------------------------------------------------------------


@dataclass
class CompiledTemplate:
    """Every source of a template, compiled in one environment."""

    directory_name: JinjaTemplate
    command: JinjaTemplate
    files: list[tuple[JinjaTemplate, JinjaTemplate]] = field(default_factory=list)


@dataclass
class RenderPlan:
    """What a render would produce, computed without touching the filesystem."""

    directory_name: str
    target: Path
    command: str
    files: list[tuple[str, str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Path checks
# ---------------------------------------------------------------------------


def check_directory_name(name: str) -> None:
    """The rendered directory name must be exactly one path segment."""
    if not name:
        raise RenderPathInvalid(name, "directory name is empty")
    if "/" in name or "\\" in name:
        raise RenderPathInvalid(name, "directory name contains a path separator")
    if name in (".", ".."):
        raise RenderPathInvalid(name, "directory name is a relative reference")


def check_file_path(path: str) -> None:
    """A rendered file path must stay inside the render target."""
    if not path:
        raise RenderPathInvalid(path, "file path is empty")
    if path.startswith(("/", "\\")):
        raise RenderPathInvalid(path, "file path is absolute")
    for part in path.replace("\\", "/").split("/"):
        if part in ("", ".", ".."):
            raise RenderPathInvalid(path, f"file path contains the segment '{part}'")


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders templates into course directories.

    Each call compiles the template in a fresh Jinja2 environment; nothing is
    cached between renders.
    """

    def __init__(self, shell: str = "sh") -> None:
        self.shell = shell

    # -- Pipeline stages ---------------------------------------------------

    def validate_context(self, template: Template, context: Context) -> None:
        """Reject the first context key the template does not declare.

        Declared parameters may be left out; referencing one that is missing
        fails later, when the source using it is rendered.
        """
        for key in context:
            if key not in template.context_parameters:
                raise TemplateContextParameterDoesNotExist(key)

    def compile(self, template: Template) -> CompiledTemplate:
        """Compile the directory name, command and every file path and content.

        Raises:
            jinja2.TemplateSyntaxError: If any source is malformed.
        """
        env = create_environment()
        return CompiledTemplate(
            directory_name=env.from_string(template.directory_name),
            command=env.from_string(template.command),
            files=[
                (env.from_string(path), env.from_string(content))
                for path, content in template.files.items()
            ],
        )

    def render_files(self, compiled: CompiledTemplate, context: Context) -> list[tuple[str, str]]:
        """Render every ``(path, content)`` pair and check the paths before any write."""
        rendered = [
            (path.render(context), content.render(context))
            for path, content in compiled.files
        ]
        for path, _ in rendered:
            check_file_path(path)
        return rendered

    def run_command(self, command: str, cwd: Path) -> str:
        """Run *command* through the shell in *cwd* and return its stdout.

        Blocks until the command exits; there is no timeout.

        Raises:
            TemplateCommandFailed: If the command exits non-zero.
        """
        process = subprocess.run(
            [self.shell, "-c", command],
            cwd=cwd,
            capture_output=True,
        )
        stdout = process.stdout.decode("utf-8", errors="replace")
        stderr = process.stderr.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise TemplateCommandFailed(command, stderr, process.returncode)
        return stdout

    # -- Public API --------------------------------------------------------

    def plan(
        self,
        template: Template,
        settings: Settings,
        course: Course,
        context: Context,
    ) -> RenderPlan:
        """Render everything a real render would, without side effects.

        The no-clobber check still applies, so a plan fails exactly where the
        render would fail before creating its target.
        """
        self.validate_context(template, context)
        compiled = self.compile(template)
        directory_name, target = self._resolve_target(
            compiled, template, settings, course, context
        )
        return RenderPlan(
            directory_name=directory_name,
            target=target,
            command=compiled.command.render(context),
            files=self.render_files(compiled, context),
        )

    def render(
        self,
        template: Template,
        settings: Settings,
        course: Course,
        context: Context,
    ) -> Path:
        """Render *template* into *course* and return the created directory.

        Raises:
            TemplateContextParameterDoesNotExist: Before any filesystem change.
            RenderAlreadyExists: If the target directory already exists.
            RenderPathInvalid: If a rendered name or path would escape the target.
            TemplateCommandFailed: After the target directory was created.
        """
        self.validate_context(template, context)
        compiled = self.compile(template)
        directory_name, target = self._resolve_target(
            compiled, template, settings, course, context
        )

        target.mkdir(parents=True)
        console.print(f"[dim]Created {escape(str(target))}[/dim]")

        command = compiled.command.render(context)
        stdout = self.run_command(command, target)
        if stdout.strip():
            console.print(escape(stdout.rstrip()), style="dim")

        for path, content in self.render_files(compiled, context):
            write_file(target / path, content)
            console.print(f"[dim]Wrote {escape(path)}[/dim]")

        return target

    def check(self, template: Template, context: Optional[Context] = None) -> CompiledTemplate:
        """Validate a template without rendering it anywhere.

        Compiles every source and rejects a blank command.  With a *context*
        the context is validated too and the command is rendered before the
        blank check.

        Raises:
            TemplateCommandIsEmpty: If the command is (or renders to) blank.
        """
        if context is not None:
            self.validate_context(template, context)
        compiled = self.compile(template)
        command = template.command if context is None else compiled.command.render(context)
        if not command.strip():
            raise TemplateCommandIsEmpty(template.name)
        return compiled

    # -- Internals ---------------------------------------------------------

    def _resolve_target(
        self,
        compiled: CompiledTemplate,
        template: Template,
        settings: Settings,
        course: Course,
        context: Context,
    ) -> tuple[str, Path]:
        directory_name = compiled.directory_name.render(context)
        check_directory_name(directory_name)

        target = course.dir(settings) / template.pluralized_name / directory_name
        if target.exists():
            raise RenderAlreadyExists(directory_name)
        return directory_name, target

