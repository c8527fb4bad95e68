"""Typed errors raised by unii.

Every error a user can trigger through normal use of the tool derives from
:class:`UniiError` and carries its details as attributes, so callers can
inspect them and the CLI can print a readable message.  Lower-level failures
(filesystem, YAML, schema validation, template syntax) are not wrapped and
propagate as-is.
"""

from __future__ import annotations


class UniiError(Exception):
    """Base class for all unii domain errors."""


# ---------------------------------------------------------------------------
# Course errors
# ---------------------------------------------------------------------------


class CourseAlreadyExists(UniiError):
    """Raised when creating a course whose directory already exists."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Course with code '{code}' already exists")


class CourseDoesNotExist(UniiError):
    """Raised when a course code does not resolve to a course on disk."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Course with code '{code}' does not exist")


class CourseCodeDidNotMatchRegex(UniiError):
    """Raised when a new course code fails the configured ``course_code_regex``."""

    def __init__(self, code: str, regex: str) -> None:
        self.code = code
        self.regex = regex
        super().__init__(f"Course code '{code}' did not match regex '{regex}'")


# ---------------------------------------------------------------------------
# Template errors
# ---------------------------------------------------------------------------


class TemplateAlreadyExists(UniiError):
    def __init__(self, name: str, scope: str = "global") -> None:
        self.name = name
        self.scope = scope
        super().__init__(f"Template '{name}' already exists ({scope})")


class TemplateNameInvalid(UniiError):
    """Raised when a template name is not usable as a single file name."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Template name '{name}' is invalid: {reason}")


class TemplateDoesNotExist(UniiError):
    def __init__(self, name: str, source: str | None = None) -> None:
        self.name = name
        self.source = source
        qualified = f"{source}:{name}" if source else name
        super().__init__(f"Template '{qualified}' does not exist")


class TemplateContextParameterDoesNotExist(UniiError):
    """Raised when a context key is not declared in ``context-parameters``."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            f"Context parameter '{key}' is not declared by the template"
        )


class TemplateCommandIsEmpty(UniiError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template '{name}' has an empty command")


class TemplateCommandFailed(UniiError):
    """Raised when the rendered shell command exits with a non-zero status.

    The render target directory has already been created at this point and is
    left on disk.
    """

    def __init__(self, command: str, stderr: str, returncode: int | None = None) -> None:
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        message = f"Template command failed (exit {returncode}): {command}"
        if stderr.strip():
            message += f"\n{stderr.rstrip()}"
        super().__init__(message)


class TemplateCourseCodeMissing(UniiError):
    def __init__(self) -> None:
        super().__init__(
            "No course to render into: qualify the template as COURSE:NAME "
            "or pass --course-code"
        )


# ---------------------------------------------------------------------------
# Render errors
# ---------------------------------------------------------------------------


class RenderAlreadyExists(UniiError):
    """Raised when the top-level render target directory already exists."""

    def __init__(self, directory_name: str) -> None:
        self.directory_name = directory_name
        super().__init__(f"Render target '{directory_name}' already exists")


class RenderPathInvalid(UniiError):
    """Raised when a rendered directory name or file path would escape its target."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Rendered path '{path}' is invalid: {reason}")
