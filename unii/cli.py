"""Command-line interface for unii.

Usage::

    unii course new COMP1100 --name "Programming as Problem Solving"
    unii template new assignment --pluralized-name assignments
    unii template render COMP1100:lab number=3 title="Higher-order functions"
    unii template render -c COMP1100 assignment number=1 --dry-run
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Callable, Optional

import yaml
from jinja2 import TemplateError
from pydantic import JsonValue
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from unii import __version__
from unii.config import Settings, default_settings_file
from unii.course.models import Course
from unii.errors import (
    CourseDoesNotExist,
    TemplateCourseCodeMissing,
    TemplateDoesNotExist,
    UniiError,
)
from unii.template.models import GLOBAL, Template, TemplateScope
from unii.template.renderer import TemplateRenderer
from unii.utils import (
    console,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)

Handler = Callable[[Settings, argparse.Namespace], int]


# ---------------------------------------------------------------------------
# Argument parsing helpers
# ---------------------------------------------------------------------------


def parse_context(value: str) -> tuple[str, JsonValue]:
    """Parse ``KEY=VALUE``; VALUE is JSON if it parses, otherwise a plain string."""
    if "=" not in value:
        raise argparse.ArgumentTypeError(f"invalid context {value!r}: missing '='")
    key, raw = value.split("=", 1)
    try:
        parsed: JsonValue = json.loads(raw)
    except json.JSONDecodeError:
        parsed = raw
    return key, parsed


def parse_course_template(value: str) -> tuple[Optional[str], str]:
    """Split ``[COURSE:]NAME`` into ``(course_code or None, name)``."""
    if ":" in value:
        course_code, name = value.split(":", 1)
        return course_code, name
    return None, value


class ContextAction(argparse.Action):
    """Collect ``KEY=VALUE`` pairs into a dict, rejecting repeated keys."""

    def __call__(self, parser, namespace, values, option_string=None):
        context: dict[str, JsonValue] = {}
        for key, value in values or []:
            if key in context:
                parser.error(f"duplicate context key '{key}'")
            context[key] = value
        setattr(namespace, self.dest, context)


def _scope_for(settings: Settings, course_code: Optional[str]) -> TemplateScope:
    if course_code is None:
        return GLOBAL
    if Course.open(settings, course_code) is None:
        raise CourseDoesNotExist(course_code)
    return TemplateScope.course(course_code)


def _open_template(settings: Settings, source: Optional[str], name: str) -> Template:
    template = Template.open(settings, name, _scope_for(settings, source))
    if template is None:
        raise TemplateDoesNotExist(name, source)
    return template


# ---------------------------------------------------------------------------
# Course commands
# ---------------------------------------------------------------------------


def course_new(settings: Settings, args: argparse.Namespace) -> int:
    course = Course.create(settings, args.course_code, args.name)
    print_success(f"Created course: {course.code}")
    return 0


def course_list(settings: Settings, args: argparse.Namespace) -> int:
    if not settings.path.exists():
        print_warning(f"No courses yet ({settings.path} does not exist)")
        return 0

    table = Table(title="Courses", show_header=True, header_style="bold cyan")
    table.add_column("Code", no_wrap=True)
    table.add_column("Name")

    failed = False
    for course in Course.all(settings):
        if isinstance(course, Exception):
            print_error(f"Error: {escape(str(course))}")
            failed = True
            continue
        table.add_row(course.code, course.name or "")

    console.print(table)
    return 1 if failed else 0


def course_delete(settings: Settings, args: argparse.Namespace) -> int:
    course = Course.open(settings, args.course_code)
    if course is None:
        raise CourseDoesNotExist(args.course_code)

    if not args.yes and not Confirm.ask(
        f"Delete course {course.code} and everything in {course.dir(settings)}?",
        console=console,
    ):
        print_warning("Aborted")
        return 1

    course.delete(settings)
    print_success(f"Deleted course: {course.code}")
    return 0


# ---------------------------------------------------------------------------
# Template commands
# ---------------------------------------------------------------------------


def template_new(settings: Settings, args: argparse.Namespace) -> int:
    source, name = args.name
    template = Template.create(
        settings,
        name,
        args.pluralized_name,
        scope=_scope_for(settings, source),
    )
    print_success(f"Created template: {template.name}")
    return 0


def template_list(settings: Settings, args: argparse.Namespace) -> int:
    scope = _scope_for(settings, args.course_code)
    if not scope.template_dir(settings).exists():
        print_warning(f"No templates yet ({scope})")
        return 0

    table = Table(title=f"Templates ({scope})", show_header=True, header_style="bold cyan")
    table.add_column("Name", no_wrap=True)
    table.add_column("Collection")
    table.add_column("Parameters")

    failed = False
    for template in Template.all(settings, scope):
        if isinstance(template, Exception):
            print_error(f"Error: {escape(str(template))}")
            failed = True
            continue
        table.add_row(
            template.name,
            template.pluralized_name,
            ", ".join(template.context_parameters),
        )

    console.print(table)
    return 1 if failed else 0


def template_render(settings: Settings, args: argparse.Namespace) -> int:
    source, name = args.name
    if args.course_code is not None:
        course_code = args.course_code
    elif source is not None:
        course_code = source
    else:
        raise TemplateCourseCodeMissing()

    template = _open_template(settings, source, name)
    course = Course.open(settings, course_code)
    if course is None:
        raise CourseDoesNotExist(course_code)

    renderer = TemplateRenderer()
    context = args.context or {}

    if args.dry_run:
        plan = renderer.plan(template, settings, course, context)
        print_summary_table(
            {
                "Template": escape(template.name),
                "Course": escape(course.code),
                "Target": escape(str(plan.target)),
                "Command": escape(plan.command),
                "Files": escape("\n".join(path for path, _ in plan.files)),
            },
            title="Render plan",
        )
        return 0

    target = renderer.render(template, settings, course, context)
    print_success(f"Rendered {template.name} into {target}")
    return 0


def template_check(settings: Settings, args: argparse.Namespace) -> int:
    source, name = args.name
    template = _open_template(settings, source, name)
    TemplateRenderer().check(template, args.context or None)
    print_success(f"Template {template.name} is valid")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unii",
        description="unii -- a CLI university work management tool",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--settings-file", "-s",
        type=Path,
        default=None,
        help="Path to the settings file (default: $UNII_SETTINGS_FILE or ~/.config/unii/settings.json)",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only print errors",
    )
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    # -- course --------------------------------------------------------------
    course = commands.add_parser("course", help="Manage courses")
    course_commands = course.add_subparsers(dest="course_command", required=True, metavar="COMMAND")

    p = course_commands.add_parser("new", aliases=["create", "add"], help="Create a new course")
    p.add_argument("course_code", metavar="COURSE_CODE", help="The course code of the course")
    p.add_argument("--name", "-n", default=None, help="The name of the course")
    p.set_defaults(handler=course_new)

    p = course_commands.add_parser("list", aliases=["ls"], help="List all courses")
    p.set_defaults(handler=course_list)

    p = course_commands.add_parser("delete", aliases=["rm", "remove"], help="Delete a course")
    p.add_argument("course_code", metavar="COURSE_CODE", help="The course code of the course")
    p.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(handler=course_delete)

    # -- template ------------------------------------------------------------
    template = commands.add_parser("template", help="Manage and render templates")
    template_commands = template.add_subparsers(
        dest="template_command", required=True, metavar="COMMAND"
    )

    p = template_commands.add_parser("new", aliases=["create", "add"], help="Create a new template")
    p.add_argument(
        "name",
        type=parse_course_template,
        metavar="[COURSE_CODE:]TEMPLATE_NAME",
        help="The name of the template, optionally private to a course",
    )
    p.add_argument("--pluralized-name", default=None, help="The pluralized name of the template")
    p.set_defaults(handler=template_new)

    p = template_commands.add_parser(
        "render",
        aliases=["generate", "gen", "run", "use", "make"],
        help="Render a template into a course",
    )
    p.add_argument(
        "name",
        type=parse_course_template,
        metavar="[COURSE_CODE:]TEMPLATE_NAME",
        help="The name of the template",
    )
    p.add_argument(
        "context",
        type=parse_context,
        nargs="*",
        action=ContextAction,
        metavar="KEY=VALUE",
        help="The context to use when rendering the template",
    )
    p.add_argument(
        "--course-code", "-c", "--course", "--code",
        dest="course_code",
        default=None,
        help="The course code to render the template under",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be rendered without writing anything",
    )
    p.set_defaults(handler=template_render)

    p = template_commands.add_parser("list", aliases=["ls"], help="List all templates")
    p.add_argument(
        "--course-code", "-c", "--course",
        dest="course_code",
        default=None,
        help="List the templates private to this course instead",
    )
    p.set_defaults(handler=template_list)

    p = template_commands.add_parser("check", help="Validate a template without rendering it")
    p.add_argument(
        "name",
        type=parse_course_template,
        metavar="[COURSE_CODE:]TEMPLATE_NAME",
        help="The name of the template",
    )
    p.add_argument(
        "context",
        type=parse_context,
        nargs="*",
        action=ContextAction,
        metavar="KEY=VALUE",
        help="Optional context to validate and render the command with",
    )
    p.set_defaults(handler=template_check)

    return parser


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for ``unii`` and ``python -m unii.cli``."""
    args = build_parser().parse_args(argv)
    console.quiet = args.quiet

    handler: Handler = args.handler
    try:
        settings = Settings.open_or_create_default_at(args.settings_file or default_settings_file())
        return handler(settings, args)
    except (UniiError, TemplateError, TypeError, yaml.YAMLError, ValueError, OSError) as exc:
        print_error(f"Error: {escape(str(exc))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
