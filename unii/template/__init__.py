"""unii templates -- declare a scaffold once, render it into any course.

Quick usage::

    from unii.template import Template, TemplateRenderer

    template = Template.open(settings, "assignment")
    target = TemplateRenderer().render(template, settings, course, {"number": 3})
"""

from unii.template.file_tree import Directory, File, FileTree, flatten, parse_file_tree
from unii.template.filters import FilterError, case_filters
from unii.template.models import GLOBAL, Template, TemplateScope
from unii.template.renderer import RenderPlan, TemplateRenderer

__all__ = [
    "GLOBAL",
    "Directory",
    "File",
    "FileTree",
    "FilterError",
    "RenderPlan",
    "Template",
    "TemplateRenderer",
    "TemplateScope",
    "case_filters",
    "flatten",
    "parse_file_tree",
]
