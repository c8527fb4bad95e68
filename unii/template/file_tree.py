"""Nested file-tree declarations and their flattening.

Template authors write the ``files`` of a template as nested YAML::

    files:
      README.md: "# {name}"
      src:
        main.py: "print('{name}')"

A string is a file and a mapping is a directory.  Entry names must be strings;
YAML reads unquoted names such as ``2024`` or ``yes`` as numbers or
booleans, so those have to be quoted.  On load the tree is
flattened into ``{"README.md": ..., "src/main.py": ...}``; only the flat form
is stored on the template, persisted and rendered.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class File:
    """A leaf: template source for one file's content."""

    content: str


@dataclass(frozen=True)
class Directory:
    """An interior node mapping entry names to subtrees."""

    entries: dict[str, "FileTree"] = field(default_factory=dict)


FileTree = Union[File, Directory]


def parse_file_tree(data: Any) -> FileTree:
    """Build a ``FileTree`` from nested data as read from YAML.

    Raises:
        TypeError: If a node is neither a string nor a mapping, or a directory
            entry name is not a string.
    """
    if isinstance(data, str):
        return File(data)
    if isinstance(data, Mapping):
        entries: dict[str, FileTree] = {}
        for name, subtree in data.items():
            if not isinstance(name, str):
                raise TypeError(
                    f"File tree entry names must be strings, got {name!r}"
                    " (quote names such as 2024, yes or on in YAML)"
                )
            entries[name] = parse_file_tree(subtree)
        return Directory(entries)
    raise TypeError(
        f"File tree nodes must be strings or mappings, got {type(data).__name__}"
    )


def _join(name: str, subpath: str) -> str:
    return f"{name}/{subpath}" if subpath else name


def flatten(tree: FileTree) -> dict[str, str]:
    """Flatten *tree* into a ``{relative/path: content}`` mapping.

    A bare ``File`` flattens to ``{"": content}``: the file has no path
    segment of its own until a parent directory names it.  Every leaf appears
    exactly once, and sibling names are unique, so the keys are unique.
    """
    if isinstance(tree, File):
        return {"": tree.content}

    flat: dict[str, str] = {}
    for name, subtree in tree.entries.items():
        for subpath, content in flatten(subtree).items():
            flat[_join(name, subpath)] = content
    return flat
