"""Case-conversion filters available inside templates.

Each transform is registered under several aliases, e.g. ``{name | PascalCase}``
or ``{name | kebab-case}``.  Every filter takes exactly one string and no
arguments.

Word splitting follows the usual identifier rules: any run of characters that
are not letters or digits separates words, and inside a run a new word starts
at a lower-to-upper transition (``fooBar``) or before the last capital of an
acronym followed by lowercase (``HTTPServer`` -> ``HTTP``, ``Server``).
"""

from __future__ import annotations

import re
from collections.abc import Callable

from jinja2 import Undefined


_SEPARATORS = re.compile(r"[\W_]+")


class FilterError(TypeError):
    """Raised when a filter is applied to a non-string or given extra arguments."""

    def __init__(self, filter_name: str, message: str) -> None:
        self.filter_name = filter_name
        super().__init__(f"Filter '{filter_name}': {message}")


# ---------------------------------------------------------------------------
# Word splitting
# ---------------------------------------------------------------------------


def _split_run(run: str) -> list[str]:
    words: list[str] = []
    start = 0
    for i in range(1, len(run)):
        prev, cur = run[i - 1], run[i]
        nxt = run[i + 1] if i + 1 < len(run) else ""
        if (prev.islower() and cur.isupper()) or (
            prev.isupper() and cur.isupper() and nxt.islower()
        ):
            words.append(run[start:i])
            start = i
    words.append(run[start:])
    return words


def split_words(value: str) -> list[str]:
    """Split *value* into its words, dropping separators."""
    words: list[str] = []
    for run in _SEPARATORS.split(value):
        if run:
            words.extend(_split_run(run))
    return words


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


def to_pascal_case(value: str) -> str:
    """``some thing`` -> ``SomeThing``."""
    return "".join(_capitalize(word) for word in split_words(value))


def to_lower_camel_case(value: str) -> str:
    """``some thing`` -> ``someThing``."""
    words = split_words(value)
    if not words:
        return ""
    return words[0].lower() + "".join(_capitalize(word) for word in words[1:])


def to_snake_case(value: str) -> str:
    return "_".join(word.lower() for word in split_words(value))


def to_kebab_case(value: str) -> str:
    return "-".join(word.lower() for word in split_words(value))


def to_shouty_snake_case(value: str) -> str:
    return "_".join(word.upper() for word in split_words(value))


def to_shouty_kebab_case(value: str) -> str:
    return "-".join(word.upper() for word in split_words(value))


def to_train_case(value: str) -> str:
    """``some thing`` -> ``Some-Thing``."""
    return "-".join(_capitalize(word) for word in split_words(value))


TRANSFORMS: dict[Callable[[str], str], tuple[str, ...]] = {
    to_pascal_case: ("UpperCamelCase", "PascalCase"),
    to_lower_camel_case: ("lowerCamelCase", "camelCase"),
    to_snake_case: ("snake_case", "lower_snake_case"),
    to_kebab_case: ("kebab-case", "lower-kebab-case"),
    to_shouty_snake_case: ("SHOUTY_SNAKE_CASE", "UPPER_SNAKE_CASE", "SCREAMING_SNAKE_CASE"),
    to_shouty_kebab_case: ("shouty-kebab-case", "upper-kebab-case", "screaming-kebab-case"),
    to_train_case: ("Train-Case", "Title-Kebab-Case"),
}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def make_filter(name: str, transform: Callable[[str], str]) -> Callable[..., str]:
    """Wrap *transform* as a template filter registered under *name*."""

    def _filter(value: object, *args: object, **kwargs: object) -> str:
        if args or kwargs:
            raise FilterError(name, "takes no arguments")
        if isinstance(value, Undefined):
            value = str(value)
        if not isinstance(value, str):
            raise FilterError(name, f"expected a string, got {type(value).__name__}")
        return transform(value)

    _filter.__name__ = f"filter_{transform.__name__}"
    _filter.__doc__ = transform.__doc__
    return _filter


def case_filters() -> dict[str, Callable[..., str]]:
    """Return every alias mapped to its filter callable."""
    return {
        alias: make_filter(alias, transform)
        for transform, aliases in TRANSFORMS.items()
        for alias in aliases
    }
