"""Course storage: one directory per course code."""

from unii.course.models import Course

__all__ = ["Course"]
