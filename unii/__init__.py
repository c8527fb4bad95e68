"""unii - a CLI university work manager.

Keeps one directory per course and scaffolds recurring work (assignments,
labs, notes) from user-defined templates.
"""

__version__ = "0.1.0"
