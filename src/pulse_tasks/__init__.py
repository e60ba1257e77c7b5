"""pulse-tasks: a local, file-backed task tracker organized by tags."""

__version__ = "0.1.0"
