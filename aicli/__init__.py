"""Build, start and manage the AI CLI container."""

__version__ = "0.1.0"
