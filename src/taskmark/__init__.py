"""taskmark - markdown task parsing, filtering and workflows."""

__version__ = "0.4.0"
