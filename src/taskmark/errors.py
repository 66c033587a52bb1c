"""
Custom exceptions for task parsing, filtering and workflow handling.

Malformed task *data* never raises; these exceptions are reserved for invalid
configuration and definitions supplied by the caller.
"""


class TaskmarkError(Exception):
    """Base exception for all taskmark errors."""

    pass


class ConfigurationError(TaskmarkError):
    """Raised when parser or project configuration is invalid."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        location = f" (field: {field})" if field else ""
        super().__init__(f"{message}{location}")


class FilterDefinitionError(TaskmarkError):
    """Raised when a filter tree cannot be loaded."""

    pass


class WorkflowDefinitionError(TaskmarkError):
    """Raised when a workflow definition fails validation at load time."""

    def __init__(self, message: str, workflow_id: str | None = None):
        self.workflow_id = workflow_id
        prefix = f"Workflow '{workflow_id}': " if workflow_id else ""
        super().__init__(f"{prefix}{message}")


class FileParseError(TaskmarkError):
    """Raised when a file's frontmatter or config file cannot be read."""

    pass
