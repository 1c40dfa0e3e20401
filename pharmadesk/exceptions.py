"""
Exception hierarchy for the pharmacy workspace.

Views translate these into JSON error payloads or inline form errors;
nothing here is retried.
"""


class PharmadeskError(Exception):
    """Base class for all application errors."""


class EntityNotFound(PharmadeskError):
    """A referenced task, checklist item, message or resource does not exist."""


class WorkflowError(PharmadeskError):
    """An illegal status transition or operation on a task."""


class StoreError(PharmadeskError):
    """A write to the data store failed."""


class FileParseError(PharmadeskError):
    default_message = "Failed to read file. Please ensure it is a valid text or PDF file."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


class UnsupportedFileType(FileParseError):
    default_message = "Unsupported file type. Please upload a .txt, .md, or .pdf file."


class AIServiceError(PharmadeskError):
    """The AI proxy is not configured or text generation failed."""
