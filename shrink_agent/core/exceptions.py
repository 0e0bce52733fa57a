# shrink_agent/core/exceptions.py
from typing import Optional


class WorkflowError(Exception):
    """Base exception for fatal workflow step failures."""

    step = "workflow"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message if not detail else f"{message}: {detail}")


class MountError(WorkflowError):
    """Raised when the network drive cannot be created, remapped or removed."""

    step = "mount"


class FetchError(WorkflowError):
    """Raised when the shrink tool repository cannot be cloned or updated."""

    step = "fetch"


class ToolExecutionError(WorkflowError):
    """Raised when the shrink tool exits nonzero, times out or cannot start."""

    step = "shrink"

    def __init__(self, message: str, returncode: int, detail: Optional[str] = None):
        self.returncode = returncode
        super().__init__(message, detail)


class ConversionError(WorkflowError):
    """Raised when the CSV report cannot be loaded or the workbook cannot be saved."""

    step = "convert"
