from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class CommandResult(BaseModel):
    """Outcome of one external process invocation."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def command_line(self) -> str:
        return " ".join(self.args)

    def output_tail(self, max_lines: int = 10) -> str:
        """Last lines of stderr, or stdout when stderr is empty."""
        text = self.stderr.strip() or self.stdout.strip()
        if not text:
            return ""
        return "\n".join(text.splitlines()[-max_lines:])


class MountAction(str, Enum):
    """What ensure_mounted had to do to satisfy the requested mount"""

    CREATED = "CREATED"  # Nothing was mounted at the drive
    ALREADY_MOUNTED = "ALREADY_MOUNTED"  # Drive already pointed at the share
    REMAPPED = "REMAPPED"  # Drive pointed elsewhere and was recreated


class MountInfo(BaseModel):
    drive: str
    remote_path: str
    persistent: bool = False
    action: MountAction = MountAction.CREATED

    @property
    def mount_point(self) -> str:
        return f"{self.drive}\\"


class RepositoryState(str, Enum):
    """Classification of the local checkout directory"""

    ABSENT = "ABSENT"  # Nothing at the path, clone
    CHECKOUT = "CHECKOUT"  # Valid checkout of the configured remote, pull
    FOREIGN = "FOREIGN"  # Something else is there, delete and reclone


class RepositoryAction(str, Enum):
    CLONED = "CLONED"
    UPDATED = "UPDATED"
    RECLONED = "RECLONED"


class ShrinkRunResult(BaseModel):
    command: list[str]
    log_path: Path
    duration_seconds: float


class WorkbookInfo(BaseModel):
    path: Path
    rows: int
    columns: int


class StepStatus(str, Enum):
    """
    Status for a workflow step.

    Normal: Pending -> Running -> Succeeded
    Abort: Running -> Failed, remaining steps -> Skipped
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class StepResult(BaseModel):
    name: str
    status: StepStatus = StepStatus.PENDING
    message: str = ""
    duration_seconds: float = 0.0


class WorkflowReport(BaseModel):
    steps: list[StepResult] = Field(default_factory=list)
    exit_code: int = 0
    interrupted: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and all(
            step.status == StepStatus.SUCCEEDED for step in self.steps
        )

    @property
    def failed_step(self) -> Optional[StepResult]:
        for step in self.steps:
            if step.status == StepStatus.FAILED:
                return step
        return None

    def get_step(self, name: str) -> Optional[StepResult]:
        for step in self.steps:
            if step.name == name:
                return step
        return None
