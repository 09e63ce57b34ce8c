"""Source exceptions: repository access and git command failures."""

from pathlib import Path
from typing import Optional, Sequence

from .base import TimesheetError


class SourceAccessError(TimesheetError):
    """Raised when the commit source is invalid or unreachable."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Not a valid git repository: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason


class GitCommandError(TimesheetError):
    """Raised when the git log command exits with an error."""

    def __init__(self, command: Sequence[str], returncode: Optional[int], stderr: str):
        details = {"command": " ".join(command), "stderr": stderr.strip() or "<empty>"}
        if returncode is not None:
            details["returncode"] = str(returncode)

        super().__init__("Failed to execute git log", details=details)
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
