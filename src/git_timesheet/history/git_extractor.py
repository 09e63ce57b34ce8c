"""Read commit history from a local git repository via subprocess."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

from ..exceptions import GitCommandError, SourceAccessError
from ..logging_config import get_logger
from .log_parser import RECORD_SENTINEL, LogParser
from .models import ParseResult

logger = get_logger(__name__)

# The sentinel leads each record so that --numstat output, which git prints
# after the formatted text, stays inside the record it belongs to.
LOG_FORMAT = f"--pretty=format:{RECORD_SENTINEL}%n%H%d%n%an%n%ae%n%ai%n%B"

DateLike = Union[str, date, datetime]


@dataclass
class LogQuery:
    """Filters passed through to ``git log``."""

    since: Optional[DateLike] = None
    until: Optional[DateLike] = None
    author: Optional[str] = None
    committer: Optional[str] = None
    grep: Optional[str] = None
    branches: list[str] = field(default_factory=list)
    file_paths: list[str] = field(default_factory=list)
    max_count: Optional[int] = None
    skip: Optional[int] = None
    no_merges: bool = False
    first_parent: bool = False
    include_file_stats: bool = False
    include_diff: bool = False

    def to_args(self) -> list[str]:
        args = ["log", LOG_FORMAT, "--decorate=full"]
        if self.include_file_stats:
            args.append("--numstat")
        if self.include_diff:
            args.append("--patch")
        if self.since:
            args.append(f"--since={_git_date(self.since)}")
        if self.until:
            args.append(f"--until={_git_date(self.until)}")
        if self.author:
            args.append(f"--author={self.author}")
        if self.committer:
            args.append(f"--committer={self.committer}")
        if self.grep:
            args.append(f"--grep={self.grep}")
        if self.max_count is not None and self.max_count > 0:
            args.append(f"--max-count={self.max_count}")
        if self.skip is not None and self.skip >= 0:
            args.append(f"--skip={self.skip}")
        if self.no_merges:
            args.append("--no-merges")
        if self.first_parent:
            args.append("--first-parent")
        args.extend(self.branches)
        if self.file_paths:
            args.append("--")
            args.extend(self.file_paths)
        return args


def _git_date(value: DateLike) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class RepoInfo:
    path: str
    name: str
    url: Optional[str] = None
    type: str = "local"


class GitLogSource:
    """Run ``git log`` against a local repository and parse the output."""

    # Maximum git log output size (50MB) to prevent OOM on huge repos
    _MAX_OUTPUT_BYTES = 50 * 1024 * 1024

    def __init__(self, repo_path: Union[str, Path] = ".", git_path: str = "git", timeout: int = 60):
        self.repo_path = str(Path(repo_path).resolve())
        self.git_path = git_path
        self.timeout = timeout

    def verify(self) -> None:
        """Fail fast if the path is not inside a git work tree.

        Raises:
            SourceAccessError: If git is missing or the path is not a repository
        """
        try:
            result = subprocess.run(
                [self.git_path, "-C", self.repo_path, "rev-parse", "--is-inside-work-tree"],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise SourceAccessError(Path(self.repo_path), str(e)) from e

        if result.returncode != 0 or result.stdout.strip() != "true":
            reason = result.stderr.strip() or "not inside a work tree"
            raise SourceAccessError(Path(self.repo_path), reason)

    def fetch(self, query: Optional[LogQuery] = None) -> ParseResult:
        """Verify the repository, run git log, and parse the records."""
        query = query or LogQuery()
        self.verify()
        raw = self.read_log(query)
        parser = LogParser(
            include_file_stats=query.include_file_stats,
            include_diff=query.include_diff,
        )
        result = parser.parse(raw)
        logger.debug(
            "%s: %d commits parsed, %d records dropped",
            self.repo_path,
            len(result.commits),
            result.dropped,
        )
        return result

    def read_log(self, query: LogQuery) -> str:
        """Return raw git log output.

        Raises:
            GitCommandError: If git cannot be started or exits non-zero
        """
        cmd = [self.git_path, "-C", self.repo_path, *query.to_args()]
        try:
            # Use Popen for streaming to avoid loading unbounded output into memory
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise GitCommandError(cmd, None, str(e)) from e

        truncated = False
        try:
            chunks = []
            total_size = 0
            stdout = proc.stdout
            if stdout is None:
                raise GitCommandError(cmd, None, "no stdout pipe")
            while True:
                chunk = stdout.read(1024 * 1024)  # 1MB chunks
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > self._MAX_OUTPUT_BYTES:
                    logger.warning(
                        "git log output exceeded %dMB limit, truncating",
                        self._MAX_OUTPUT_BYTES // (1024 * 1024),
                    )
                    truncated = True
                    proc.kill()
                    break
                chunks.append(chunk)

            try:
                proc.wait(timeout=self.timeout)
            except subprocess.TimeoutExpired as e:
                proc.kill()
                raise GitCommandError(cmd, None, f"timed out after {self.timeout}s") from e

            stderr = proc.stderr.read() if proc.stderr else ""
            if proc.returncode != 0 and not truncated:
                raise GitCommandError(cmd, proc.returncode, stderr)
            if stderr.strip():
                logger.warning("git stderr: %s", stderr.strip())
            return "".join(chunks)
        finally:
            if proc.stdout:
                proc.stdout.close()
            if proc.stderr:
                proc.stderr.close()

    def repo_info(self) -> RepoInfo:
        """Name, remote URL and type of the repository."""
        top_level = self._git_output("rev-parse", "--show-toplevel") or self.repo_path
        url = self._git_output("config", "--get", "remote.origin.url")
        name = Path(top_level).name or "unknown"
        return RepoInfo(path=self.repo_path, name=name, url=url or None)

    def _git_output(self, *args: str) -> str:
        try:
            result = subprocess.run(
                [self.git_path, "-C", self.repo_path, *args],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            logger.debug("git %s failed: %s", " ".join(args), e)
            return ""
        return result.stdout.strip() if result.returncode == 0 else ""
