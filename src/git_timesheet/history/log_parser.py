"""Decode raw ``git log`` text into RawCommit records.

Expected record layout (records are separated by a sentinel line)::

    <hash>[ (<ref decorations>)]
    <author name>
    <author email>
    <date>
    <message body ...>
    <blank line>                  only with file stats
    <additions> <deletions> <path>
    ...

Metadata lines are recognised by content rather than position, so a message
line that happens to look like a hash or a stat line is never mistaken for
one once the metadata has been read.
"""

from __future__ import annotations

import re
from typing import Optional

from ..exceptions import InvalidTimestampError, MalformedRecordError
from ..logging_config import get_logger
from .models import FileStat, ParseResult, RawCommit
from .normalize import parse_instant

logger = get_logger(__name__)

RECORD_SENTINEL = "---COMMIT-END---"

# Hash line: 7-40 hex chars, optionally followed by a "(...)" ref decoration
_HASH_RE = re.compile(r"^(?P<hash>[0-9a-fA-F]{7,40})(?:\s+\((?P<refs>[^()]*)\))?$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}")
_STAT_RE = re.compile(r"^\s*(\d+|-)\s+(\d+|-)\s+(.+)$")

_DIFF_START = "diff --git"
_CURRENT_REF = "HEAD -> "
_LOCAL_BRANCH_REF = "refs/heads/"

# hash, author name, author email, date
_METADATA_FIELDS = 4


def parse_branches(decoration: str) -> list[str]:
    """Extract local branch names from a ``--decorate=full`` ref list.

    Only the current ref (``HEAD -> x``) and local branches
    (``refs/heads/x``) are kept; tags and remote refs are ignored.
    """
    branches: list[str] = []
    for entry in decoration.split(","):
        ref = entry.strip()
        if ref.startswith(_CURRENT_REF):
            ref = ref[len(_CURRENT_REF):].strip()
        elif not ref.startswith(_LOCAL_BRANCH_REF):
            continue
        if ref.startswith(_LOCAL_BRANCH_REF):
            ref = ref[len(_LOCAL_BRANCH_REF):]
        if ref and ref not in branches:
            branches.append(ref)
    return branches


def parse_stat_line(line: str) -> Optional[FileStat]:
    """Parse ``<additions> <deletions> <path>``; ``-`` (binary) counts as 0."""
    match = _STAT_RE.match(line)
    if not match:
        return None
    added, deleted, path = match.groups()
    return FileStat(
        path=path.strip(),
        additions=0 if added == "-" else int(added),
        deletions=0 if deleted == "-" else int(deleted),
    )


def split_records(text: str, sentinel: str = RECORD_SENTINEL) -> list[list[str]]:
    """Split a log blob on sentinel lines, trimming blank edges of each record."""
    records: list[list[str]] = []
    current: list[str] = []
    for line in text.splitlines():
        if line.strip() == sentinel:
            records.append(current)
            current = []
        else:
            current.append(line)
    records.append(current)

    trimmed = []
    for lines in records:
        start, end = 0, len(lines)
        while start < end and not lines[start].strip():
            start += 1
        while end > start and not lines[end - 1].strip():
            end -= 1
        if start < end:
            trimmed.append(lines[start:end])
    return trimmed


class LogParser:
    """Parse sentinel-separated git log output.

    Attributes:
        include_file_stats: Parse a numstat block after the message
        include_diff: Split a trailing ``diff --git`` patch off the message
    """

    def __init__(
        self,
        include_file_stats: bool = False,
        include_diff: bool = False,
        sentinel: str = RECORD_SENTINEL,
    ):
        self.include_file_stats = include_file_stats
        self.include_diff = include_diff
        self.sentinel = sentinel

    def parse(self, text: str) -> ParseResult:
        """Decode every record; malformed ones are dropped and counted."""
        commits: list[RawCommit] = []
        dropped = 0

        for lines in split_records(text, self.sentinel):
            try:
                commits.append(self.parse_record(lines))
            except MalformedRecordError as e:
                dropped += 1
                logger.debug("Dropping record: %s", e)

        if dropped:
            logger.debug("Parsed %d commits, dropped %d malformed records", len(commits), dropped)
        return ParseResult(commits=commits, dropped=dropped)

    def parse_record(self, lines: list[str]) -> RawCommit:
        """Decode one record's lines.

        Raises:
            MalformedRecordError: If the metadata fields cannot be validated
        """
        if len(lines) < _METADATA_FIELDS:
            raise MalformedRecordError(f"only {len(lines)} lines", raw="\n".join(lines))

        fields, refs, date_index = self._read_metadata(lines)
        commit_hash, author_name, author_email, date_string = fields

        if not date_string.strip():
            raise MalformedRecordError("empty date string", hash_prefix=commit_hash[:7])
        try:
            parse_instant(date_string, hash_prefix=commit_hash[:7])
        except InvalidTimestampError as e:
            raise MalformedRecordError(
                "unparsable date", hash_prefix=commit_hash[:7], raw=date_string
            ) from e

        message, file_stats, diff = self._read_body(lines[date_index + 1:])

        return RawCommit(
            hash=commit_hash,
            author_name=author_name,
            author_email=author_email,
            date=date_string,
            message=message,
            branches=parse_branches(refs) if refs else [],
            file_stats=file_stats,
            diff=diff,
        )

    def _read_metadata(self, lines: list[str]) -> tuple[list[str], str, int]:
        """Collect hash/name/email/date, validating each candidate by content.

        Returns the four fields, the raw ref decoration and the index of the
        date line.
        """
        fields: list[str] = []
        refs = ""
        index = -1

        for index, line in enumerate(lines):
            candidate = line.strip()
            if not candidate:
                continue

            if not fields:
                match = _HASH_RE.match(candidate)
                if not match:
                    break
                fields.append(match.group("hash"))
                refs = match.group("refs") or ""
            elif len(fields) == _METADATA_FIELDS - 1:
                if not _DATE_RE.match(candidate):
                    break
                fields.append(candidate)
                return fields, refs, index
            else:
                fields.append(candidate)

        hash_prefix = fields[0][:7] if fields else None
        raise MalformedRecordError(
            f"only {len(fields)} valid metadata fields",
            hash_prefix=hash_prefix,
            raw=lines[index] if 0 <= index < len(lines) else None,
        )

    def _read_body(self, rest: list[str]) -> tuple[str, list[FileStat], str]:
        file_stats: list[FileStat] = []
        diff_lines: list[str] = []

        if self.include_file_stats:
            # The first blank line after the date ends the message. Messages
            # with several paragraphs lose everything after the first one.
            message_end = next((i for i, line in enumerate(rest) if not line.strip()), len(rest))
            message_lines = rest[:message_end]

            index = message_end + 1
            # git may emit more than one separator line before --numstat output
            while index < len(rest) and not rest[index].strip():
                index += 1
            while index < len(rest):
                line = rest[index]
                if not line.strip():
                    break
                stat = parse_stat_line(line)
                if stat is None:
                    break
                file_stats.append(stat)
                index += 1

            if self.include_diff:
                diff_start = next(
                    (i for i in range(index, len(rest)) if rest[i].startswith(_DIFF_START)), None
                )
                if diff_start is not None:
                    diff_lines = rest[diff_start:]
        else:
            message_lines = rest
            if self.include_diff:
                diff_start = next(
                    (i for i, line in enumerate(rest) if line.startswith(_DIFF_START)), None
                )
                if diff_start is not None:
                    message_lines = rest[:diff_start]
                    diff_lines = rest[diff_start:]

        message = "\n".join(message_lines).strip()
        diff = "\n".join(diff_lines).strip()
        return message, file_stats, diff


def parse_log(text: str, include_file_stats: bool = False, include_diff: bool = False) -> ParseResult:
    """Convenience wrapper around LogParser.parse()."""
    return LogParser(include_file_stats=include_file_stats, include_diff=include_diff).parse(text)
