"""Tests for timestamp parsing, normalization, dedup and ordering."""

from datetime import date, datetime, timedelta, timezone

import pytest

from git_timesheet.exceptions import InvalidTimestampError
from git_timesheet.history.models import Commit, FileStat, RawCommit
from git_timesheet.history.normalize import (
    deduplicate,
    normalize_commit,
    normalize_commits,
    parse_instant,
    sort_by_date,
)

UTC = timezone.utc


class TestParseInstant:
    """Every accepted date shape resolves to an aware UTC datetime."""

    def test_git_format_with_offset(self):
        result = parse_instant("2024-01-08 10:30:00 +0100")
        assert result == datetime(2024, 1, 8, 9, 30, tzinfo=UTC)
        assert result.tzinfo == UTC

    def test_iso_with_z(self):
        assert parse_instant("2024-01-08T09:00:00Z") == datetime(2024, 1, 8, 9, tzinfo=UTC)

    def test_naive_datetime_taken_as_utc(self):
        assert parse_instant(datetime(2024, 1, 8, 9)) == datetime(2024, 1, 8, 9, tzinfo=UTC)

    def test_aware_datetime_converted(self):
        plus_two = timezone(timedelta(hours=2))
        assert parse_instant(datetime(2024, 1, 8, 11, tzinfo=plus_two)) == datetime(
            2024, 1, 8, 9, tzinfo=UTC
        )

    def test_date_is_midnight(self):
        assert parse_instant(date(2024, 1, 8)) == datetime(2024, 1, 8, tzinfo=UTC)

    def test_epoch_seconds_and_milliseconds(self):
        expected = datetime(2024, 1, 8, 9, tzinfo=UTC)
        seconds = expected.timestamp()
        assert parse_instant(seconds) == expected
        assert parse_instant(int(seconds * 1000)) == expected

    def test_rfc2822(self):
        assert parse_instant("Mon, 08 Jan 2024 09:00:00 +0000") == datetime(
            2024, 1, 8, 9, tzinfo=UTC
        )

    @pytest.mark.parametrize("value", [None, "", "not a date", True, float("nan")])
    def test_invalid_values(self, value):
        with pytest.raises(InvalidTimestampError):
            parse_instant(value)

    def test_error_carries_context(self):
        with pytest.raises(InvalidTimestampError) as exc_info:
            parse_instant("garbage", field="timestamp", hash_prefix="abc1234")
        error = exc_info.value
        assert error.field == "timestamp"
        assert error.details["hash"] == "abc1234"
        assert "garbage" in error.details["value"]


class TestNormalizeCommit:
    def test_raw_commit(self):
        raw = RawCommit(
            hash="abc1234",
            author_name="Jane",
            author_email="jane@example.com",
            date="2024-01-08 09:00:00 +0000",
            message="Add feature",
            branches=["main", "main"],
            file_stats=[FileStat("a.py", 1, 2)],
        )
        commit = normalize_commit(raw)

        assert isinstance(commit, Commit)
        assert commit.timestamp == datetime(2024, 1, 8, 9, tzinfo=UTC)
        assert commit.branches == ["main"]
        assert commit.file_stats == [FileStat("a.py", 1, 2)]
        assert commit.diff == ""
        assert commit.repo == ""
        assert commit.tickets == []

    def test_mapping_with_camel_case_keys(self):
        commit = normalize_commit(
            {
                "hash": "abc1234",
                "date": "2024-01-08T09:00:00Z",
                "authorName": "Jane",
                "fileStats": [{"filePath": "src/x.ts", "additions": 3, "deletions": 1}],
                "repoType": "github",
            }
        )
        assert commit.author_name == "Jane"
        assert commit.file_stats == [FileStat("src/x.ts", 3, 1)]
        assert commit.repo_type == "github"

    def test_binary_stat_counts_as_zero(self):
        commit = normalize_commit(
            {
                "hash": "abc1234",
                "date": "2024-01-08T09:00:00Z",
                "fileStats": [{"filePath": "logo.png", "additions": "-", "deletions": "-"}],
            }
        )
        assert commit.file_stats == [FileStat("logo.png", 0, 0)]

    def test_non_numeric_stat_entry_dropped(self):
        commit = normalize_commit(
            {
                "hash": "abc1234",
                "date": "2024-01-08T09:00:00Z",
                "file_stats": [
                    {"path": "a.py", "additions": "4", "deletions": "3x"},
                    {"path": "b.py", "additions": 2, "deletions": 1},
                ],
            }
        )
        assert commit.file_stats == [FileStat("b.py", 2, 1)]

    def test_single_string_branch_and_ticket(self):
        commit = normalize_commit(
            {"hash": "abc1234", "date": "2024-01-08T09:00:00Z", "branches": "main", "tickets": "PROJ-1"}
        )
        assert commit.branches == ["main"]
        assert commit.tickets == ["PROJ-1"]

    def test_missing_hash_or_bad_date_returns_none(self):
        assert normalize_commit({"date": "2024-01-08T09:00:00Z"}) is None
        assert normalize_commit({"hash": "abc1234", "date": "nope"}) is None
        assert normalize_commit({"hash": "abc1234"}) is None
        assert normalize_commit(None) is None

    def test_idempotent(self):
        first = normalize_commit(
            {"hash": "abc1234", "date": "2024-01-08T09:00:00Z", "message": "x", "tickets": ["T-1"]}
        )
        second = normalize_commit(first)
        assert second == first

    def test_normalize_commits_counts_skipped(self):
        records = [
            {"hash": "a" * 7, "date": "2024-01-08T09:00:00Z"},
            {"hash": "b" * 7, "date": "invalid"},
            {"hash": "c" * 7, "date": "2024-01-08T10:00:00Z"},
        ]
        commits, skipped = normalize_commits(records)
        assert [c.hash for c in commits] == ["aaaaaaa", "ccccccc"]
        assert skipped == 1


class TestDeduplicateAndSort:
    def _commit(self, commit_hash, hour):
        return Commit(hash=commit_hash, timestamp=datetime(2024, 1, 8, hour, tzinfo=UTC))

    def test_deduplicate_keeps_first(self):
        first = self._commit("aaa", 9)
        duplicate = self._commit("aaa", 12)
        other = self._commit("bbb", 10)

        result = deduplicate([first, other, duplicate])
        assert result == [first, other]
        assert deduplicate(result) == result

    def test_sort_newest_first_without_mutating(self):
        commits = [self._commit("a", 9), self._commit("b", 11), self._commit("c", 10)]
        original = list(commits)

        result = sort_by_date(commits)

        assert [c.hash for c in result] == ["b", "c", "a"]
        assert commits == original
        assert all(x.timestamp >= y.timestamp for x, y in zip(result, result[1:]))
