"""End-to-end tests for TimesheetGenerator."""

import dataclasses
import os
import shutil
import subprocess
import tempfile
from datetime import date, datetime, timezone

import pytest

from git_timesheet.config import TimesheetConfig
from git_timesheet.exceptions import EmptyInputError, SourceAccessError
from git_timesheet.history.models import Commit
from git_timesheet.timesheet import Period, TimesheetGenerator, summarize


def _record(commit_hash, stamp, message, **extra):
    return {"hash": commit_hash, "date": stamp, "message": message, **extra}


@pytest.fixture
def records():
    """Two Monday sessions, one Tuesday session, one Saturday commit."""
    login = _record(
        "a100001",
        "2024-01-08T09:00:00Z",
        "PROJ-1 Add login form",
        branches=["feature/auth"],
        file_stats=[{"path": "src/auth/login.py", "additions": 40, "deletions": 5}],
    )
    return [
        login,
        _record("a100002", "2024-01-08T09:20:00Z", "PROJ-1 Fix login redirect", branches=["feature/auth"]),
        _record("a100003", "2024-01-08T14:00:00Z", "Update docs"),
        _record("a100004", "not-a-date", "Broken record"),
        dict(login),
        _record("a100005", "2024-01-09T10:00:00Z", "PROJ-2 Implement search", branches=["feature/search"]),
        _record("a100006", "2024-01-13T10:00:00Z", "Weekend hack"),
    ]


class TestGenerate:
    def test_entries(self, records):
        timesheet = TimesheetGenerator().generate(records)

        assert timesheet.total_sessions == 3
        first, second, third = timesheet.entries
        assert [e.id for e in timesheet.entries] == [1, 2, 3]
        assert first.date == date(2024, 1, 8)
        assert first.commit_hashes == ("a100001", "a100002")
        assert first.projects == ("auth",)
        assert first.tickets == ("PROJ-1",)
        assert first.summary == "PROJ-1 Add login form; PROJ-1 Fix login redirect"
        assert second.summary == "Update docs"
        assert third.date == date(2024, 1, 9)
        assert third.projects == ("search",)

    def test_durations(self, records):
        timesheet = TimesheetGenerator().generate(records)

        # (20 min base * 1.5 feature hint) + 0.3 * 20 min gap
        assert timesheet.entries[0].duration_minutes == pytest.approx(36)
        assert timesheet.entries[1].duration_minutes == 15
        assert timesheet.entries[2].duration_minutes == 15
        assert timesheet.total_hours == pytest.approx(1.1)

    def test_totals_and_rollups(self, records):
        timesheet = TimesheetGenerator().generate(records)

        assert timesheet.total_commits == 5
        assert timesheet.skipped_commits == 1
        assert timesheet.malformed_records == 0
        assert dict(timesheet.by_project) == {"auth": 2, "search": 1}
        assert dict(timesheet.by_ticket) == {"PROJ-1": 2, "PROJ-2": 1}
        assert timesheet.hours_by_project["auth"] == pytest.approx(0.6)
        assert timesheet.hours_by_project["search"] == pytest.approx(0.25)
        assert [e.id for e in timesheet.by_date[date(2024, 1, 8)]] == [1, 2]
        assert [e.id for e in timesheet.by_date[date(2024, 1, 9)]] == [3]
        assert timesheet.period == Period(date(2024, 1, 8), date(2024, 1, 13))
        assert timesheet.repository is None

    def test_explicit_period(self, records):
        timesheet = TimesheetGenerator().generate(records, period=("2024-01-01", "2024-01-31"))
        assert timesheet.period == Period(date(2024, 1, 1), date(2024, 1, 31))

    def test_weekends_counted_when_allowed(self, records):
        timesheet = TimesheetGenerator(TimesheetConfig(exclude_weekends=False)).generate(records)
        assert timesheet.total_sessions == 4

    def test_timesheet_is_read_only(self, records):
        timesheet = TimesheetGenerator().generate(records)

        with pytest.raises(dataclasses.FrozenInstanceError):
            timesheet.total_commits = 0
        with pytest.raises(TypeError):
            timesheet.by_project["other"] = 1

    def test_to_dict(self, records):
        data = TimesheetGenerator().generate(records).to_dict()

        assert data["period"] == {"start": "2024-01-08", "end": "2024-01-13"}
        assert data["total_sessions"] == 3
        assert data["total_commits"] == 5
        assert data["by_date"] == {"2024-01-08": [1, 2], "2024-01-09": [3]}
        assert data["sessions"][0]["start_time"] == "2024-01-08T09:00:00+00:00"
        assert data["sessions"][0]["tickets"] == ["PROJ-1"]
        assert data["hours_by_project"] == {"auth": 0.6, "search": 0.25}

    def test_input_commits_not_modified(self, make_commit):
        commit = make_commit(datetime(2024, 1, 8, 9, tzinfo=timezone.utc), "PROJ-9 Add thing")
        TimesheetGenerator().generate([commit])
        assert commit.tickets == []

    def test_repository_rollup(self):
        records = [
            _record("b100001", "2024-01-08T09:00:00Z", "Work", repo="web", repo_type="local"),
            _record("b100002", "2024-01-08T09:10:00Z", "Work", repo="api", repo_type="local"),
        ]
        timesheet = TimesheetGenerator().generate(records)

        assert timesheet.repositories == ["web", "api"]
        assert timesheet.by_repository["web"].commits == 1
        assert timesheet.by_repository["web"].repo_type == "local"
        assert timesheet.by_repository["web"].hours == pytest.approx(timesheet.total_hours / 2)
        assert timesheet.entries[0].repositories == ("web", "api")

    def test_single_repository(self):
        timesheet = TimesheetGenerator().generate(
            [_record("c100001", "2024-01-08T09:00:00Z", "Work", repo="web")]
        )
        assert timesheet.repository == "web"


class TestEmptyInput:
    def test_no_records(self):
        with pytest.raises(EmptyInputError):
            TimesheetGenerator().generate([])

    def test_only_invalid_records(self):
        with pytest.raises(EmptyInputError) as exc_info:
            TimesheetGenerator().generate([{"hash": "abc1234", "date": "bad"}, {"date": "2024-01-08"}])
        assert exc_info.value.skipped == 2
        assert exc_info.value.total == 2

    def test_missing_timestamp_on_commit_object(self):
        with pytest.raises(EmptyInputError):
            TimesheetGenerator().generate([Commit(hash="abc1234", timestamp=None)])


class TestSummarize:
    def test_more_than_five_subjects(self, make_commit):
        moment = datetime(2024, 1, 8, 9, tzinfo=timezone.utc)
        commits = [make_commit(moment, f"Step {i}\n\nDetails") for i in range(7)]
        assert summarize(commits) == "Step 0; Step 1; Step 2; Step 3; Step 4 (+2 more)"

    def test_empty(self):
        assert summarize([]) == "No commits"


class TestGenerateFromLog:
    def test_log_text(self, make_record):
        text = (
            make_record(commit_hash="abc1234", date="2024-01-08 09:00:00 +0000", body="Start work")
            + make_record(commit_hash="not-hex", body="dropped")
            + make_record(commit_hash="abc5678", date="2024-01-08 09:10:00 +0000", body="Finish work")
        )
        timesheet = TimesheetGenerator().generate_from_log(text)

        assert timesheet.total_commits == 2
        assert timesheet.entries[0].summary == "Start work; Finish work"
        assert timesheet.malformed_records == 1
        assert timesheet.to_dict()["malformed_records"] == 1

    def test_log_with_stats(self, make_record):
        text = make_record(body="Tune config\n\n3\t1\tsetup.cfg")
        timesheet = TimesheetGenerator().generate_from_log(text, include_file_stats=True)
        assert timesheet.entries[0].confidence == pytest.approx(0.7)


class TestGenerateFromRepository:
    def test_not_a_repository(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(SourceAccessError):
                TimesheetGenerator().generate_from_repository(tmpdir)

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not found")
    def test_local_repository(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            for args in (
                ["init", "-q"],
                ["config", "user.email", "test@test.com"],
                ["config", "user.name", "Test"],
                ["config", "commit.gpgsign", "false"],
            ):
                subprocess.run(["git", "-C", tmpdir, *args], capture_output=True, check=True)
            with open(os.path.join(tmpdir, "app.py"), "w") as f:
                f.write("print('hi')\n")
            env = dict(
                os.environ,
                GIT_AUTHOR_DATE="2024-01-08T09:00:00+00:00",
                GIT_COMMITTER_DATE="2024-01-08T09:00:00+00:00",
            )
            subprocess.run(["git", "-C", tmpdir, "add", "."], capture_output=True, check=True)
            subprocess.run(
                ["git", "-C", tmpdir, "commit", "-q", "-m", "PROJ-5 Add app"],
                capture_output=True,
                check=True,
                env=env,
            )

            timesheet = TimesheetGenerator().generate_from_repository(tmpdir)

        repo_name = os.path.basename(os.path.realpath(tmpdir))
        assert timesheet.total_commits == 1
        assert timesheet.repository == repo_name
        assert timesheet.by_repository[repo_name].repo_type == "local"
        assert dict(timesheet.by_ticket) == {"PROJ-5": 1}
