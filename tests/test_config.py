"""Tests for configuration defaults, validation and loading."""

import dataclasses
import os
from datetime import date

import pytest

from git_timesheet.config import (
    DEFAULT_CONFIG,
    ComplexityMultipliers,
    ProjectMapping,
    TimesheetConfig,
    WorkHours,
    load_config,
    parse_hhmm,
)
from git_timesheet.exceptions import ConfigurationError, InvalidConfigError


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """No global/project config files and no GIT_TIMESHEET_* variables."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    for name in [k for k in os.environ if k.startswith("GIT_TIMESHEET_")]:
        monkeypatch.delenv(name)
    return tmp_path


class TestDefaults:
    def test_values(self):
        config = TimesheetConfig()
        assert config.gap_threshold == 30
        assert config.merge_gap == 60
        assert config.min_session_duration == 15
        assert config.max_session_duration == 480
        assert config.base_time_per_commit == 10
        assert config.exclude_weekends is True
        assert config.exclude_holidays is False
        assert config.work_hours == WorkHours("09:00", "17:00")
        assert config.complexity_multipliers.refactor == 2.0
        assert config.timezone == "UTC"
        assert config.learn_patterns is False

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.gap_threshold = 10


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"gap_threshold": -1},
            {"merge_gap": -5},
            {"min_session_duration": 100, "max_session_duration": 50},
            {"timezone": "Mars/Olympus_Mons"},
            {"custom_holidays": ("2024-13-01",)},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(InvalidConfigError):
            TimesheetConfig(**kwargs)

    def test_custom_holidays_coerced(self):
        config = TimesheetConfig(custom_holidays=("2024-12-24", date(2024, 12, 31)))
        assert config.custom_holidays == (date(2024, 12, 24), date(2024, 12, 31))

    def test_work_hours(self):
        assert parse_hhmm("09:30") == 570
        assert parse_hhmm("24:00") == 1440
        with pytest.raises(InvalidConfigError):
            parse_hhmm("25:00")
        with pytest.raises(InvalidConfigError):
            WorkHours("18:00", "09:00")

    def test_multipliers_positive(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            ComplexityMultipliers(test=0)
        assert exc_info.value.key == "complexity_multipliers.test"

    def test_project_mapping_unknown_keys(self):
        with pytest.raises(ConfigurationError):
            ProjectMapping.from_dict({"branches": ["x/*"], "folders": ["y"]})


class TestLoadConfig:
    def test_defaults_without_sources(self, isolated):
        assert load_config() == TimesheetConfig()

    def test_toml_file(self, isolated):
        config_file = isolated / "custom.toml"
        config_file.write_text(
            "gap_threshold = 45\n"
            "exclude_holidays = true\n"
            'custom_holidays = ["2024-12-24"]\n'
            "\n"
            "[work_hours]\n"
            'start = "08:00"\n'
            'end = "16:00"\n'
            "\n"
            "[complexity_multipliers]\n"
            "feature = 2.5\n"
            "\n"
            "[projects.billing]\n"
            'branches = ["billing/*"]\n'
            'keywords = ["invoice"]\n'
        )
        config = load_config(config_file)

        assert config.gap_threshold == 45
        assert config.exclude_holidays is True
        assert config.custom_holidays == (date(2024, 12, 24),)
        assert config.work_hours == WorkHours("08:00", "16:00")
        assert config.complexity_multipliers.feature == 2.5
        assert config.complexity_multipliers.refactor == 2.0
        assert config.projects["billing"] == ProjectMapping(branches=("billing/*",), keywords=("invoice",))

    def test_precedence(self, isolated, monkeypatch):
        (isolated / "home" / ".git-timesheet.toml").write_text("gap_threshold = 20\nmerge_gap = 90\n")
        (isolated / "work" / "git-timesheet.toml").write_text("gap_threshold = 25\n")
        monkeypatch.setenv("GIT_TIMESHEET_MERGE_GAP", "75")
        monkeypatch.setenv("GIT_TIMESHEET_EXCLUDE_WEEKENDS", "false")

        config = load_config(base_time_per_commit=12)

        assert config.gap_threshold == 25
        assert config.merge_gap == 75
        assert config.exclude_weekends is False
        assert config.base_time_per_commit == 12

    def test_overrides_win_over_env(self, isolated, monkeypatch):
        monkeypatch.setenv("GIT_TIMESHEET_GAP_THRESHOLD", "50")
        assert load_config(gap_threshold=10).gap_threshold == 10

    def test_bad_env_value(self, isolated, monkeypatch):
        monkeypatch.setenv("GIT_TIMESHEET_GAP_THRESHOLD", "soon")
        with pytest.raises(InvalidConfigError):
            load_config()

    def test_missing_file(self, isolated):
        with pytest.raises(ConfigurationError):
            load_config(isolated / "nope.toml")

    def test_invalid_toml(self, isolated):
        broken = isolated / "broken.toml"
        broken.write_text("gap_threshold = = 3\n")
        with pytest.raises(ConfigurationError):
            load_config(broken)

    def test_unknown_key(self, isolated):
        with pytest.raises(ConfigurationError):
            load_config(colour="blue")
