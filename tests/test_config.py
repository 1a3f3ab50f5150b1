"""Tests for configuration loading."""

from datetime import date, timedelta

import pytest
import toml

from timew_import.config import (
    default_config,
    default_config_path,
    get_earliest_date,
    get_max_future,
    get_offset,
    load_config,
    with_overrides,
)
from timew_import.config_validation import validate_config


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, tmp_path) -> None:
        config = load_config()

        assert get_offset(config) == 480
        assert get_earliest_date(config) == date(2024, 1, 1)
        assert get_max_future(config) == timedelta(days=365)
        assert config["timew"]["command"] == ["timew"]
        assert config["database"]["url"] == f"sqlite:///{tmp_path / 'data' / 'timew-import' / 'entries.db'}"

    def test_default_config_is_valid(self) -> None:
        errors, warnings = validate_config(toml.loads(default_config))
        assert errors == []
        assert warnings == []

    def test_explicit_file_is_merged(self, tmp_path) -> None:
        path = tmp_path / "custom.toml"
        path.write_text('utc_offset = "-05:00"\n[timew]\ntimeout = 5\n')

        config = load_config(path)

        assert get_offset(config) == -300
        assert config["timew"]["timeout"] == 5
        assert config["timew"]["command"] == ["timew"]

    def test_default_location_is_read(self) -> None:
        path = default_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("max_future_days = 30\n")

        assert get_max_future(load_config()) == timedelta(days=30)

    def test_missing_explicit_file_raises(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_native_toml_date(self, tmp_path) -> None:
        path = tmp_path / "custom.toml"
        path.write_text("earliest_date = 2025-06-01\n")

        assert get_earliest_date(load_config(path)) == date(2025, 6, 1)

    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("TIMEW_IMPORT_DB_URL", "sqlite:////tmp/other.db")
        monkeypatch.setenv("START_DATE", "2025-03-01")

        config = load_config()

        assert config["database"]["url"] == "sqlite:////tmp/other.db"
        assert get_earliest_date(config) == date(2025, 3, 1)


class TestWithOverrides:
    """Tests for command-line overrides."""

    def test_overrides_are_applied_to_a_copy(self) -> None:
        config = load_config()

        result = with_overrides(config, offset="+05:30", db_url="sqlite:///x.db")

        assert get_offset(result) == 330
        assert result["database"]["url"] == "sqlite:///x.db"
        assert get_offset(config) == 480

    def test_none_values_are_ignored(self) -> None:
        config = load_config()
        assert with_overrides(config, offset=None, db_url=None) == config
