"""Tests for config.py option validation and YAML loading."""

import logging
import os
from pathlib import Path

import pytest
import voluptuous as vol

from missionboard import const
from missionboard.config import (
    OPTIONS_SCHEMA,
    apply_log_level,
    default_options,
    load_options,
)


class TestOptionsSchema:
    """Test OPTIONS_SCHEMA defaults and validation."""

    def test_defaults(self) -> None:
        """Every option has a default."""
        assert default_options() == {
            const.CONF_DISPLAY_CAP: const.DEFAULT_DISPLAY_CAP,
            const.CONF_MIN_HORIZON_DAYS: const.DEFAULT_MIN_HORIZON_DAYS,
            const.CONF_MAX_HORIZON_DAYS: const.DEFAULT_MAX_HORIZON_DAYS,
            const.CONF_LOG_LEVEL: const.DEFAULT_LOG_LEVEL,
            const.CONF_STORE_PATH: None,
        }

    def test_numeric_strings_coerced(self) -> None:
        """Numbers given as strings are accepted."""
        options = OPTIONS_SCHEMA({const.CONF_DISPLAY_CAP: "3"})
        assert options[const.CONF_DISPLAY_CAP] == 3

    def test_log_level_case_insensitive(self) -> None:
        """Log levels are upper-cased."""
        assert OPTIONS_SCHEMA({const.CONF_LOG_LEVEL: "debug"})[const.CONF_LOG_LEVEL] == (
            "DEBUG"
        )

    @pytest.mark.parametrize(
        "options",
        [
            {const.CONF_DISPLAY_CAP: 0},
            {const.CONF_LOG_LEVEL: "LOUD"},
            {const.CONF_MIN_HORIZON_DAYS: 100, const.CONF_MAX_HORIZON_DAYS: 50},
            {"unknown_option": True},
        ],
    )
    def test_invalid_options(self, options: dict) -> None:
        """Invalid options raise voluptuous.Invalid."""
        with pytest.raises(vol.Invalid):
            OPTIONS_SCHEMA(options)

    def test_store_path_expanded(self) -> None:
        """~ is expanded in the store path."""
        options = OPTIONS_SCHEMA({const.CONF_STORE_PATH: "~/missionboard.json"})
        assert options[const.CONF_STORE_PATH] == os.path.expanduser(
            "~/missionboard.json"
        )


class TestLoadOptions:
    """Test load_options() sources."""

    def test_none_gives_defaults(self) -> None:
        """No source means defaults."""
        assert load_options() == default_options()

    def test_mapping(self) -> None:
        """Mappings are validated directly."""
        assert load_options({const.CONF_DISPLAY_CAP: 5})[const.CONF_DISPLAY_CAP] == 5

    def test_yaml_file(self, tmp_path: Path) -> None:
        """YAML files are read with PyYAML."""
        path = tmp_path / "missionboard.yaml"
        path.write_text(
            "display_cap: 3\nmin_horizon_days: 21\nlog_level: info\n",
            encoding="utf-8",
        )
        options = load_options(path)
        assert options[const.CONF_DISPLAY_CAP] == 3
        assert options[const.CONF_MIN_HORIZON_DAYS] == 21
        assert options[const.CONF_LOG_LEVEL] == "INFO"

    def test_empty_yaml_file(self, tmp_path: Path) -> None:
        """An empty file means defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_options(str(path)) == default_options()

    def test_yaml_list_rejected(self, tmp_path: Path) -> None:
        """A YAML document that is not a mapping is invalid."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(vol.Invalid):
            load_options(path)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Missing files surface as OSError."""
        with pytest.raises(OSError):
            load_options(tmp_path / "missing.yaml")


class TestApplyLogLevel:
    """Test apply_log_level()."""

    @pytest.mark.usefixtures("restore_log_level")
    def test_sets_package_logger_level(self) -> None:
        """The package logger follows the log_level option."""
        apply_log_level(OPTIONS_SCHEMA({const.CONF_LOG_LEVEL: "debug"}))
        assert const.LOGGER.level == logging.DEBUG
