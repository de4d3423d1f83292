# File: config.py
"""Options for MissionBoard.

Options are plain dicts validated by `OPTIONS_SCHEMA`; missing keys fall back
to the DEFAULT_* values in const.py. They can be passed in directly or read
from a YAML file:

    display_cap: 7
    min_horizon_days: 14
    max_horizon_days: 18300
    log_level: INFO
    store_path: ~/.missionboard/state.json
"""

from __future__ import annotations

from collections.abc import Mapping
import os
from pathlib import Path
from typing import Any

import voluptuous as vol
import yaml

from . import const


def _check_horizon_bounds(options: dict[str, Any]) -> dict[str, Any]:
    """Reject a minimum horizon larger than the maximum."""
    if options[const.CONF_MIN_HORIZON_DAYS] > options[const.CONF_MAX_HORIZON_DAYS]:
        raise vol.Invalid(
            f"{const.CONF_MIN_HORIZON_DAYS} must not exceed "
            f"{const.CONF_MAX_HORIZON_DAYS}"
        )
    return options


def _expand_path(value: Any) -> str | None:
    """Expand ~ in the store path; empty means in-memory."""
    if value is None or value == "":
        return None
    return os.path.expanduser(str(value))


_POSITIVE_INT = vol.All(vol.Coerce(int), vol.Range(min=1))

OPTIONS_SCHEMA = vol.Schema(
    vol.All(
        vol.Schema(
            {
                vol.Optional(
                    const.CONF_DISPLAY_CAP, default=const.DEFAULT_DISPLAY_CAP
                ): _POSITIVE_INT,
                vol.Optional(
                    const.CONF_MIN_HORIZON_DAYS,
                    default=const.DEFAULT_MIN_HORIZON_DAYS,
                ): _POSITIVE_INT,
                vol.Optional(
                    const.CONF_MAX_HORIZON_DAYS,
                    default=const.DEFAULT_MAX_HORIZON_DAYS,
                ): _POSITIVE_INT,
                vol.Optional(const.CONF_LOG_LEVEL, default=const.DEFAULT_LOG_LEVEL): vol.All(
                    str, vol.Upper, vol.In(const.LOG_LEVEL_OPTIONS)
                ),
                vol.Optional(const.CONF_STORE_PATH, default=None): _expand_path,
            }
        ),
        _check_horizon_bounds,
    )
)


def default_options() -> dict[str, Any]:
    """Return the options with every default applied."""
    return OPTIONS_SCHEMA({})


def load_options(
    source: Mapping[str, Any] | str | os.PathLike[str] | None = None,
) -> dict[str, Any]:
    """Validate options from a mapping or a YAML file.

    Args:
        source: Options mapping, path to a YAML file, or None for defaults.

    Returns:
        Validated options dict.

    Raises:
        voluptuous.Invalid: If an option is invalid or the YAML document is
            not a mapping.
        OSError: If the YAML file cannot be read.
    """
    if source is None:
        return default_options()

    if isinstance(source, Mapping):
        return OPTIONS_SCHEMA(dict(source))

    path = Path(source)
    with path.open(encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise vol.Invalid(f"Options file {path} must contain a mapping")

    const.LOGGER.debug("Loaded options from %s: %s", path, sorted(raw))
    return OPTIONS_SCHEMA(raw)


def apply_log_level(options: Mapping[str, Any]) -> None:
    """Set the package logger level from the log_level option."""
    level = options.get(const.CONF_LOG_LEVEL, const.DEFAULT_LOG_LEVEL)
    const.LOGGER.setLevel(level)
