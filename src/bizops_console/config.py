# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for BizOps Console.

This module is responsible for:
- loading the main application configuration from a TOML file,
- applying defaults for every optional section,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig

DEFAULT_CONFIG_FILE = "bizops_config.toml"

_DISPLAY_MODES = {"table", "csv", "both"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class IdentityConfig:
    """Where user documents live and who the CLI acts as by default."""

    users_collection: str = "users"
    default_user: Optional[str] = None


@dataclass(frozen=True)
class IdsConfig:
    """Options for human-readable id generation."""

    max_attempts: int = 10


@dataclass(frozen=True)
class DashboardConfig:
    """Defaults for the marketing & sales dashboard."""

    default_months: int = 6
    top_campaigns: int = 5


@dataclass(frozen=True)
class DisplayConfig:
    """Options for CLI rendering."""

    mode: str = "table"
    decimals: int = 2
    output_dir: Path = Path("data/output")


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for BizOps Console.

    This aggregates:
    - the database configuration (where documents are stored),
    - the identity options (users collection, default CLI user),
    - id generation options,
    - dashboard defaults,
    - display options for tables and CSV exports,
    - the logging level.
    """

    database: DatabaseConfig
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    ids: IdsConfig = field(default_factory=IdsConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    log_level: str = "WARNING"


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a top-level table, or an empty mapping if it is missing."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Config section [{name}] must be a table.")
    return section


def _positive_int(
    section: Mapping[str, Any], key: str, default: int, label: str
) -> int:
    raw_value = section.get(key, default)
    try:
        value = int(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{label}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc
    if value < 1:
        raise ValueError(f"'{label}.{key}' must be at least 1.")
    return value


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the BizOps Console application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [database]
        Database engine and SQLite file path.

    [identity]
        Name of the users collection and the default CLI user (email).

    [ids]
        Maximum number of attempts when generating unique record ids.

    [dashboard]
        Default period (in months) and number of top campaigns shown on the
        marketing & sales dashboard.

    [display]
        Display mode ("table", "csv", "both"), decimals and CSV output folder.

    [logging]
        Logging level ("DEBUG", "INFO", "WARNING", ...).

    Every section is optional. All file paths are resolved relative to the
    directory of the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``bizops_config.toml`` in the current working directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If the file cannot be parsed or a value is invalid.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/bizops.sqlite"
    database_config = DatabaseConfig(
        engine=db_engine,
        path=(base_dir / str(db_path_raw)).resolve(),
    )

    # 2) Identity section
    identity_section = _section(raw, "identity")
    default_user = identity_section.get("default_user") or None
    identity = IdentityConfig(
        users_collection=str(identity_section.get("users_collection") or "users"),
        default_user=str(default_user) if default_user else None,
    )

    # 3) Id generation
    ids = IdsConfig(
        max_attempts=_positive_int(_section(raw, "ids"), "max_attempts", 10, "ids")
    )

    # 4) Dashboard defaults
    dashboard_section = _section(raw, "dashboard")
    dashboard = DashboardConfig(
        default_months=_positive_int(
            dashboard_section, "default_months", 6, "dashboard"
        ),
        top_campaigns=_positive_int(dashboard_section, "top_campaigns", 5, "dashboard"),
    )

    # 5) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in _DISPLAY_MODES:
        raise ValueError(
            f"Invalid display.mode {display_mode!r}, expected one of "
            f"{', '.join(sorted(_DISPLAY_MODES))}."
        )
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2
    output_dir_raw = display_section.get("output_dir") or "data/output"
    display = DisplayConfig(
        mode=display_mode,
        decimals=decimals,
        output_dir=(base_dir / str(output_dir_raw)).resolve(),
    )

    # 6) Logging
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", "WARNING")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"Invalid logging.level {log_level!r}.")

    return AppConfig(
        database=database_config,
        identity=identity,
        ids=ids,
        dashboard=dashboard,
        display=display,
        log_level=log_level,
    )
