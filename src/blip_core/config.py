"""Configuration loading for blip."""

import logging
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from blip_core.models import WatchConfiguration

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "blip.toml"


def _strict_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected true or false, got {type(value).__name__}")
    return value


# [watch] key -> (WatchConfiguration field, converter)
_KEYS = {
    "root": ("root", Path),
    "interval_ms": ("interval", lambda v: float(v) / 1000.0),
    "extensions": ("extensions", lambda v: v if isinstance(v, str) else [str(e) for e in v]),
    "ignore_vcs": ("ignore_vcs", _strict_bool),
    "verbose": ("verbose", _strict_bool),
    "command": ("command", str),
    "restart_delay_ms": ("restart_delay", lambda v: float(v) / 1000.0),
    "grace_period_ms": ("grace_period", lambda v: float(v) / 1000.0),
    "port": ("port", int),
    "backend": ("backend", str),
}


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read the ``[watch]`` table of a TOML file into WatchConfiguration kwargs.

    Relative ``root`` values are resolved against the file's directory.

    Args:
        path: Path to TOML config file

    Returns:
        Keyword arguments for :class:`WatchConfiguration`

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if the file is not valid TOML or a value has the wrong type
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except Exception as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e

    table = raw.get("watch", {})
    if not isinstance(table, dict):
        raise ValueError(f"[watch] in {path} must be a table")

    values: dict[str, Any] = {}
    for key, value in table.items():
        if key not in _KEYS:
            logger.warning(f"Ignoring unknown key '{key}' in {path}")
            continue
        field_name, convert = _KEYS[key]
        try:
            values[field_name] = convert(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for '{key}' in {path}: {value!r}") from e

    if "root" in values and not values["root"].is_absolute():
        values["root"] = path.parent / values["root"]
    return values


def load_watch_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> WatchConfiguration:
    """Build the configuration from an optional file plus explicit overrides.

    If ``path`` is None, ``blip.toml`` in the current directory is used when it
    exists. Overrides whose value is None are ignored, so unset CLI flags fall
    back to the file and then to the defaults.

    Args:
        path: Explicit config file (must exist) or None
        overrides: Field values taking precedence over the file

    Returns:
        Normalized WatchConfiguration
    """
    values: dict[str, Any] = {}
    if path is not None:
        values.update(read_config_file(path))
    elif Path(DEFAULT_CONFIG_NAME).exists():
        logger.debug(f"Using {DEFAULT_CONFIG_NAME}")
        values.update(read_config_file(DEFAULT_CONFIG_NAME))

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    return WatchConfiguration(**values)
