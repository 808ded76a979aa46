"""Optional JSON user configuration supplying command-line defaults."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".queuestat.json"

# Maps config keys onto the argparse destination they provide defaults for.
_KEY_TYPES: Dict[str, type] = {
    "interface": str,
    "snaplen": int,
    "count": int,
    "port": int,
    "remote": bool,
    "sudo": bool,
    "remote_dir": str,
    "resolve": bool,
    "no_summary": bool,
    "no_hosts": bool,
    "no_queues": bool,
    "sizes": bool,
    "percentiles": str,
    "filter": str,
    "jobs": int,
    "log_level": str,
}


def _coerce(key: str, value: Any) -> Any:
    expected = _KEY_TYPES[key]
    if key == "percentiles" and isinstance(value, list):
        return ",".join(str(item) for item in value)
    if expected is bool:
        if not isinstance(value, bool):
            raise ConfigError(f"Config key {key!r} must be true or false")
        return value
    if expected is int and isinstance(value, bool):
        raise ConfigError(f"Config key {key!r} must be an integer")
    try:
        return expected(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Config key {key!r} has an invalid value: {value!r}") from exc


def load_user_config(path: Optional[Union[str, Path]] = None, *, required: bool = False) -> Dict[str, Any]:
    """Read defaults from ``path`` (or the per-user default location).

    A missing default file yields an empty mapping; a missing explicit file or
    malformed content raises :class:`ConfigError`.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if required:
            raise ConfigError(f"Config file does not exist: {config_path}")
        return {}

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to read config file {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")

    defaults: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in _KEY_TYPES:
            logger.warning("Ignoring unknown config key %r in %s", key, config_path)
            continue
        defaults[key] = _coerce(key, value)
    logger.debug("Loaded %d defaults from %s", len(defaults), config_path)
    return defaults


__all__ = ["DEFAULT_CONFIG_PATH", "load_user_config"]
