# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.

"""
Settings file support for NetPulse.

Dashboard settings live in ``~/.netpulse.conf``, written either as INI::

    [default]
    feed_url = http://collector:3000/api/stats
    refresh_interval = 15

    [expanded]
    cat-up-core
    group:cat-up-core:edge1:10.0.0.0/24

or as the equivalent YAML document with a ``default`` mapping and an
``expanded`` list.  Every value is validated while loading, so a bad file
is rejected at startup with the offending setting named.

Priority order: CLI args > ~/.netpulse.conf > hardcoded defaults
"""

import configparser
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.netpulse.conf")

MIN_REFRESH_INTERVAL = 1
MAX_REFRESH_INTERVAL = 3600

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
SNAPSHOT_ZONES = ("utc", "display")

_FLAG_WORDS = {
    "true": True,
    "yes": True,
    "on": True,
    "1": True,
    "false": False,
    "no": False,
    "off": False,
    "0": False,
}


def _number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"expected a number, got {value!r}") from None


def _feed_url(value: Any) -> str:
    url = str(value).strip()
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"expected an http:// or https:// URL, got {url!r}")
    return url


def _refresh_interval(value: Any) -> int:
    seconds = _number(value)
    if not seconds.is_integer():
        raise ValueError(f"expected whole seconds, got {value!r}")
    if not MIN_REFRESH_INTERVAL <= seconds <= MAX_REFRESH_INTERVAL:
        raise ValueError(f"must be between {MIN_REFRESH_INTERVAL} and {MAX_REFRESH_INTERVAL} seconds, got {value!r}")
    return int(seconds)


def _request_timeout(value: Any) -> float:
    seconds = _number(value)
    if not seconds > 0:
        raise ValueError(f"must be a positive number of seconds, got {value!r}")
    return seconds


def _delay(value: Any) -> float:
    seconds = _number(value)
    if not seconds >= 0:
        raise ValueError(f"must not be negative, got {value!r}")
    return seconds


def _timezone_name(value: Any) -> str:
    name = str(value).strip()
    if name.upper() == "UTC":
        return "UTC"
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown IANA timezone {name!r}") from None
    return name


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word not in _FLAG_WORDS:
        raise ValueError(f"cannot read {value!r} as a boolean; use true/false, yes/no, 1/0 or on/off")
    return _FLAG_WORDS[word]


def _log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"expected one of {', '.join(LOG_LEVELS)}, got {value!r}")
    return level


def _log_file(value: Any) -> str:
    return os.path.expanduser(str(value).strip())


def _snapshot_timezone(value: Any) -> str:
    zone = str(value).strip().lower()
    if zone not in SNAPSHOT_ZONES:
        raise ValueError(f"expected 'utc' or 'display', got {value!r}")
    return zone


# Setting name -> validator returning the typed value or raising ValueError
SETTINGS: Dict[str, Callable[[Any], Any]] = {
    "feed_url": _feed_url,
    "request_timeout": _request_timeout,
    "refresh_interval": _refresh_interval,
    "min_busy_duration": _delay,
    "offline_delay": _delay,
    "timezone": _timezone_name,
    "color": _flag,
    "start_expanded": _flag,
    "log_level": _log_level,
    "log_file": _log_file,
    "snapshot_timezone": _snapshot_timezone,
}


def _node_keys(entries: Iterable[Any]) -> List[str]:
    keys = (str(entry).strip() for entry in entries if entry is not None)
    return list(dict.fromkeys(key for key in keys if key))


def _build_settings(path: str, defaults: Dict[str, Any], expanded: List[str]) -> Dict[str, Any]:
    settings: Dict[str, Any] = {}
    for key, value in defaults.items():
        validate = SETTINGS.get(key)
        if validate is None:
            logger.warning("Unknown setting '%s' in '%s'; ignoring.", key, path)
            continue
        if value is None or (isinstance(value, str) and not value.strip()):
            logger.warning("Setting '%s' has no value in '%s'; ignoring.", key, path)
            continue
        try:
            settings[key] = validate(value)
        except ValueError as exc:
            raise ValueError(f"Invalid value for '{key}' in '{path}': {exc}") from exc
    if expanded:
        settings["expanded"] = expanded
    return settings


def _read_ini(path: str) -> Tuple[Dict[str, Any], List[str]]:
    # Node keys contain ':' and are case-sensitive, so '=' is the only
    # delimiter and option names are kept verbatim
    parser = configparser.ConfigParser(delimiters=("=",), allow_no_value=True, interpolation=None, strict=False)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    try:
        read_files = parser.read(path, encoding="utf-8")
    except configparser.Error as exc:
        raise ValueError(f"Invalid config file '{path}': {exc}") from exc
    if not read_files:
        raise ValueError(f"Config file '{path}' could not be read.")

    defaults: Dict[str, Any] = {}
    if parser.has_section("default"):
        defaults = {key.strip().lower(): value for key, value in parser.items("default")}
    expanded = _node_keys(parser.options("expanded")) if parser.has_section("expanded") else []
    return defaults, expanded


def _read_yaml(path: str) -> Tuple[Dict[str, Any], List[str]]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file '{path}': {exc}") from exc
    except OSError as exc:
        raise ValueError(f"Cannot read config file '{path}': {exc}") from exc

    if document is None:
        return {}, []
    if not isinstance(document, dict):
        raise ValueError(f"Config file '{path}' must contain a YAML mapping at the top level, got {type(document).__name__}.")

    defaults = document.get("default") or {}
    if not isinstance(defaults, dict):
        raise ValueError(f"The 'default' section in '{path}' must be a YAML mapping.")
    expanded = document.get("expanded") or []
    if not isinstance(expanded, list):
        raise ValueError(f"The 'expanded' section in '{path}' must be a YAML list of node keys.")
    return {str(key).strip().lower(): value for key, value in defaults.items()}, _node_keys(expanded)


def load_ini_config(path: str) -> Dict[str, Any]:
    """
    Load settings from an INI file.

    The ``[expanded]`` section lists bare node keys, one per line, such as
    ``group:cat-up-core:edge1:10.0.0.0/24``.

    Raises:
        ValueError: If the file cannot be read or a value is invalid.
    """
    return _build_settings(path, *_read_ini(path))


def load_yaml_config(path: str) -> Dict[str, Any]:
    """Load settings from a YAML file, parsed with ``yaml.safe_load``."""
    return _build_settings(path, *_read_yaml(path))


def detect_format(path: str) -> str:
    """
    Return ``"ini"`` or ``"yaml"`` for a settings file.

    A file whose first meaningful line is a ``[section]`` header is INI;
    anything else is read as YAML.  Unreadable files report ``"ini"``.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            for line in fh:
                stripped = line.strip()
                if stripped and not stripped.startswith(("#", ";")):
                    return "ini" if stripped.startswith("[") else "yaml"
    except OSError:
        return "ini"
    return "ini"


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load persistent settings, or an empty dict when the file does not exist.

    Args:
        path: Settings file.  Defaults to ``~/.netpulse.conf``.

    Raises:
        ValueError: If the file exists but cannot be parsed or validated.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not os.path.exists(path):
        return {}

    file_format = detect_format(path)
    logger.debug("Loading %s settings from '%s'.", file_format.upper(), path)
    if file_format == "yaml":
        return load_yaml_config(path)
    return load_ini_config(path)
