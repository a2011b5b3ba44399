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
# Review for correctness and security.

"""
Command-line interface for NetPulse.

This module contains the main entry point, command-line argument handling
and the interactive dashboard loop.
"""

import argparse
import functools
import logging
import os
import sys
import termios
import time
import tty
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests

from netpulse.config import DEFAULT_CONFIG_PATH, MAX_REFRESH_INTERVAL, MIN_REFRESH_INTERVAL, load_config
from netpulse.expansion import ExpansionState
from netpulse.feed import DEFAULT_FEED_URL, DEFAULT_REQUEST_TIMEOUT, FeedUnavailable, fetch_check_results
from netpulse.grouping import collect_category_keys
from netpulse.input_keys import read_key
from netpulse.refresh import DEFAULT_MIN_BUSY_DURATION, DEFAULT_OFFLINE_DELAY, RefreshController
from netpulse.scheduler import DEFAULT_REFRESH_INTERVAL
from netpulse.stats import compute_summary_data
from netpulse.tree_render import build_dashboard_rows
from netpulse.ui_render import (
    build_display_lines,
    build_status_metrics,
    clamp_scroll_offset,
    compute_visible_rows,
    format_clock,
    format_timestamp,
    format_tree_row,
    get_terminal_size,
    prepare_terminal_for_exit,
    render_display,
    render_help_view,
    reset_render_cache,
)

logger = logging.getLogger(__name__)


def _configure_logging(log_level: str, log_file: Optional[str]) -> None:
    """Configure logging handlers for CLI execution."""
    handler: logging.Handler
    if log_file:
        # The dashboard owns the terminal, so a log file replaces stderr output
        handler = logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    logging.basicConfig(
        level=getattr(logging, str(log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )


# Hardcoded defaults for config-overridable fields.
# Applied after config merging for any field still set to None.
_HARDCODED_DEFAULTS: Dict[str, Any] = {
    "feed_url": DEFAULT_FEED_URL,
    "timeout": DEFAULT_REQUEST_TIMEOUT,
    "interval": DEFAULT_REFRESH_INTERVAL,
    "min_busy_duration": DEFAULT_MIN_BUSY_DURATION,
    "offline_delay": DEFAULT_OFFLINE_DELAY,
    "snapshot_timezone": "utc",
    "log_level": "INFO",
    "color": False,
    "start_expanded": False,
    "expanded": [],
}

# Config file field names that differ from their argparse destination
_CONFIG_ARG_NAMES = {
    "refresh_interval": "interval",
    "request_timeout": "timeout",
}


def _apply_config_to_args(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    """
    Overlay config file values onto a parsed argument namespace.

    Only fields that are still ``None`` (i.e. not explicitly set on the CLI)
    are updated.

    Args:
        args: Namespace returned by ``argparse.ArgumentParser.parse_args()``.
        config: Dictionary of values loaded from the config file.
    """
    for key, value in config.items():
        dest = _CONFIG_ARG_NAMES.get(key, key)
        if hasattr(args, dest) and getattr(args, dest) is None:
            setattr(args, dest, value)


def handle_options(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse and validate command-line arguments."""
    parser = argparse.ArgumentParser(
        description="NetPulse - Terminal dashboard for infrastructure health checks",
    )
    parser.add_argument(
        "--feed-url",
        type=str,
        default=None,
        help=f"URL of the check result feed (default: {DEFAULT_FEED_URL})",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=int,
        default=None,
        help=f"Refresh interval in seconds (default: {DEFAULT_REFRESH_INTERVAL}, "
        f"range: {MIN_REFRESH_INTERVAL}-{MAX_REFRESH_INTERVAL})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help=f"Timeout in seconds for each feed request (default: {DEFAULT_REQUEST_TIMEOUT})",
    )
    parser.add_argument(
        "-z",
        "--timezone",
        type=str,
        default=None,
        help="Display timezone (IANA name, e.g. Asia/Tokyo). Defaults to UTC.",
    )
    parser.add_argument(
        "-Z",
        "--snapshot-timezone",
        type=str,
        default=None,
        choices=["utc", "display"],
        help="Timezone used in snapshot filename (utc|display). Defaults to utc.",
    )
    parser.add_argument(
        "-C",
        "--color",
        action="store_true",
        default=None,
        help="Enable colored output (green=online, yellow=degraded, red=offline)",
    )
    parser.add_argument(
        "--start-expanded",
        action="store_true",
        default=None,
        help="Show every category expanded until the first toggle",
    )
    parser.add_argument(
        "--query",
        type=str,
        default="",
        help="Initial filter text (matches category, server, address or check type)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file path for persistent logging",
    )
    config_group = parser.add_mutually_exclusive_group()
    config_group.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Config file path (default: {DEFAULT_CONFIG_PATH})",
    )
    config_group.add_argument(
        "--no-config",
        action="store_true",
        default=False,
        help="Skip loading the config file",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Fetch once, print the rows and summary, then exit",
    )
    # Config-only fields
    parser.set_defaults(min_busy_duration=None, offline_delay=None, expanded=None)

    args = parser.parse_args(argv)

    # Load and apply config file unless --no-config was given
    if not args.no_config:
        try:
            config = load_config(args.config)
            _apply_config_to_args(args, config)
        except ValueError as exc:
            parser.error(str(exc))

    # Apply hardcoded defaults for any config-overridable field still at None
    for field, default in _HARDCODED_DEFAULTS.items():
        if getattr(args, field, None) is None:
            setattr(args, field, default)

    if args.timeout <= 0:
        parser.error("--timeout must be a positive number of seconds.")
    if not MIN_REFRESH_INTERVAL <= args.interval <= MAX_REFRESH_INTERVAL:
        parser.error(f"--interval must be between {MIN_REFRESH_INTERVAL} and {MAX_REFRESH_INTERVAL} seconds.")
    if args.min_busy_duration < 0 or args.offline_delay < 0:
        parser.error("min_busy_duration and offline_delay must not be negative.")
    return args


def _resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        print(f"Error: Unknown timezone '{name}'. Use an IANA name like 'Asia/Tokyo'.", file=sys.stderr)
        return None


def _build_expansion(args: argparse.Namespace) -> ExpansionState:
    return ExpansionState(initialized=not args.start_expanded, extra_keys=args.expanded)


def _setup_state(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    """Initialize the runtime state required by the dashboard loop."""
    display_tz = _resolve_timezone(args.timezone)
    if display_tz is None:
        return None
    snapshot_tz: tzinfo = display_tz if args.snapshot_timezone == "display" else timezone.utc

    session = requests.Session()
    fetcher = functools.partial(fetch_check_results, args.feed_url, args.timeout, session)
    controller = RefreshController(
        fetcher,
        interval=args.interval,
        min_busy_duration=args.min_busy_duration,
        offline_delay=args.offline_delay,
    )
    return {
        "session": session,
        "controller": controller,
        "expansion": _build_expansion(args),
        "display_tz": display_tz,
        "snapshot_tz": snapshot_tz,
        "query": args.query or "",
        "search_active": False,
        "cursor_index": 0,
        "scroll_offset": 0,
        "show_help": False,
        "use_color": bool(args.color) and sys.stdout.isatty(),
        "status_message": None,
        "running": True,
        "updated": True,
        "force_render": True,
        "last_tick": None,
    }


def _current_rows(state: Dict[str, Any]) -> List[Dict[str, Any]]:
    return build_dashboard_rows(state["controller"].records, state["expansion"], state["query"])


def _selected_row(state: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    rows = _current_rows(state)
    if not rows:
        return None
    index = min(max(state["cursor_index"], 0), len(rows) - 1)
    return rows[index]


def _ensure_initialized(state: Dict[str, Any]) -> None:
    """Materialize default-open categories before the first explicit change."""
    expansion = state["expansion"]
    if not expansion.initialized:
        expansion.initialize(collect_category_keys(state["controller"].records))


def _set_node_expanded(state: Dict[str, Any], expand: Optional[bool]) -> None:
    """Toggle (expand=None), expand or collapse the selected node."""
    row = _selected_row(state)
    if row is None or not row["expandable"]:
        return
    if expand is not None and row["expanded"] == expand:
        return
    _ensure_initialized(state)
    expansion = state["expansion"]
    if expand is None:
        expansion.toggle(row["key"])
    elif expand:
        expansion.expand(row["key"])
    else:
        expansion.collapse(row["key"])
    logger.debug("Node %s expanded=%s", row["key"], expansion.is_expanded(row["key"]))


def _handle_search_input(key: str, state: Dict[str, Any]) -> None:
    if key == "enter":
        state["search_active"] = False
    elif key == "escape":
        state["search_active"] = False
        state["query"] = ""
    elif key == "backspace":
        state["query"] = state["query"][:-1]
    elif len(key) == 1 and key.isprintable():
        state["query"] += key
    else:
        return
    state["cursor_index"] = 0
    state["scroll_offset"] = 0


def _save_snapshot(state: Dict[str, Any]) -> str:
    now_utc = datetime.now(timezone.utc)
    snapshot_name = now_utc.astimezone(state["snapshot_tz"]).strftime("netpulse_snapshot_%Y%m%d_%H%M%S.txt")
    term_size = get_terminal_size(fallback=(80, 24))
    rows = _current_rows(state)
    snapshot_lines = _build_frame_lines(state, rows, term_size.columns, max(term_size.lines, len(rows) + 8), False)
    with open(snapshot_name, "w", encoding="utf-8") as snapshot_file:
        snapshot_file.write("\n".join(line.rstrip() for line in snapshot_lines) + "\n")
    return snapshot_name


def _handle_user_input(key: str, state: Dict[str, Any]) -> bool:
    """Process one keyboard input event and return whether the loop should skip to next iteration."""
    state["updated"] = True
    if state["search_active"]:
        _handle_search_input(key, state)
        return False
    if key in ("q", "Q"):
        state["running"] = False
        return True
    if state["show_help"]:
        state["show_help"] = False
        state["force_render"] = True
        return True

    rows = _current_rows(state)
    if key == "arrow_up":
        state["cursor_index"] = max(0, state["cursor_index"] - 1)
    elif key == "arrow_down":
        state["cursor_index"] = min(max(0, len(rows) - 1), state["cursor_index"] + 1)
    elif key in ("enter", " "):
        _set_node_expanded(state, None)
    elif key == "arrow_right":
        _set_node_expanded(state, True)
    elif key == "arrow_left":
        _set_node_expanded(state, False)
    elif key == "/":
        state["search_active"] = True
    elif key == "c":
        state["use_color"] = not state["use_color"]
        state["status_message"] = f"Color {'enabled' if state['use_color'] else 'disabled'}"
    elif key == "s":
        try:
            snapshot_name = _save_snapshot(state)
        except OSError as exc:
            logger.warning("Could not save snapshot: %s", exc)
            state["status_message"] = f"Snapshot failed: {exc}"
        else:
            state["status_message"] = f"Saved: {snapshot_name}"
    elif key == "h":
        state["show_help"] = True
        state["force_render"] = True
    return False


def _build_frame_lines(
    state: Dict[str, Any],
    rows: List[Dict[str, Any]],
    width: int,
    height: int,
    use_color: bool,
) -> List[str]:
    controller = state["controller"]
    now = time.time()
    now_utc = datetime.fromtimestamp(now, timezone.utc)
    last_sync = None
    if controller.last_sync_time is not None:
        last_sync = format_clock(datetime.fromtimestamp(controller.last_sync_time, timezone.utc), state["display_tz"])
    state["cursor_index"] = min(max(state["cursor_index"], 0), max(0, len(rows) - 1))
    state["scroll_offset"] = clamp_scroll_offset(
        state["cursor_index"], state["scroll_offset"], compute_visible_rows(height), len(rows)
    )
    return build_display_lines(
        rows,
        controller.summary,
        controller.engine_status,
        controller.countdown_label(now),
        last_sync,
        state["query"],
        state["search_active"],
        state["cursor_index"],
        state["scroll_offset"],
        width,
        height,
        use_color,
        state["status_message"],
        format_timestamp(now_utc, state["display_tz"]),
    )


def _render_frame(state: Dict[str, Any]) -> None:
    """Render a frame when needed."""
    if not (state["updated"] or state["force_render"]):
        return
    term_size = get_terminal_size(fallback=(80, 24))
    if state["force_render"]:
        reset_render_cache()
    if state["show_help"]:
        lines = render_help_view(term_size.columns, term_size.lines, boxed=True)
    else:
        lines = _build_frame_lines(state, _current_rows(state), term_size.columns, term_size.lines, state["use_color"])
    render_display(lines)
    state["updated"] = False
    state["force_render"] = False


def _tick(state: Dict[str, Any], now: float) -> None:
    """Drive the 1-second clock and apply finished refreshes."""
    controller = state["controller"]
    second = int(now)
    if second != state["last_tick"]:
        state["last_tick"] = second
        controller.on_tick(now)
        state["updated"] = True
    if controller.poll(now):
        state["updated"] = True


def run(args: argparse.Namespace) -> int:
    """Run the NetPulse dashboard with parsed arguments."""
    _configure_logging(args.log_level, args.log_file)
    state = _setup_state(args)
    if state is None:
        return 1

    controller = state["controller"]
    logger.info("Starting dashboard: feed=%s interval=%ss", args.feed_url, args.interval)

    stdin_fd: Optional[int] = None
    original_term: Optional[List[Any]] = None
    if sys.stdin.isatty():
        stdin_fd = sys.stdin.fileno()
        original_term = termios.tcgetattr(stdin_fd)

    controller.start()
    try:
        if stdin_fd is not None:
            tty.setcbreak(stdin_fd)
        while state["running"]:
            key = read_key()
            if key and _handle_user_input(key, state):
                continue
            _tick(state, time.time())
            _render_frame(state)
            time.sleep(0.05)
    except KeyboardInterrupt:
        state["running"] = False
    finally:
        state["session"].close()
        if stdin_fd is not None and original_term is not None:
            termios.tcsetattr(stdin_fd, termios.TCSADRAIN, original_term)

    prepare_terminal_for_exit()
    last_sync = None
    if controller.last_sync_time is not None:
        last_sync = format_clock(datetime.fromtimestamp(controller.last_sync_time, timezone.utc), state["display_tz"])
    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(build_status_metrics(controller.summary, last_sync))
    print(f"Refreshes: {controller.refresh_count} | Engine: {controller.engine_status}")
    return 0


def run_once(args: argparse.Namespace) -> int:
    """Fetch once and print the dashboard rows; return the process exit code."""
    _configure_logging(args.log_level, args.log_file)
    display_tz = _resolve_timezone(args.timezone)
    if display_tz is None:
        return 1
    try:
        records = fetch_check_results(args.feed_url, args.timeout)
    except FeedUnavailable as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    width = get_terminal_size(fallback=(100, 24)).columns
    rows = build_dashboard_rows(records, _build_expansion(args), args.query or "")
    for row in rows:
        print(format_tree_row(row, width, use_color=False).rstrip())
    print(build_status_metrics(compute_summary_data(records), format_clock(datetime.now(timezone.utc), display_tz)))
    return 0


def main() -> None:
    """Main entrypoint for the CLI - parses arguments and runs the application."""
    args = handle_options()
    if args.once:
        sys.exit(run_once(args))
    sys.exit(run(args))
