#!/usr/bin/env python3
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
NetPulse UI Rendering Module

This module contains the terminal rendering functions for NetPulse,
including ANSI text utilities, tree row formatting, screen layout,
the help view, timestamp formatting and terminal utilities.
"""

import os
import re
import sys
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional, Sequence, Tuple

ANSI_RESET = "\x1b[0m"
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")
STATUS_COLORS = {
    "online": "\x1b[32m",  # Green
    "degraded": "\x1b[33m",  # Yellow
    "offline": "\x1b[31m",  # Red
    "verified": "\x1b[36m",  # Cyan
    "muted": "\x1b[90m",  # Dark gray (bright black)
}
ICON_GLYPHS = {
    "activity": "~",
    "shield": "#",
    "zap": "*",
    "box": "o",
}
CHEVRON_EXPANDED = "▾"
CHEVRON_COLLAPSED = "▸"
CURSOR_MARKER = ">"

STATUS_COLUMN_WIDTH = 9
METRIC_COLUMN_WIDTH = 10
MIN_NAME_COLUMN_WIDTH = 20
MAX_NAME_COLUMN_WIDTH = 48

# Header, metrics, filter, column titles, separator
HEADER_LINES = 5
STATUS_BOX_LINES = 3

STATUS_METRICS_SEPARATOR = " | "
STATUS_METRICS_TEMPLATE = STATUS_METRICS_SEPARATOR.join(
    [
        "Addresses: {total}",
        "Healthy: {healthy}",
        "Failed: {failed}",
        "Syncing: {syncing}",
        "Avg Latency: {avg_latency}",
        "Last Sync: {last_sync}",
    ]
)
KEY_HINTS = "up/down: move | Enter: toggle | /: filter | h: help | q: quit"

# Global state for rendering
LAST_RENDER_LINES: Optional[List[str]] = None


# ============================================================================
# ANSI/Text Utility Functions
# ============================================================================


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_ESCAPE_RE.sub("", text)


def visible_len(text: str) -> int:
    """Get the visible length of text (excluding ANSI codes)."""
    return len(strip_ansi(text))


def truncate_visible(text: str, width: int) -> Tuple[str, int]:
    """
    Truncate text to a visible width, preserving ANSI codes.

    Returns:
        Tuple of (truncated_text, visible_count)
    """
    result = []
    visible_count = 0
    index = 0
    while index < len(text) and visible_count < width:
        if text[index] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, index)
            if match:
                result.append(match.group(0))
                index = match.end()
                continue
        result.append(text[index])
        index += 1
        visible_count += 1
    truncated = "".join(result)
    if "\x1b[" in truncated and not truncated.endswith(ANSI_RESET):
        truncated += ANSI_RESET
    return truncated, visible_count


def pad_visible(text: str, width: int) -> str:
    """Pad text to a visible width, preserving ANSI codes."""
    truncated, visible_count = truncate_visible(text, width)
    if visible_count < width:
        truncated += " " * (width - visible_count)
    return truncated


def rjust_visible(text: str, width: int) -> str:
    """Right-justify text to a visible width, preserving ANSI codes."""
    padding = width - visible_len(text)
    if padding <= 0:
        return text
    return f"{' ' * padding}{text}"


def colorize_text(text: str, status: Optional[str], use_color: bool) -> str:
    """Apply color to text based on status."""
    if not use_color or not status:
        return text
    color = STATUS_COLORS.get(status)
    if not color:
        return text
    return f"{color}{text}{ANSI_RESET}"


# ============================================================================
# Layout Functions
# ============================================================================


def get_terminal_size(fallback: Tuple[int, int] = (80, 24)) -> os.terminal_size:
    """
    Get the terminal size by directly querying the terminal.

    os.get_terminal_size() queries the actual terminal instead of checking
    COLUMNS/LINES first (like shutil does), so the size follows resizes.

    Args:
        fallback: Tuple of (columns, lines) to use if terminal size
                  cannot be determined

    Returns:
        os.terminal_size with columns and lines attributes
    """
    for stream in (sys.stdout, sys.stderr, sys.stdin):
        try:
            if stream.isatty():
                return os.get_terminal_size(stream.fileno())
        except (AttributeError, ValueError, OSError):
            continue
    return os.terminal_size(fallback)


def compute_name_width(width: int) -> int:
    """Width of the tree (name) column for a terminal of the given width."""
    available = width - STATUS_COLUMN_WIDTH - METRIC_COLUMN_WIDTH - 4
    return max(MIN_NAME_COLUMN_WIDTH, min(MAX_NAME_COLUMN_WIDTH, available // 2))


def compute_visible_rows(height: int) -> int:
    """Number of tree rows that fit between the header block and the status box."""
    return max(1, height - HEADER_LINES - STATUS_BOX_LINES)


def clamp_scroll_offset(cursor_index: int, scroll_offset: int, visible_rows: int, total_rows: int) -> int:
    """
    Return a scroll offset that keeps the cursor row on screen.

    Args:
        cursor_index: Index of the selected row
        scroll_offset: Current index of the first visible row
        visible_rows: Number of rows the viewport can show
        total_rows: Total number of tree rows

    Returns:
        Adjusted scroll offset in the range 0..max(0, total_rows - visible_rows)
    """
    visible_rows = max(1, visible_rows)
    max_offset = max(0, total_rows - visible_rows)
    if cursor_index < scroll_offset:
        scroll_offset = cursor_index
    elif cursor_index >= scroll_offset + visible_rows:
        scroll_offset = cursor_index - visible_rows + 1
    return min(max(0, scroll_offset), max_offset)


def pad_lines(lines: Sequence[str], width: int, height: int) -> List[str]:
    """Pad lines to fill the specified width and height."""
    padded = [pad_visible(line, width) for line in lines[:height]]
    while len(padded) < height:
        padded.append("".ljust(width))
    return padded


def box_lines(lines: Sequence[str], width: int, height: int) -> List[str]:
    """Draw a box around lines."""
    if width < 2 or height < 3:
        return pad_lines(lines, width, height)
    inner_width = width - 2
    inner_lines = pad_lines(lines, inner_width, height - 2)
    border = "-" * inner_width
    boxed = [f"+{border}+"]
    boxed.extend(f"|{line}|" for line in inner_lines)
    boxed.append(f"+{border}+")
    return boxed


# ============================================================================
# Row Formatting
# ============================================================================


def format_name_cell(row: Dict[str, Any]) -> str:
    """Indented tree label with chevron (expandable rows) or icon (checks)."""
    indent = "  " * row["depth"]
    if row["expandable"]:
        marker = CHEVRON_EXPANDED if row["expanded"] else CHEVRON_COLLAPSED
    elif row.get("icon"):
        marker = ICON_GLYPHS.get(row["icon"], ICON_GLYPHS["box"])
    else:
        marker = " "
    return f"{indent}{marker} {row['label']}"


def format_tree_row(row: Dict[str, Any], width: int, use_color: bool, selected: bool = False) -> str:
    """
    Format one row descriptor as a fixed-width table line.

    Columns: cursor marker, name, status, metric, details.
    """
    name_width = compute_name_width(width)
    status = row.get("status") or ""
    status_cell = colorize_text(pad_visible(status.upper(), STATUS_COLUMN_WIDTH), status, use_color)
    metric_cell = rjust_visible(row.get("latency") or "", METRIC_COLUMN_WIDTH)
    detail = row.get("detail") or ""
    if row.get("verified"):
        detail = colorize_text(detail, "verified", use_color)
    elif row["kind"] == "placeholder":
        detail = colorize_text(detail, "muted", use_color)
    cursor = CURSOR_MARKER if selected else " "
    line = f"{cursor}{pad_visible(format_name_cell(row), name_width)} {status_cell} {metric_cell}  {detail}"
    return pad_visible(line, width)


def format_column_titles(width: int) -> str:
    name_width = compute_name_width(width)
    titles = (
        f" {'NAME'.ljust(name_width)} {'STATUS'.ljust(STATUS_COLUMN_WIDTH)} "
        f"{'METRIC'.rjust(METRIC_COLUMN_WIDTH)}  DETAILS"
    )
    return pad_visible(titles, width)


# ============================================================================
# Header/Status Functions
# ============================================================================


def build_header_line(timestamp: str, engine_status: str, countdown: Optional[str], width: int) -> str:
    """Title and clock on the left, engine status and countdown on the right."""
    left = f"NetPulse - {timestamp}"
    right = engine_status if not countdown else f"{engine_status} {countdown}"
    gap = width - len(left) - len(right)
    if gap < 1:
        return pad_visible(f"{left} {right}", width)
    return f"{left}{' ' * gap}{right}"


def build_status_metrics(summary: Dict[str, Any], last_sync: Optional[str]) -> str:
    """Build the metrics line from the summary counters."""
    return STATUS_METRICS_TEMPLATE.format(
        total=summary.get("total", 0),
        healthy=summary.get("healthy", 0),
        failed=summary.get("failed", 0),
        syncing=summary.get("syncing", 0),
        avg_latency=summary.get("avg_latency", "--"),
        last_sync=last_sync or "never",
    )


def build_filter_line(query: str, search_active: bool) -> str:
    if search_active:
        return f"Filter: {query}_  (Enter: accept, ESC: clear)"
    if query:
        return f"Filter: {query}"
    return "Filter: (none) - press / to search"


def build_status_line(status_message: Optional[str], cursor_index: int, total_rows: int) -> str:
    """Status box content: row position, then the last message or the key hints."""
    position = f"Row {cursor_index + 1}/{total_rows}" if total_rows else "Row 0/0"
    return f"{position} | {status_message or KEY_HINTS}"


def render_status_box(status_line: str, width: int) -> List[str]:
    """Render a status box around the status line."""
    if width <= 0:
        return []
    if width < 2:
        return [status_line[:width]]
    inner_width = width - 2
    content = pad_visible(status_line[:inner_width], inner_width)
    border = "-" * inner_width
    return [f"+{border}+", f"|{content}|", f"+{border}+"]


def render_help_view(width: int, height: int, boxed: bool = False) -> List[str]:
    """Render the help view."""
    lines = [
        "NetPulse - Help",
        "-" * max(0, width - 2 if boxed else width),
        "  up / down: move the cursor",
        "  Enter / space: expand or collapse the selected node",
        "  right / left: expand / collapse the selected node",
        "  /: edit the filter (Enter: accept, ESC: clear)",
        "  c: toggle color output",
        "  s: save snapshot to file",
        "  h: show help (Press any key to close)",
        "  q: quit",
    ]
    if boxed:
        return box_lines(lines, width, height)
    return pad_lines(lines, width, height)


# ============================================================================
# Rendering Functions
# ============================================================================


def build_display_lines(
    rows: Sequence[Dict[str, Any]],
    summary: Dict[str, Any],
    engine_status: str,
    countdown: Optional[str],
    last_sync: Optional[str],
    query: str,
    search_active: bool,
    cursor_index: int,
    scroll_offset: int,
    width: int,
    height: int,
    use_color: bool,
    status_message: Optional[str],
    timestamp: str,
) -> List[str]:
    """
    Build every line of the dashboard screen.

    Args:
        rows: Visible tree row descriptors in display order
        summary: Summary counters from ``compute_summary_data``
        engine_status: Engine label for the header
        countdown: "[SSs]" countdown, or None while a visual refresh is busy
        last_sync: Formatted time of the last successful refresh
        query: Current filter text
        search_active: Whether the filter is being edited
        cursor_index: Index of the selected row
        scroll_offset: Index of the first visible row
        width: Terminal width in columns
        height: Terminal height in lines
        use_color: Apply ANSI colors
        status_message: Message shown in the status box
        timestamp: Formatted current time

    Returns:
        Exactly ``height`` lines, each padded to ``width``
    """
    if width <= 0 or height <= 0:
        return []

    lines = [
        pad_visible(build_header_line(timestamp, engine_status, countdown, width), width),
        pad_visible(build_status_metrics(summary, last_sync), width),
        pad_visible(build_filter_line(query, search_active), width),
        format_column_titles(width),
        "-" * width,
    ]

    visible_rows = compute_visible_rows(height)
    window = rows[scroll_offset : scroll_offset + visible_rows]
    for offset, row in enumerate(window):
        lines.append(format_tree_row(row, width, use_color, selected=scroll_offset + offset == cursor_index))

    tree_end = HEADER_LINES + visible_rows
    lines = pad_lines(lines, width, tree_end)
    lines.extend(render_status_box(build_status_line(status_message, cursor_index, len(rows)), width))
    return lines[:height]


def render_display(combined_lines: Sequence[str]) -> None:
    """Write lines to the terminal, redrawing only lines that changed."""
    global LAST_RENDER_LINES
    if not combined_lines:
        return
    combined_lines = list(combined_lines)

    if LAST_RENDER_LINES is None:
        sys.stdout.write("\x1b[2J\x1b[H")
        output_chunks = []
        for index, line in enumerate(combined_lines):
            output_chunks.append(f"\x1b[{index + 1};1H\x1b[2K{line}")
        sys.stdout.write("".join(output_chunks))
        sys.stdout.flush()
        LAST_RENDER_LINES = combined_lines
        return

    max_lines = max(len(LAST_RENDER_LINES), len(combined_lines))
    output_chunks = []
    for index in range(max_lines):
        previous_line = LAST_RENDER_LINES[index] if index < len(LAST_RENDER_LINES) else None
        current_line = combined_lines[index] if index < len(combined_lines) else ""
        if previous_line == current_line and index < len(combined_lines):
            continue
        output_chunks.append(f"\x1b[{index + 1};1H\x1b[2K{current_line}")

    if output_chunks:
        sys.stdout.write("".join(output_chunks))
        sys.stdout.flush()

    LAST_RENDER_LINES = combined_lines


def reset_render_cache() -> None:
    """Force the next render_display call to repaint the whole screen."""
    global LAST_RENDER_LINES
    LAST_RENDER_LINES = None


# ============================================================================
# Formatting Functions
# ============================================================================


def format_timezone_label(now_utc: datetime, display_tz: tzinfo) -> str:
    """Format the timezone label for display."""
    local_tz = now_utc.astimezone(display_tz).tzinfo
    tz_name = local_tz.tzname(now_utc) if local_tz else None
    if tz_name:
        return tz_name
    tz_key = getattr(display_tz, "key", None)
    if isinstance(tz_key, str):
        return tz_key
    return "UTC"


def format_timestamp(now_utc: datetime, display_tz: tzinfo) -> str:
    """Format a timestamp with timezone label."""
    timestamp = now_utc.astimezone(display_tz).strftime("%Y-%m-%d %H:%M:%S")
    tz_label = format_timezone_label(now_utc, display_tz)
    return f"{timestamp} ({tz_label})"


def format_clock(now_utc: datetime, display_tz: tzinfo) -> str:
    """Format a time of day, used for the last sync time."""
    return now_utc.astimezone(display_tz).strftime("%H:%M:%S")


# ============================================================================
# Terminal Utilities
# ============================================================================


def prepare_terminal_for_exit() -> None:
    """Prepare the terminal for exit by clearing the screen area."""
    if not sys.stdout.isatty():
        return
    term_size = get_terminal_size(fallback=(80, 24))
    sys.stdout.write("\n" * term_size.lines)
    sys.stdout.flush()
