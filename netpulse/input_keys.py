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
Keyboard input handling for NetPulse using the readchar library.

This module reads single key presses without blocking the main loop and
maps them to the names used by the dashboard key handler: arrow keys,
enter, escape and backspace, or the plain character otherwise.
"""

import select
import sys
from typing import Optional

import readchar
import readchar.key

ARROW_KEYS = {
    "A": "arrow_up",
    "B": "arrow_down",
    "C": "arrow_right",
    "D": "arrow_left",
}

_NAMED_KEYS = {
    readchar.key.UP: "arrow_up",
    readchar.key.DOWN: "arrow_down",
    readchar.key.LEFT: "arrow_left",
    readchar.key.RIGHT: "arrow_right",
    readchar.key.ENTER: "enter",
    readchar.key.CR: "enter",
    readchar.key.LF: "enter",
    readchar.key.BACKSPACE: "backspace",
    "\x08": "backspace",
    readchar.key.ESC: "escape",
}


def parse_escape_sequence(seq: str) -> Optional[str]:
    """
    Parse ANSI escape sequence to identify arrow keys.

    Args:
        seq: The escape sequence string (without the leading ESC)

    Returns:
        String identifier for arrow keys ('arrow_up', 'arrow_down', etc.)
        or None if sequence is not recognized
    """
    if not seq:
        return None
    # Covers "[A", "OA" and modified forms such as "[1;5A"
    if seq[0] in ("[", "O") and seq[-1] in ARROW_KEYS:
        return ARROW_KEYS[seq[-1]]
    return None


def map_key(key_value: str) -> str:
    """
    Map a key string returned by readchar to a dashboard key name.

    Args:
        key_value: The key string returned by readchar.readkey()

    Returns:
        'arrow_up', 'arrow_down', 'arrow_left', 'arrow_right', 'enter',
        'backspace' or 'escape' for those keys, otherwise the key itself
    """
    if key_value in _NAMED_KEYS:
        return _NAMED_KEYS[key_value]

    # readchar returns full escape sequences like "\x1b[1;5A" for modified arrows
    if key_value and key_value[0] == "\x1b" and len(key_value) > 1:
        parsed = parse_escape_sequence(key_value[1:])
        if parsed:
            return parsed

    return key_value


def read_key() -> Optional[str]:
    """
    Read a key from stdin without blocking.

    Returns:
        Mapped key name, or None if stdin is not a TTY or no input is pending
    """
    if not sys.stdin.isatty():
        return None

    ready, _, _ = select.select([sys.stdin], [], [], 0)
    if not ready:
        return None

    try:
        return map_key(readchar.readkey())
    except (OSError, KeyboardInterrupt):
        return None
