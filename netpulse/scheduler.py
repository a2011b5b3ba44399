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
Scheduler module for NetPulse.

This module provides a RefreshScheduler class that maps the 1-second
wall-clock tick onto fixed refresh boundaries (every ``interval`` seconds,
aligned to the epoch) and computes the countdown shown in the header.
"""

import time
from typing import Optional

DEFAULT_REFRESH_INTERVAL = 30


class RefreshScheduler:
    """
    Wall-clock aligned refresh scheduler.

    A boundary is crossed whenever the whole-second clock enters a new
    ``interval``-sized slot. Each boundary is reported once, so a tick
    loop running faster than once a second never fires twice within the
    same wall-clock second.
    """

    def __init__(self, interval: int = DEFAULT_REFRESH_INTERVAL, start_time: Optional[float] = None) -> None:
        """
        Initialize the RefreshScheduler.

        Args:
            interval: Refresh interval in whole seconds (default: 30)
            start_time: Time the schedule is anchored at (uses time.time() if not provided)

        Raises:
            ValueError: If interval is not a positive number of seconds
        """
        if interval < 1:
            raise ValueError("Refresh interval must be at least 1 second.")
        self.interval = int(interval)
        if start_time is None:
            start_time = time.time()
        # The slot the scheduler starts in counts as consumed; the explicit
        # startup fetch covers it.
        self.last_boundary: int = self._slot(start_time)
        self.last_fire_second: Optional[int] = None

    def _slot(self, now: float) -> int:
        return int(now) // self.interval

    def seconds_until_refresh(self, now: Optional[float] = None) -> int:
        """
        Return the countdown to the next boundary, in the range 1..interval.

        Args:
            now: Current time in seconds (uses time.time() if not provided)
        """
        if now is None:
            now = time.time()
        return self.interval - (int(now) % self.interval)

    def crossed_boundary(self, now: Optional[float] = None) -> bool:
        """
        Report whether a new refresh boundary was reached since the last call.

        Args:
            now: Current time in seconds (uses time.time() if not provided)

        Returns:
            True exactly once per boundary crossing
        """
        if now is None:
            now = time.time()
        slot = self._slot(now)
        second = int(now)
        if slot == self.last_boundary or second == self.last_fire_second:
            return False
        self.last_boundary = slot
        self.last_fire_second = second
        return True
