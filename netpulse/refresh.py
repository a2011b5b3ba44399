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
Refresh controller for NetPulse.

This module drives periodic acquisition of check results. A fetch runs on
a short-lived worker thread and reports its outcome through a queue; the
main loop calls ``RefreshController.poll()`` to apply outcomes, so the
record set, the summary counters and the busy flag are only ever changed
on the main loop thread.

State machine: idle -> fetching -> (success | failure) -> idle
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from netpulse.feed import FeedUnavailable
from netpulse.scheduler import DEFAULT_REFRESH_INTERVAL, RefreshScheduler
from netpulse.stats import compute_summary_data, empty_summary

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_FETCHING = "fetching"
STATE_SUCCESS = "success"
STATE_FAILURE = "failure"

ENGINE_STARTING = "ENGINE: STARTING"
ENGINE_FETCHING = "ENGINE: FETCHING"
ENGINE_SYNCED = "ENGINE: SYNCED"
ENGINE_OFFLINE = "ENGINE: OFFLINE"

DEFAULT_MIN_BUSY_DURATION = 3.0  # Seconds a visual refresh stays on screen
DEFAULT_OFFLINE_DELAY = 1.0  # Seconds before the offline label appears


def spawn_worker(target: Callable[[], None]) -> None:
    """Run target on a daemon thread."""
    thread = threading.Thread(target=target, name="netpulse-fetch", daemon=True)
    thread.start()


def engine_sync_label(syncing_count: int) -> str:
    """Return the engine label shown after a successful refresh."""
    if syncing_count > 0:
        return f"ENGINE: SYNCING ({syncing_count})"
    return ENGINE_SYNCED


class RefreshController:
    """
    Periodic refresh state machine.

    Only one fetch is ever in flight. Periodic ticks arriving while the busy
    flag is set are suppressed, and a failed fetch leaves the previous record
    set in place.
    """

    def __init__(
        self,
        fetcher: Callable[[], List[Dict[str, Any]]],
        interval: int = DEFAULT_REFRESH_INTERVAL,
        min_busy_duration: float = DEFAULT_MIN_BUSY_DURATION,
        offline_delay: float = DEFAULT_OFFLINE_DELAY,
        dispatch: Optional[Callable[[Callable[[], None]], None]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the RefreshController.

        Args:
            fetcher: Callable returning normalized records or raising FeedUnavailable
            interval: Periodic refresh interval in seconds (default: 30)
            min_busy_duration: Minimum seconds a visual refresh stays busy (default: 3.0)
            offline_delay: Seconds before a failure surfaces as offline (default: 1.0)
            dispatch: Callable that runs the fetch job (default: daemon thread)
            clock: Time source in seconds
        """
        self.fetcher = fetcher
        self.min_busy_duration = min_busy_duration
        self.offline_delay = offline_delay
        self.dispatch = dispatch if dispatch is not None else spawn_worker
        self.clock = clock
        self.scheduler = RefreshScheduler(interval, start_time=clock())

        self.records: List[Dict[str, Any]] = []
        self.summary: Dict[str, Any] = empty_summary()
        self.state = STATE_IDLE
        self.busy = False
        self.show_visuals = False
        self.engine_status = ENGINE_STARTING
        self.last_sync_time: Optional[float] = None
        self.last_error: Optional[str] = None
        self.refresh_count = 0

        self._request_started: Optional[float] = None
        self._outcomes: "queue.Queue[Tuple[str, Any]]" = queue.Queue()
        self._deferred: Optional[Tuple[float, Callable[[], None]]] = None

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    def start(self, now: Optional[float] = None) -> bool:
        """Issue the startup fetch, without the visual busy treatment."""
        return self.request_refresh(show_visuals=False, now=now)

    def on_tick(self, now: Optional[float] = None) -> bool:
        """
        Handle the 1-second clock tick.

        Args:
            now: Current time in seconds (uses the controller clock if not provided)

        Returns:
            True if a periodic refresh was started
        """
        now = self._now(now)
        if not self.scheduler.crossed_boundary(now):
            return False
        if self.busy:
            logger.debug("Periodic refresh suppressed: a refresh is already in flight.")
            return False
        return self.request_refresh(show_visuals=True, now=now)

    def request_refresh(self, show_visuals: bool = True, now: Optional[float] = None) -> bool:
        """
        Start one fetch unless another one is in flight.

        Args:
            show_visuals: Apply the busy indication and minimum busy duration
            now: Current time in seconds (uses the controller clock if not provided)

        Returns:
            True if a fetch was dispatched
        """
        if self.busy:
            return False
        self.busy = True
        self.show_visuals = show_visuals
        self.state = STATE_FETCHING
        self._request_started = self._now(now)
        if show_visuals:
            self.engine_status = ENGINE_FETCHING
        self.dispatch(self._run_fetch)
        return True

    def _run_fetch(self) -> None:
        """Fetch job; reports exactly one outcome."""
        try:
            records = self.fetcher()
        except FeedUnavailable as exc:
            self._outcomes.put((STATE_FAILURE, exc))
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.exception("Unexpected error while fetching check results")
            self._outcomes.put((STATE_FAILURE, exc))
            return
        self._outcomes.put((STATE_SUCCESS, records))

    def poll(self, now: Optional[float] = None) -> bool:
        """
        Apply finished fetches and due deferred transitions.

        Args:
            now: Current time in seconds (uses the controller clock if not provided)

        Returns:
            True when the view needs to be re-rendered
        """
        now = self._now(now)
        changed = False
        while True:
            try:
                outcome, payload = self._outcomes.get_nowait()
            except queue.Empty:
                break
            if outcome == STATE_SUCCESS:
                self._handle_success(payload, now)
            else:
                self._handle_failure(payload, now)
            changed = True

        if self._deferred is not None and now >= self._deferred[0]:
            _, callback = self._deferred
            self._deferred = None
            callback()
            changed = True
        return changed

    def _handle_success(self, records: List[Dict[str, Any]], now: float) -> None:
        # Wholesale replacement: the new set fully supersedes the old one
        self.records = records
        self.summary = compute_summary_data(records)
        self.last_sync_time = now
        self.last_error = None
        self.refresh_count += 1
        self.state = STATE_SUCCESS
        logger.info(
            "Refreshed %d check records across %d addresses (%d healthy, %d failed)",
            len(records),
            self.summary["total"],
            self.summary["healthy"],
            self.summary["failed"],
        )

        started = self._request_started if self._request_started is not None else now
        minimum = self.min_busy_duration if self.show_visuals else 0.0
        remaining = max(0.0, minimum - (now - started))
        if remaining <= 0:
            self._complete_success()
        else:
            self._deferred = (now + remaining, self._complete_success)

    def _complete_success(self) -> None:
        self.busy = False
        self.state = STATE_IDLE
        self.engine_status = engine_sync_label(self.summary["syncing"])

    def _handle_failure(self, error: BaseException, now: float) -> None:
        logger.warning("Check result feed unavailable, keeping previous data: %s", error)
        self.last_error = str(error)
        self.state = STATE_FAILURE
        self._deferred = (now + self.offline_delay, self._complete_failure)

    def _complete_failure(self) -> None:
        self.busy = False
        self.state = STATE_IDLE
        self.engine_status = ENGINE_OFFLINE

    def countdown_label(self, now: Optional[float] = None) -> Optional[str]:
        """Return the "[SSs]" countdown, or None while a visual refresh is busy."""
        if self.busy and self.show_visuals:
            return None
        return f"[{self.scheduler.seconds_until_refresh(self._now(now)):02d}s]"
