#!/usr/bin/env python3
# Copyright 2026 icecake0141
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
Integration tests for NetPulse refresh cycles.

These tests wire the feed (with a mocked HTTP layer), the refresh
controller, the expansion state and the tree renderer together and check
that user expansion survives periodic data replacement, and that a large
subnet renders in numeric address order.
"""

import os
import sys
import threading
import unittest
from unittest.mock import MagicMock, patch

import requests

# Add parent directory to path to import netpulse
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from netpulse.expansion import ExpansionState  # noqa: E402
from netpulse.feed import fetch_check_results  # noqa: E402
from netpulse.refresh import ENGINE_OFFLINE, ENGINE_SYNCED, RefreshController  # noqa: E402
from netpulse.tree_render import build_dashboard_rows  # noqa: E402

GROUP_KEY = "group:cat-down-core:edge1:10.0.0.0/24"


def feed_entry(address, status, latency=None, message=""):
    return {
        "category": "Core",
        "server_name": "edge1",
        "parent_address": "10.0.0.0/24",
        "target_address": address,
        "check_type": "PING",
        "status": status,
        "latency_ms": latency,
        "message": message,
    }


def json_response(payload):
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = payload
    return response


class TestExpansionAcrossRefreshes(unittest.TestCase):
    """Expansion keys are independent of the record set they were created against."""

    def setUp(self):
        self.responses = []
        patcher = patch("netpulse.feed.requests.get", side_effect=self._next_response)
        self.mock_get = patcher.start()
        self.addCleanup(patcher.stop)
        self.controller = RefreshController(
            lambda: fetch_check_results("http://collector/api/stats", 1.0),
            interval=30,
            min_busy_duration=0.0,
            offline_delay=0.0,
            dispatch=lambda job: job(),
            clock=lambda: 1000.0,
        )
        self.expansion = ExpansionState(extra_keys=["cat-down-core"])

    def _next_response(self, *_args, **_kwargs):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return json_response(response)

    def _refresh(self, now):
        self.controller.request_refresh(show_visuals=True, now=now)
        self.controller.poll(now=now)

    def _labels(self):
        return [row["label"] for row in build_dashboard_rows(self.controller.records, self.expansion)]

    def test_expanded_group_survives_refresh(self):
        self.responses = [
            [feed_entry("10.0.0.6", False), feed_entry("10.0.0.5", False, latency=4)],
            [feed_entry("10.0.0.7", False), feed_entry("10.0.0.5", False)],
        ]
        self._refresh(1000.0)
        self.expansion.toggle(GROUP_KEY)
        self.assertEqual(self._labels(), ["OPERATIONAL", "DEGRADED", "CORE", "edge1 (10.0.0.0/24)", "10.0.0.5", "10.0.0.6"])

        self._refresh(1030.0)
        self.assertIn(GROUP_KEY, self.expansion)
        self.assertEqual(self._labels(), ["OPERATIONAL", "DEGRADED", "CORE", "edge1 (10.0.0.0/24)", "10.0.0.5", "10.0.0.7"])
        self.assertEqual(self.controller.engine_status, ENGINE_SYNCED)

    def test_group_that_disappears_keeps_its_key(self):
        self.responses = [[feed_entry("10.0.0.5", False)], [], [feed_entry("10.0.0.5", False)]]
        self._refresh(1000.0)
        self.expansion.toggle(GROUP_KEY)
        self._refresh(1030.0)
        self.assertNotIn("edge1 (10.0.0.0/24)", self._labels())
        self._refresh(1060.0)
        self.assertIn("10.0.0.5", self._labels())

    def test_failed_refresh_keeps_previous_rows(self):
        self.responses = [[feed_entry("10.0.0.5", False)], requests.exceptions.ConnectionError("refused")]
        self._refresh(1000.0)
        before = self._labels()
        self._refresh(1030.0)
        self.assertEqual(self._labels(), before)
        self.assertEqual(self.controller.engine_status, ENGINE_OFFLINE)


class TestLargeSubnet(unittest.TestCase):
    def test_addresses_render_in_numeric_order(self):
        entries = [feed_entry(f"10.0.0.{octet}", False) for octet in range(254, 0, -1)]
        with patch("netpulse.feed.requests.get", return_value=json_response(entries)):
            records = fetch_check_results()
        expansion = ExpansionState(extra_keys=["cat-down-core", GROUP_KEY])
        rows = build_dashboard_rows(records, expansion)
        addresses = [row["label"] for row in rows if row["kind"] == "address"]
        self.assertEqual(addresses, [f"10.0.0.{octet}" for octet in range(1, 255)])
        group_row = next(row for row in rows if row["kind"] == "group")
        self.assertEqual(group_row["detail"], "254 nodes in subnet")


class TestWorkerThread(unittest.TestCase):
    def test_default_dispatch_reports_through_poll(self):
        fetched = threading.Event()

        def fetcher():
            fetched.set()
            return []

        controller = RefreshController(fetcher, min_busy_duration=0.0)
        controller.start()
        self.assertTrue(fetched.wait(timeout=2.0))
        for _ in range(200):
            if controller.poll():
                break
            threading.Event().wait(0.01)
        self.assertFalse(controller.busy)
        self.assertEqual(controller.engine_status, ENGINE_SYNCED)


if __name__ == "__main__":
    unittest.main()
