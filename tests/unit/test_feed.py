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
Unit tests for netpulse.feed (HTTP access is always mocked).
"""

import os
import sys
import unittest
from unittest.mock import MagicMock, patch

import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from netpulse.feed import DEFAULT_FEED_URL, FeedUnavailable, fetch_check_results, parse_feed_payload  # noqa: E402


def make_response(payload=None, status_code=200, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


class TestParseFeedPayload(unittest.TestCase):
    def test_list_payload_is_normalized(self):
        records = parse_feed_payload([{"server_name": "edge1", "status": True}])
        self.assertEqual(records[0]["server_name"], "edge1")
        self.assertEqual(records[0]["category"], "Uncategorized")

    def test_non_list_payload_raises(self):
        with self.assertRaises(FeedUnavailable) as ctx:
            parse_feed_payload({"error": "nope"}, url="http://x")
        self.assertEqual(ctx.exception.url, "http://x")


class TestFetchCheckResults(unittest.TestCase):
    @patch("netpulse.feed.requests.get")
    def test_successful_fetch(self, mock_get):
        mock_get.return_value = make_response([{"server_name": "edge1", "status": True, "latency_ms": 3}])
        records = fetch_check_results()
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]["latency_ms"], 3.0)
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], DEFAULT_FEED_URL)
        self.assertEqual(kwargs["timeout"], 10.0)

    @patch("netpulse.feed.requests.get")
    def test_http_error_status(self, mock_get):
        mock_get.return_value = make_response(status_code=503)
        with self.assertRaises(FeedUnavailable) as ctx:
            fetch_check_results("http://collector/api/stats", timeout=2)
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.url, "http://collector/api/stats")

    @patch("netpulse.feed.requests.get")
    def test_timeout(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout("slow")
        with self.assertRaises(FeedUnavailable) as ctx:
            fetch_check_results(timeout=1.5)
        self.assertIn("timed out", str(ctx.exception))

    @patch("netpulse.feed.requests.get")
    def test_connection_error(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(FeedUnavailable):
            fetch_check_results()

    @patch("netpulse.feed.requests.get")
    def test_invalid_json(self, mock_get):
        mock_get.return_value = make_response(json_error=ValueError("bad json"))
        with self.assertRaises(FeedUnavailable) as ctx:
            fetch_check_results()
        self.assertEqual(ctx.exception.status_code, 200)

    def test_uses_given_session(self):
        session = MagicMock()
        session.get.return_value = make_response([])
        self.assertEqual(fetch_check_results("http://x/api/stats", 5, session=session), [])
        session.get.assert_called_once()

    def test_feed_unavailable_is_runtime_error(self):
        self.assertTrue(issubclass(FeedUnavailable, RuntimeError))


if __name__ == "__main__":
    unittest.main()
