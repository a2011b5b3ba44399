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
Check result feed client for NetPulse.

This module fetches the current check results from the collector's HTTP
endpoint. It is split the same way as the other network helpers:
- Pure payload parsing (unit-testable without network)
- HTTP client (can be mocked for testing)
"""

import logging

import requests

from netpulse.records import normalize_records

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "http://localhost:3000/api/stats"
DEFAULT_REQUEST_TIMEOUT = 10.0


class FeedUnavailable(RuntimeError):
    """Raised when the check result feed cannot be fetched or decoded."""

    def __init__(self, message, url=None, status_code=None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def parse_feed_payload(payload, url=None):
    """
    Convert a decoded feed payload into normalized check records.

    Args:
        payload: Decoded JSON document, expected to be a list of records
        url: Feed URL, used for error reporting only

    Returns:
        List of normalized check records

    Raises:
        FeedUnavailable: If the payload is not a list
    """
    if not isinstance(payload, list):
        raise FeedUnavailable(f"Unexpected feed payload type: {type(payload).__name__}", url=url)
    return normalize_records(payload)


def fetch_check_results(url=DEFAULT_FEED_URL, timeout=DEFAULT_REQUEST_TIMEOUT, session=None):
    """
    Fetch the current check results from the collector.

    Args:
        url: Feed endpoint returning a JSON list of check results
        timeout: Request timeout in seconds
        session: Optional requests.Session to reuse connections

    Returns:
        List of normalized check records

    Raises:
        FeedUnavailable: On connection errors, timeouts, non-2xx responses
            or an undecodable body
    """
    client = session if session is not None else requests
    try:
        response = client.get(url, timeout=timeout, headers={"Accept": "application/json"})
    except requests.exceptions.Timeout as exc:
        raise FeedUnavailable(f"Feed request timed out after {timeout}s", url=url) from exc
    except requests.exceptions.RequestException as exc:
        raise FeedUnavailable(f"Feed request failed: {exc}", url=url) from exc

    if not response.ok:
        raise FeedUnavailable(
            f"Feed returned HTTP {response.status_code}",
            url=url,
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise FeedUnavailable(f"Feed returned invalid JSON: {exc}", url=url, status_code=response.status_code) from exc

    records = parse_feed_payload(payload, url=url)
    logger.debug("Fetched %d check records from %s", len(records), url)
    return records
