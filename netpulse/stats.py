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
Statistics computation for NetPulse.

This module provides latency resolution for individual check records, the
status/latency rollups shown on server group and address rows, and the
top-line counters displayed above the tree.
"""

import re

from netpulse.records import UNKNOWN_ADDRESS, is_syncing

LATENCY_MARKER_RE = re.compile(r"\[(\d+\.?\d*)ms\]")
NO_LATENCY = "--"

# Status labels per tree level: the predicate is identical, only the
# failure label differs.
ROLLUP_LABELS = {
    "group": ("online", "degraded"),
    "address": ("online", "offline"),
    "check": ("online", "offline"),
}


def resolve_latency(record):
    """
    Resolve the latency of a single check record in milliseconds.

    The structured ``latency_ms`` field wins when it is a positive number.
    Otherwise the message is scanned for a ``[<number>ms]`` marker.

    Args:
        record: Normalized check record

    Returns:
        Latency in milliseconds, or 0 when no latency data is available
    """
    latency = record.get("latency_ms")
    if isinstance(latency, (int, float)) and not isinstance(latency, bool) and latency > 0:
        return float(latency)
    match = LATENCY_MARKER_RE.search(record.get("message") or "")
    if match:
        return float(match.group(1))
    return 0


def usable_latencies(records):
    """Return resolved latencies strictly greater than zero."""
    values = []
    for record in records:
        latency = resolve_latency(record)
        if latency > 0:
            values.append(latency)
    return values


def compute_average_latency(records):
    """
    Compute the display latency for a group of records.

    Args:
        records: Iterable of check records

    Returns:
        Mean of usable latencies formatted like "12.3ms", or "--"
    """
    values = usable_latencies(records)
    if not values:
        return NO_LATENCY
    return f"{sum(values) / len(values):.1f}ms"


def format_check_latency(record):
    """Format the latency of a single check row with two decimals."""
    latency = resolve_latency(record)
    if latency > 0:
        return f"{latency:.2f}ms"
    return NO_LATENCY


def rollup_status(records, level="group"):
    """
    Compute the aggregate status label of a record group.

    Args:
        records: Non-empty list of check records
        level: Tree level ('group', 'address' or 'check')

    Returns:
        "online" when every record is healthy, otherwise the failure label
        of the level ("degraded" for groups, "offline" for addresses)

    Raises:
        ValueError: If records is empty
    """
    if not records:
        raise ValueError("Cannot compute a rollup for an empty record group.")
    online_label, failure_label = ROLLUP_LABELS[level]
    return online_label if all(record["status"] for record in records) else failure_label


def compute_rollup(records, level="group"):
    """Return the status and latency rollup for one group of records."""
    return {
        "status": rollup_status(records, level),
        "latency": compute_average_latency(records),
    }


def compute_rollups(categories):
    """
    Compute rollups for every server group and address node of a hierarchy.

    Args:
        categories: Category nodes produced by the grouping engine

    Returns:
        Dictionary mapping node keys to {"status", "latency"} rollups
    """
    rollups = {}
    for category in categories:
        for group in category["groups"]:
            rollups[group["key"]] = compute_rollup(group["records"], "group")
            for address in group["addresses"]:
                rollups[address["key"]] = compute_rollup(address["records"], "address")
    return rollups


def classify_address(checks):
    """
    Classify one address from all of its checks.

    Precedence is syncing > failed > healthy.
    """
    if any(is_syncing(check) for check in checks):
        return "syncing"
    if all(check["status"] for check in checks):
        return "healthy"
    return "failed"


def compute_summary_data(records):
    """
    Compute the top-line counters for the whole record set.

    Args:
        records: Full (unfiltered) list of check records

    Returns:
        Dictionary with total, healthy, failed and syncing address counts
        and the global average latency label
    """
    hosts = {}
    for record in records:
        hosts.setdefault(record.get("target_address") or UNKNOWN_ADDRESS, []).append(record)

    counts = {"healthy": 0, "failed": 0, "syncing": 0}
    for checks in hosts.values():
        counts[classify_address(checks)] += 1

    return {
        "total": len(hosts),
        "healthy": counts["healthy"],
        "failed": counts["failed"],
        "syncing": counts["syncing"],
        "avg_latency": compute_average_latency(records),
    }


def empty_summary():
    """Summary shown before the first successful refresh."""
    return compute_summary_data([])
