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
Check record model for NetPulse.

This module normalizes raw check results received from the collector feed
into plain dictionaries and provides the small predicates the rest of the
engine relies on: subnet detection, dotted-quad ordering, and the search
filter applied to the flat record set before grouping.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Uncategorized"
UNKNOWN_ADDRESS = "unknown"
VERIFIED_MARKER = "Verified via"
SYNCING_MARKER = "Synchronizing"

# Fields consulted by the free-text filter, in display order
SEARCH_FIELDS = ("category", "server_name", "target_address", "check_type")

_TEXT_FIELDS = ("server_name", "parent_address", "target_address", "check_type", "message")


def _as_number(value: Any) -> Optional[float]:
    """Return value as a float when it is a real number, otherwise None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def normalize_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build a complete check record from a decoded feed entry.

    Missing fields are defaulted rather than rejected: an absent category
    becomes "Uncategorized", absent text fields become empty strings and an
    absent or non-numeric latency becomes None.

    Args:
        raw: Mapping decoded from the collector payload

    Returns:
        Dict with every record field present
    """
    record = {field: _as_text(raw.get(field)) for field in _TEXT_FIELDS}
    record["category"] = _as_text(raw.get("category")) or DEFAULT_CATEGORY
    record["status"] = bool(raw.get("status"))
    record["latency_ms"] = _as_number(raw.get("latency_ms"))
    record["packet_loss"] = _as_number(raw.get("packet_loss"))
    timestamp = raw.get("timestamp")
    record["timestamp"] = _as_text(timestamp) if timestamp is not None else None
    return record


def normalize_records(entries: Iterable[Any]) -> List[Dict[str, Any]]:
    """Normalize a sequence of feed entries, skipping entries that are not mappings."""
    records = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("Skipping malformed check record at index %d: %r", index, entry)
            continue
        records.append(normalize_record(entry))
    return records


def is_subnet(parent_address: Optional[str]) -> bool:
    """
    Return True when the parent address denotes a multi-address subnet.

    A subnet must contain a "/" and must not be a /32 single-host prefix.
    An empty address is never a subnet.
    """
    if not parent_address:
        return False
    return "/" in parent_address and not parent_address.endswith("/32")


def ip_sort_key(address: Optional[str]) -> Tuple[int, int, int, int]:
    """
    Build a numeric sort key from a dotted-quad address.

    Each of the first four octets is compared numerically; missing or
    non-numeric octets count as 0.
    """
    parts = (address or "").split(".")
    octets = []
    for index in range(4):
        try:
            octets.append(int(parts[index].strip() or 0))
        except (IndexError, ValueError):
            octets.append(0)
    return octets[0], octets[1], octets[2], octets[3]


def record_matches_query(record: Dict[str, Any], query: str) -> bool:
    """Return True when any searchable field contains the query (case-insensitive)."""
    needle = (query or "").lower()
    if not needle:
        return True
    return any(needle in (record.get(field) or "").lower() for field in SEARCH_FIELDS)


def filter_records(records: Iterable[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """Filter the flat record set once, before any grouping takes place."""
    return [record for record in records if record_matches_query(record, query)]


def is_verified(record: Dict[str, Any]) -> bool:
    return VERIFIED_MARKER in (record.get("message") or "")


def is_syncing(record: Dict[str, Any]) -> bool:
    return SYNCING_MARKER in (record.get("message") or "")


def check_icon(check_type: str) -> str:
    """
    Map a check type to the icon name shown next to check rows.

    Matching is case-sensitive: protocol names are upper case in the feed.
    """
    check_type = check_type or ""
    if "PING" in check_type:
        return "activity"
    if "TCP" in check_type:
        return "shield"
    if "UDP" in check_type:
        return "zap"
    return "box"
