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
Grouping engine for NetPulse.

This module turns a flat list of check records into the category ->
server group -> address -> check hierarchy shown by the dashboard.
Nodes are plain dictionaries carrying a deterministic ``key`` built from
their ancestor keys, so a node keeps the same key across refreshes as long
as its path in the tree does not change.
"""

import re
from typing import Any, Dict, List, Sequence, Tuple

from netpulse.records import DEFAULT_CATEGORY, ip_sort_key, is_subnet

SECTION_UP = "up"
SECTION_DOWN = "down"

_WHITESPACE_RE = re.compile(r"\s+")
_GROUP_KEY_SEPARATOR = "||"


def category_node_key(section_id: str, category: str) -> str:
    """Build the expansion key of a category node."""
    slug = _WHITESPACE_RE.sub("-", category).lower()
    return f"cat-{section_id}-{slug}"


def group_node_key(category_key: str, server_name: str, parent_address: str) -> str:
    """Build the expansion key of a server/subnet group node."""
    return f"group:{category_key}:{server_name}:{parent_address}"


def address_node_key(group_key: str, address: str) -> str:
    """Build the expansion key of an address node inside a subnet group."""
    return f"ip:{group_key}:{address}"


def partition_records(records: Sequence[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Split records into healthy and unhealthy lists based on their own status.

    Returns:
        Tuple of (up_records, down_records), each in input order
    """
    up_records = [record for record in records if record["status"]]
    down_records = [record for record in records if not record["status"]]
    return up_records, down_records


def _bucket_by_category(records: Sequence[Dict[str, Any]]) -> Dict[str, Dict[Tuple[str, str], List[Dict[str, Any]]]]:
    categories: Dict[str, Dict[Tuple[str, str], List[Dict[str, Any]]]] = {}
    for record in records:
        category = record.get("category") or DEFAULT_CATEGORY
        # target_address is not part of the composite key
        group_key = (record.get("server_name") or "", record.get("parent_address") or "")
        categories.setdefault(category, {}).setdefault(group_key, []).append(record)
    return categories


def _build_address_nodes(group_key: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    buckets: Dict[str, List[Dict[str, Any]]] = {}
    for record in records:
        buckets.setdefault(record.get("target_address", ""), []).append(record)
    # sorted() is stable, so addresses comparing equal keep encounter order
    return [
        {
            "kind": "address",
            "key": address_node_key(group_key, address),
            "address": address,
            "records": buckets[address],
        }
        for address in sorted(buckets, key=ip_sort_key)
    ]


def _composite_sort_key(group_key: Tuple[str, str]) -> str:
    return _GROUP_KEY_SEPARATOR.join(group_key)


def _check_sort_key(record: Dict[str, Any]) -> Tuple[str, str]:
    check_type = record.get("check_type") or ""
    # lowercase first among case variants
    return check_type.casefold(), check_type.swapcase()


def build_group_node(category_key: str, server_name: str, parent_address: str, records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build one server group node.

    Subnet groups get a secondary level of address nodes sorted numerically,
    with checks kept in encounter order under each address.  Dedicated
    (non-subnet) groups list their checks directly, sorted by check type.
    """
    key = group_node_key(category_key, server_name, parent_address)
    subnet = is_subnet(parent_address)
    if subnet:
        addresses = _build_address_nodes(key, records)
        checks: List[Dict[str, Any]] = []
    else:
        addresses = []
        checks = sorted(records, key=_check_sort_key)
    return {
        "kind": "group",
        "key": key,
        "server_name": server_name,
        "parent_address": parent_address,
        "is_subnet": subnet,
        "records": list(records),
        "addresses": addresses,
        "checks": checks,
        "distinct_addresses": len({record.get("target_address", "") for record in records}),
    }


def build_hierarchy(records: Sequence[Dict[str, Any]], section_id: str) -> List[Dict[str, Any]]:
    """
    Group one partition of records into category nodes.

    Categories are sorted by name and groups by their composite
    ``server_name||parent_address`` key, both as plain string comparison.

    Args:
        records: Records of one partition (already filtered)
        section_id: Partition identifier used in node keys ('up' or 'down')

    Returns:
        List of category node dictionaries in display order
    """
    categories = []
    buckets = _bucket_by_category(records)
    for category in sorted(buckets):
        category_key = category_node_key(section_id, category)
        groups = []
        for server_name, parent_address in sorted(buckets[category], key=_composite_sort_key):
            group_records = buckets[category][(server_name, parent_address)]
            groups.append(build_group_node(category_key, server_name, parent_address, group_records))
        categories.append({"kind": "category", "key": category_key, "name": category, "groups": groups})
    return categories


def collect_category_keys(records: Sequence[Dict[str, Any]]) -> List[str]:
    """Return the category keys of both partitions for the given records, sorted."""
    keys = set()
    for record in records:
        section_id = SECTION_UP if record["status"] else SECTION_DOWN
        keys.add(category_node_key(section_id, record.get("category") or DEFAULT_CATEGORY))
    return sorted(keys)
