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
Tree row builder for NetPulse.

This module converts the grouped hierarchy, its rollups and the current
expansion state into an ordered list of row descriptors, one per visible
row. Row descriptors are plain dictionaries and carry no styling; the
terminal renderer in ``netpulse.ui_render`` decides how they look.

Nothing in this module mutates the expansion state or the input records.
"""

from typing import Any, Dict, List, Optional, Sequence

from netpulse.expansion import SECTION_DEGRADED_KEY, SECTION_OPERATIONAL_KEY, ExpansionState
from netpulse.grouping import SECTION_DOWN, SECTION_UP, build_hierarchy, partition_records
from netpulse.records import check_icon, filter_records, is_verified
from netpulse.stats import compute_rollups, format_check_latency

LOADING_LABEL = "Synchronizing infra..."
DEDICATED_NODE_LABEL = "Dedicated Node"

# (section id, root expansion key, title)
SECTIONS = (
    (SECTION_UP, SECTION_OPERATIONAL_KEY, "OPERATIONAL"),
    (SECTION_DOWN, SECTION_DEGRADED_KEY, "DEGRADED"),
)


def make_row(
    kind: str,
    key: Optional[str],
    depth: int,
    label: str,
    status: Optional[str] = None,
    latency: Optional[str] = None,
    detail: str = "",
    expandable: bool = False,
    expanded: bool = False,
    verified: bool = False,
    icon: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a single row descriptor."""
    return {
        "kind": kind,
        "key": key,
        "depth": depth,
        "label": label,
        "status": status,
        "latency": latency,
        "detail": detail,
        "expandable": expandable,
        "expanded": expanded,
        "verified": verified,
        "icon": icon,
    }


def build_check_row(record: Dict[str, Any], depth: int) -> Dict[str, Any]:
    """Build the row descriptor of a single check."""
    check_type = record.get("check_type") or ""
    return make_row(
        "check",
        None,
        depth,
        check_type,
        status="online" if record["status"] else "offline",
        latency=format_check_latency(record),
        detail=record.get("message") or "",
        verified=is_verified(record),
        icon=check_icon(check_type),
    )


def build_group_detail(group: Dict[str, Any]) -> str:
    if group["is_subnet"]:
        return f"{group['distinct_addresses']} nodes in subnet"
    return DEDICATED_NODE_LABEL


def _build_group_rows(
    group: Dict[str, Any],
    rollups: Dict[str, Dict[str, str]],
    expansion: ExpansionState,
    depth: int,
) -> List[Dict[str, Any]]:
    rollup = rollups[group["key"]]
    expanded = expansion.is_expanded(group["key"])
    rows = [
        make_row(
            "group",
            group["key"],
            depth,
            f"{group['server_name']} ({group['parent_address']})",
            status=rollup["status"],
            latency=rollup["latency"],
            detail=build_group_detail(group),
            expandable=True,
            expanded=expanded,
        )
    ]
    if not expanded:
        return rows

    if not group["is_subnet"]:
        rows.extend(build_check_row(record, depth + 1) for record in group["checks"])
        return rows

    for address in group["addresses"]:
        address_rollup = rollups[address["key"]]
        address_expanded = expansion.is_expanded(address["key"])
        rows.append(
            make_row(
                "address",
                address["key"],
                depth + 1,
                address["address"],
                status=address_rollup["status"],
                latency=address_rollup["latency"],
                expandable=True,
                expanded=address_expanded,
            )
        )
        if address_expanded:
            rows.extend(build_check_row(record, depth + 2) for record in address["records"])
    return rows


def build_tree_rows(
    categories: Sequence[Dict[str, Any]],
    rollups: Dict[str, Dict[str, str]],
    expansion: ExpansionState,
    depth_offset: int = 0,
) -> List[Dict[str, Any]]:
    """
    Build visible rows for one grouped partition.

    Category headers and group/address summary rows are always emitted;
    their children only when the node is expanded. Categories follow the
    default-open rule of the expansion state, groups and addresses do not.

    Args:
        categories: Category nodes from ``build_hierarchy``
        rollups: Node key -> rollup mapping from ``compute_rollups``
        expansion: Current expansion state (read only)
        depth_offset: Depth assigned to category rows

    Returns:
        List of row descriptors in display order
    """
    rows: List[Dict[str, Any]] = []
    for category in categories:
        expanded = expansion.is_category_expanded(category["key"])
        rows.append(
            make_row(
                "category",
                category["key"],
                depth_offset,
                category["name"].upper(),
                expandable=True,
                expanded=expanded,
            )
        )
        if not expanded:
            continue
        for group in category["groups"]:
            rows.extend(_build_group_rows(group, rollups, expansion, depth_offset + 1))
    return rows


def build_section_rows(
    records: Sequence[Dict[str, Any]],
    section_id: str,
    expansion: ExpansionState,
    depth_offset: int = 0,
) -> List[Dict[str, Any]]:
    """Group one partition and build its rows."""
    categories = build_hierarchy(records, section_id)
    return build_tree_rows(categories, compute_rollups(categories), expansion, depth_offset)


def build_dashboard_rows(
    records: Sequence[Dict[str, Any]],
    expansion: ExpansionState,
    query: str = "",
) -> List[Dict[str, Any]]:
    """
    Build the rows of both dashboard panels.

    The query filters the flat record set once, before grouping, so only
    matching records (and the groups that contain them) appear. Filtered
    records are then partitioned by their own status into the operational
    and degraded panels, each headed by a section row.

    Args:
        records: Full record set from the latest successful refresh
        expansion: Current expansion state (read only)
        query: Free-text filter; empty matches everything

    Returns:
        List of row descriptors for both panels in display order
    """
    filtered = filter_records(records, query)
    partitions = dict(zip((SECTION_UP, SECTION_DOWN), partition_records(filtered)))
    rows: List[Dict[str, Any]] = []
    for section_id, section_key, title in SECTIONS:
        items = partitions[section_id]
        expanded = expansion.is_expanded(section_key)
        rows.append(
            make_row(
                "section",
                section_key,
                0,
                title,
                detail=f"{len(items)} checks",
                expandable=True,
                expanded=expanded,
            )
        )
        if not expanded:
            continue
        if not records:
            rows.append(make_row("placeholder", None, 1, LOADING_LABEL))
            continue
        rows.extend(build_section_rows(items, section_id, expansion, depth_offset=1))
    return rows

