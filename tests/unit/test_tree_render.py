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
Unit tests for netpulse.tree_render.

Covers:
- Section, category, group, address and check rows
- Expansion-driven visibility
- Filtering before grouping
- Placeholder rows while no data is loaded
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from netpulse.expansion import SECTION_DEGRADED_KEY, SECTION_OPERATIONAL_KEY, ExpansionState  # noqa: E402
from netpulse.grouping import SECTION_UP, build_hierarchy  # noqa: E402
from netpulse.records import normalize_record  # noqa: E402
from netpulse.stats import compute_rollups  # noqa: E402
from netpulse.tree_render import (  # noqa: E402
    DEDICATED_NODE_LABEL,
    LOADING_LABEL,
    build_check_row,
    build_dashboard_rows,
    build_tree_rows,
)

SUBNET_GROUP_KEY = "group:cat-up-core:edge1:10.0.0.0/24"


def make_record(**fields):
    base = {"category": "Core", "server_name": "edge1", "parent_address": "10.0.0.0/24"}
    base.update(fields)
    return normalize_record(base)


def subnet_records():
    return [
        make_record(target_address="10.0.0.6", check_type="PING", status=True, latency_ms=4),
        make_record(target_address="10.0.0.5", check_type="PING", status=True, latency_ms=12),
        make_record(target_address="10.0.0.5", check_type="TCP:22", status=True, message="Verified via TCP"),
    ]


def labels(rows):
    return [row["label"] for row in rows]


class TestBuildCheckRow(unittest.TestCase):
    def test_check_row_fields(self):
        record = make_record(check_type="TCP:443", status=False, latency_ms=1.5, message="Verified via probe")
        row = build_check_row(record, 3)
        self.assertEqual(row["kind"], "check")
        self.assertEqual(row["depth"], 3)
        self.assertEqual(row["label"], "TCP:443")
        self.assertEqual(row["status"], "offline")
        self.assertEqual(row["latency"], "1.50ms")
        self.assertEqual(row["detail"], "Verified via probe")
        self.assertTrue(row["verified"])
        self.assertEqual(row["icon"], "shield")
        self.assertFalse(row["expandable"])


class TestBuildTreeRows(unittest.TestCase):
    def _rows(self, records, expansion):
        categories = build_hierarchy(records, SECTION_UP)
        return build_tree_rows(categories, compute_rollups(categories), expansion)

    def test_collapsed_category_hides_groups(self):
        rows = self._rows(subnet_records(), ExpansionState())
        self.assertEqual(labels(rows), ["CORE"])
        self.assertFalse(rows[0]["expanded"])

    def test_group_row_summary(self):
        rows = self._rows(subnet_records(), ExpansionState(extra_keys=["cat-up-core"]))
        self.assertEqual(labels(rows), ["CORE", "edge1 (10.0.0.0/24)"])
        group = rows[1]
        self.assertEqual(group["key"], SUBNET_GROUP_KEY)
        self.assertEqual(group["depth"], 1)
        self.assertEqual(group["status"], "online")
        self.assertEqual(group["latency"], "8.0ms")
        self.assertEqual(group["detail"], "2 nodes in subnet")
        self.assertFalse(group["expanded"])

    def test_expanded_subnet_shows_addresses_then_checks(self):
        expansion = ExpansionState(extra_keys=["cat-up-core", SUBNET_GROUP_KEY, f"ip:{SUBNET_GROUP_KEY}:10.0.0.5"])
        rows = self._rows(subnet_records(), expansion)
        self.assertEqual(
            [(row["kind"], row["label"], row["depth"]) for row in rows],
            [
                ("category", "CORE", 0),
                ("group", "edge1 (10.0.0.0/24)", 1),
                ("address", "10.0.0.5", 2),
                ("check", "PING", 3),
                ("check", "TCP:22", 3),
                ("address", "10.0.0.6", 2),
            ],
        )
        self.assertTrue(rows[4]["verified"])

    def test_dedicated_group_lists_checks_directly(self):
        records = [
            make_record(parent_address="10.0.0.9", target_address="10.0.0.9", check_type="UDP:53", status=True),
            make_record(parent_address="10.0.0.9", target_address="10.0.0.9", check_type="PING", status=True),
        ]
        expansion = ExpansionState(extra_keys=["cat-up-core", "group:cat-up-core:edge1:10.0.0.9"])
        rows = self._rows(records, expansion)
        self.assertEqual(rows[1]["detail"], DEDICATED_NODE_LABEL)
        self.assertEqual([(r["label"], r["depth"]) for r in rows[2:]], [("PING", 2), ("UDP:53", 2)])

    def test_default_open_categories(self):
        rows = self._rows(subnet_records(), ExpansionState(initialized=False))
        self.assertTrue(rows[0]["expanded"])
        self.assertEqual(len(rows), 2)

    def test_rendering_does_not_mutate_expansion(self):
        expansion = ExpansionState(initialized=False)
        before = expansion.keys()
        self._rows(subnet_records(), expansion)
        self.assertEqual(expansion.keys(), before)


class TestBuildDashboardRows(unittest.TestCase):
    def test_placeholder_when_no_records(self):
        rows = build_dashboard_rows([], ExpansionState())
        self.assertEqual(
            [(row["kind"], row["label"]) for row in rows],
            [
                ("section", "OPERATIONAL"),
                ("placeholder", LOADING_LABEL),
                ("section", "DEGRADED"),
                ("placeholder", LOADING_LABEL),
            ],
        )

    def test_sections_partition_by_status(self):
        records = [
            make_record(target_address="10.0.0.5", check_type="PING", status=True),
            make_record(target_address="10.0.0.6", check_type="PING", status=False),
        ]
        rows = build_dashboard_rows(records, ExpansionState())
        self.assertEqual(
            [(row["kind"], row["key"]) for row in rows],
            [
                ("section", SECTION_OPERATIONAL_KEY),
                ("category", "cat-up-core"),
                ("section", SECTION_DEGRADED_KEY),
                ("category", "cat-down-core"),
            ],
        )
        self.assertEqual(rows[0]["detail"], "1 checks")
        self.assertEqual(rows[1]["depth"], 1)

    def test_collapsed_section_hides_children(self):
        expansion = ExpansionState()
        expansion.collapse(SECTION_OPERATIONAL_KEY)
        rows = build_dashboard_rows(subnet_records(), expansion)
        self.assertEqual(labels(rows), ["OPERATIONAL", "DEGRADED"])
        self.assertEqual(rows[0]["detail"], "3 checks")
        self.assertEqual(rows[1]["detail"], "0 checks")

    def test_query_filters_before_grouping(self):
        records = [
            make_record(server_name="api", parent_address="10.0.1.1", check_type="TCP_CHECK", status=True),
            make_record(server_name="dns", parent_address="10.0.2.1", check_type="PING", status=True),
        ]
        expansion = ExpansionState(extra_keys=["cat-up-core"])
        rows = build_dashboard_rows(records, expansion, query="tcp")
        self.assertIn("api (10.0.1.1)", labels(rows))
        self.assertNotIn("dns (10.0.2.1)", labels(rows))

    def test_query_without_matches_leaves_sections_empty(self):
        rows = build_dashboard_rows(subnet_records(), ExpansionState(), query="nomatch")
        self.assertEqual(labels(rows), ["OPERATIONAL", "DEGRADED"])


if __name__ == "__main__":
    unittest.main()
