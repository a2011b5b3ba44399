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

"""Unit tests for netpulse.expansion."""

import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from netpulse.expansion import (  # noqa: E402
    INITIALIZED_KEY,
    SECTION_DEGRADED_KEY,
    SECTION_OPERATIONAL_KEY,
    ExpansionState,
)


class TestExpansionState(unittest.TestCase):
    def test_default_seed(self):
        state = ExpansionState()
        self.assertEqual(state.keys(), frozenset({SECTION_OPERATIONAL_KEY, SECTION_DEGRADED_KEY, INITIALIZED_KEY}))
        self.assertTrue(state.initialized)
        self.assertFalse(state.is_category_expanded("cat-up-core"))

    def test_toggle_flips_membership(self):
        state = ExpansionState()
        self.assertTrue(state.toggle("group:cat-up-core:edge1:10.0.0.0/24"))
        self.assertIn("group:cat-up-core:edge1:10.0.0.0/24", state)
        self.assertFalse(state.toggle("group:cat-up-core:edge1:10.0.0.0/24"))
        self.assertNotIn("group:cat-up-core:edge1:10.0.0.0/24", state)

    def test_root_sections_can_collapse(self):
        state = ExpansionState()
        state.toggle(SECTION_OPERATIONAL_KEY)
        self.assertFalse(state.is_expanded(SECTION_OPERATIONAL_KEY))
        self.assertTrue(state.is_expanded(SECTION_DEGRADED_KEY))

    def test_default_open_categories_without_sentinel(self):
        state = ExpansionState(initialized=False)
        self.assertFalse(state.initialized)
        self.assertTrue(state.is_category_expanded("cat-up-core"))
        # Groups are never default-open
        self.assertFalse(state.is_expanded("group:cat-up-core:edge1:10.0.0.1"))

    def test_initialize_materializes_open_categories(self):
        state = ExpansionState(initialized=False)
        self.assertTrue(state.initialize(["cat-up-core", "cat-up-edge"]))
        self.assertTrue(state.initialized)
        state.toggle("cat-up-core")
        self.assertFalse(state.is_category_expanded("cat-up-core"))
        self.assertTrue(state.is_category_expanded("cat-up-edge"))
        self.assertFalse(state.is_category_expanded("cat-down-core"))

    def test_initialize_is_one_time(self):
        state = ExpansionState()
        self.assertFalse(state.initialize(["cat-up-core"]))
        self.assertNotIn("cat-up-core", state)

    def test_extra_keys_and_expand_collapse(self):
        state = ExpansionState(extra_keys=["cat-up-core"])
        self.assertTrue(state.is_category_expanded("cat-up-core"))
        state.collapse("cat-up-core")
        state.collapse("cat-up-core")
        self.assertFalse(state.is_expanded("cat-up-core"))
        state.expand("cat-down-core")
        state.expand("cat-down-core")
        self.assertEqual(len(state), 4)

    def test_keys_is_a_snapshot(self):
        state = ExpansionState()
        snapshot = state.keys()
        state.expand("cat-up-core")
        self.assertNotIn("cat-up-core", snapshot)


if __name__ == "__main__":
    unittest.main()
