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
Expand/collapse state for NetPulse tree nodes.

This module provides the ExpansionState class, a process-lifetime set of
expanded node keys. The state survives every refresh: nodes that disappear
from the feed keep their membership, so they reopen as they were when they
come back.
"""

from typing import FrozenSet, Iterable, Optional, Set

SECTION_OPERATIONAL_KEY = "section-operational"
SECTION_DEGRADED_KEY = "section-degraded"
ROOT_SECTION_KEYS = (SECTION_OPERATIONAL_KEY, SECTION_DEGRADED_KEY)
INITIALIZED_KEY = "initialized"


class ExpansionState:
    """
    Set of expanded node keys with a one-time "initialized" sentinel.

    While the sentinel is absent every category node reports expanded
    (first-paint default-open behaviour). Once it is present, categories
    follow explicit membership like every other node. Server groups and
    addresses are never covered by the default-open rule.
    """

    def __init__(self, initialized: bool = True, extra_keys: Optional[Iterable[str]] = None) -> None:
        """
        Initialize the expansion state.

        Args:
            initialized: Seed the "initialized" sentinel (default: True)
            extra_keys: Additional node keys to start expanded
        """
        self._expanded: Set[str] = set(ROOT_SECTION_KEYS)
        if initialized:
            self._expanded.add(INITIALIZED_KEY)
        if extra_keys:
            self._expanded.update(extra_keys)

    @property
    def initialized(self) -> bool:
        return INITIALIZED_KEY in self._expanded

    def is_expanded(self, key: str) -> bool:
        """Return True when the node key is explicitly expanded."""
        return key in self._expanded

    def is_category_expanded(self, key: str) -> bool:
        """Return True when a category node should render its children."""
        return key in self._expanded or INITIALIZED_KEY not in self._expanded

    def toggle(self, key: str) -> bool:
        """
        Flip the membership of a node key.

        Args:
            key: Node key to toggle

        Returns:
            True if the key is expanded after the toggle
        """
        if key in self._expanded:
            self._expanded.discard(key)
            return False
        self._expanded.add(key)
        return True

    def expand(self, key: str) -> None:
        self._expanded.add(key)

    def collapse(self, key: str) -> None:
        self._expanded.discard(key)

    def initialize(self, open_keys: Iterable[str] = ()) -> bool:
        """
        Materialize the default-open categories and set the sentinel.

        Called before the first explicit toggle when the state was created
        without the sentinel, so the categories currently shown open stay
        open instead of collapsing all at once.

        Args:
            open_keys: Category keys currently rendered expanded

        Returns:
            True if the sentinel was added by this call
        """
        if INITIALIZED_KEY in self._expanded:
            return False
        self._expanded.update(open_keys)
        self._expanded.add(INITIALIZED_KEY)
        return True

    def keys(self) -> FrozenSet[str]:
        """Return a snapshot of the expanded keys."""
        return frozenset(self._expanded)

    def __contains__(self, key: object) -> bool:
        return key in self._expanded

    def __len__(self) -> int:
        return len(self._expanded)
