#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
"""Filterable, windowed view over the fetched records.

The full record sequence is authoritative.  The visible sequence is
always recomputed from it, the selection always refers to a visible
record, and the selected visible index always lies inside the window.
"""
import enum

from typing import List, Optional, Protocol, Sequence

import entab

from entab.records import Assignment, AssignmentType

logger = entab.logger


class Direction(enum.Enum):
    NEXT = 1
    PREVIOUS = -1


class RecordSource(Protocol):
    def fetch_records(self, kind: AssignmentType) -> List[Assignment]:
        ...


class RecordList:
    def __init__(self, repository: Optional[RecordSource] = None, window_size: int = 10) -> None:
        self._repository = repository
        self.kind: Optional[AssignmentType] = None
        self.records: List[Assignment] = list()
        self.visible: List[Assignment] = list()
        self.query = ''
        self.selected: Optional[Assignment] = None
        self.window_start = 0
        self.window_size = max(1, window_size)

    def load(self, kind: AssignmentType) -> List[Assignment]:
        """Fetch a fresh record sequence; errors propagate untouched."""
        if self._repository is None:
            raise entab.FetchError('No record repository configured')
        records = self._repository.fetch_records(kind)
        self.kind = kind
        self.set_records(records)
        return list(self.records)

    def set_records(self, records: Sequence[Assignment]) -> None:
        self.records = list(records)
        self.query = ''
        self.visible = list(self.records)
        self.selected = None
        self.window_start = 0

    def set_filter(self, query: str) -> None:
        self.query = query
        needle = query.lower()
        self.visible = [record for record in self.records if needle in record.haystack()]
        self.window_start = 0
        if self.visible:
            self.selected = self.visible[0]
            self.adjust_window(0)
        else:
            self.selected = None
        logger.debug('Filter %r leaves %d of %d records', query, len(self.visible), len(self.records))

    def selected_index(self) -> Optional[int]:
        if self.selected is None:
            return None
        for idx, record in enumerate(self.visible):
            if record.serial == self.selected.serial:
                return idx
        return None

    def _select(self, idx: Optional[int]) -> Optional[Assignment]:
        if idx is None or not self.visible:
            self.selected = None
            return None
        self.selected = self.visible[idx]
        self.adjust_window(idx)
        return self.selected

    def move_selection(self, direction: Direction) -> Optional[Assignment]:
        if not self.visible:
            return self._select(None)
        idx = self.selected_index()
        if idx is None:
            # First selection lands on the top entry whichever way we move
            return self._select(0)
        return self._select((idx + direction.value) % len(self.visible))

    def select_first(self) -> Optional[Assignment]:
        return self._select(0 if self.visible else None)

    def select_last(self) -> Optional[Assignment]:
        return self._select(len(self.visible) - 1 if self.visible else None)

    def select_none(self) -> None:
        self._select(None)

    def adjust_window(self, selected_index: int) -> None:
        if selected_index < self.window_start:
            self.window_start = selected_index
        elif selected_index >= self.window_start + self.window_size:
            self.window_start = selected_index + 1 - self.window_size

    def set_window_size(self, window_size: int) -> None:
        window_size = max(1, window_size)
        if window_size == self.window_size:
            return
        self.window_size = window_size
        idx = self.selected_index()
        if idx is not None:
            self.adjust_window(idx)
        else:
            self.window_start = max(0, min(self.window_start, len(self.visible) - self.window_size))

    def visible_page(self) -> List[Assignment]:
        return self.visible[self.window_start:self.window_start + self.window_size]
