#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
import enum

from typing import Optional, Protocol

from rich import box
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

import entab

from entab.records import Assignment, AssignmentDetails, AssignmentType
from entab.tui._action import (
    Action, AssignmentDetailsLoaded, AssignmentSelected, AssignmentTypeChosen, AttachmentsLoaded,
    ClearScreen, Error, Help, KeyEvent, Mode, ModeChange, Quit,
)
from entab.tui._common import (
    ACTIVE_BORDER_STYLE, BORDER_STYLE, HIGHLIGHT_SYMBOL, KEYS_DOWN, KEYS_FIRST, KEYS_LAST,
    KEYS_NONE, KEYS_UP, SELECTED_STYLE, SendAction,
)
from entab.tui._engine import Direction, RecordList

logger = entab.logger

# Search box (3) + list borders (2) + list padding (2) + table header (1)
LIST_CHROME_ROWS = 8


class ListState(enum.Enum):
    NORMAL = 'normal'
    SEARCH = 'search'


class AssignmentRepository(Protocol):
    def fetch_records(self, kind: AssignmentType) -> list:
        ...

    def fetch_details(self, record: Assignment) -> AssignmentDetails:
        ...


class AssignmentListView:
    """The record listing with its inline search box."""

    overlay = False

    def __init__(self, repository: AssignmentRepository, window_size: int = 10) -> None:
        self.mode = Mode.LIST_SCREEN
        self.enabled = False
        self.state = ListState.NORMAL
        self.engine = RecordList(repository, window_size=window_size)
        self._repository = repository
        self._send: Optional[SendAction] = None

    @property
    def query(self) -> str:
        return self.engine.query

    def register_action_handler(self, send: SendAction) -> None:
        self._send = send

    def _emit(self, action: Action) -> None:
        if self._send is not None:
            self._send(action)

    def toggle_state(self) -> None:
        if self.state == ListState.NORMAL:
            self.state = ListState.SEARCH
        else:
            self.state = ListState.NORMAL

    def update(self, action: Action) -> Optional[Action]:
        if isinstance(action, ModeChange):
            self.enabled = action.mode == self.mode
        elif isinstance(action, AssignmentTypeChosen):
            return self._load(action.kind)
        return None

    def _load(self, kind: AssignmentType) -> Action:
        try:
            self.engine.load(kind)
        except (entab.FetchError, entab.NormalizationError) as ex:
            logger.warning('Could not load %s: %s', kind.label.lower(), ex)
            return Error(f'Could not load {kind.label.lower()}s: {ex}')
        self.state = ListState.NORMAL
        return ModeChange(Mode.LIST_SCREEN)

    def _open_selected(self) -> Optional[Action]:
        record = self.engine.selected
        if record is None or self.engine.selected_index() is None:
            return None
        try:
            details = self._repository.fetch_details(record)
        except (entab.FetchError, entab.NormalizationError) as ex:
            logger.warning('Could not open %s: %s', record.serial, ex)
            return Error(f'Could not open "{record.name}": {ex}')
        self._emit(ClearScreen())
        self._emit(AssignmentSelected(record))
        self._emit(AssignmentDetailsLoaded(details.text))
        self._emit(AttachmentsLoaded(tuple(details.attachments)))
        return ModeChange(Mode.CURRENT_ASSIGNMENT_SCREEN)

    def _handle_search_key(self, key: KeyEvent) -> None:
        if key.key in ('tab', 'escape', 'enter'):
            self.toggle_state()
            return
        query = self.engine.query
        if key.key == 'backspace':
            query = query[:-1]
        elif key.key == 'ctrl+u':
            query = ''
        elif key.printable:
            query += key.character
        else:
            return
        self.engine.set_filter(query)

    def handle_key_event(self, key: KeyEvent) -> Optional[Action]:
        if not self.enabled:
            return None
        if self.state == ListState.SEARCH:
            self._handle_search_key(key)
            return None
        logger.debug('list: got key %s', key.key)
        if key.key in KEYS_DOWN:
            self.engine.move_selection(Direction.NEXT)
        elif key.key in KEYS_UP:
            self.engine.move_selection(Direction.PREVIOUS)
        elif key.key in KEYS_FIRST:
            self.engine.select_first()
        elif key.key in KEYS_LAST:
            self.engine.select_last()
        elif key.key in KEYS_NONE:
            self.engine.select_none()
        elif key.key == 'escape':
            self._emit(ClearScreen())
            return ModeChange(Mode.HOME)
        elif key.key == 'enter':
            return self._open_selected()
        elif key.key == 'slash':
            self.toggle_state()
        elif key.key == 'q':
            return Quit()
        elif key.key == 'question_mark':
            return Help()
        return None

    def _title(self) -> str:
        kind = self.engine.kind.label if self.engine.kind else 'Assignment'
        total = len(self.engine.records)
        shown = len(self.engine.visible)
        if shown != total:
            return f'[bold]{kind}s[/bold] ({shown} of {total})'
        return f'[bold]{kind}s[/bold] ({total})'

    def draw(self, width: int, height: int) -> Optional[RenderableType]:
        self.engine.set_window_size(height - LIST_CHROME_ROWS)
        searching = self.state == ListState.SEARCH
        if searching:
            input_title = 'Input (Press Esc/Tab to exit)'
        else:
            input_title = 'Input (Press / to search)'
        search = Panel(Text(self.engine.query), title=input_title, title_align='left', box=box.ROUNDED,
                       border_style=ACTIVE_BORDER_STYLE if searching else BORDER_STYLE, height=3)

        table = Table(box=None, expand=True, pad_edge=False)
        table.add_column('#', no_wrap=True)
        table.add_column('ID', no_wrap=True)
        table.add_column('Date', no_wrap=True)
        table.add_column('Type', no_wrap=True)
        table.add_column('Name', ratio=1, no_wrap=True, overflow='ellipsis')
        selected = self.engine.selected_index()
        for offset, record in enumerate(self.engine.visible_page()):
            is_selected = selected == self.engine.window_start + offset
            marker = HIGHLIGHT_SYMBOL if is_selected else ' ' * len(HIGHLIGHT_SYMBOL)
            cells = [marker + record.serial, record.remote_id, record.date, record.category, record.name]
            table.add_row(*(Text(cell) for cell in cells), style=SELECTED_STYLE if is_selected else None)

        listing = Panel(table, title=self._title(),
                        subtitle='j/k or Up/Down to move, Enter to select, Esc back, q quit',
                        box=box.ROUNDED, padding=(1, 1), height=max(height - 3, 4),
                        border_style=BORDER_STYLE if searching else ACTIVE_BORDER_STYLE)
        return Group(search, listing)
