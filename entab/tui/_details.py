#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
import textwrap

from typing import List, Optional

from rich import box
from rich.align import Align
from rich.console import RenderableType
from rich.markup import escape as _escape_markup
from rich.panel import Panel
from rich.text import Text

import entab

from entab.records import Assignment
from entab.tui._action import (
    Action, AssignmentDetailsLoaded, AssignmentSelected, AttachmentsLoaded, ClearScreen, Error,
    Help, KeyEvent, Mode, ModeChange, Quit, ToggleDownloadPopup,
)
from entab.tui._common import BORDER_STYLE, KEYS_DOWN, KEYS_FIRST, KEYS_LAST, KEYS_UP, SendAction

logger = entab.logger

# Border (1) + padding (2) on each side
PANEL_CHROME_COLS = 6
# Border (1) + padding (1) top and bottom
PANEL_CHROME_ROWS = 4


def wrap_text(text: str, width: int) -> List[str]:
    width = max(width, 1)
    lines: List[str] = list()
    for paragraph in text.splitlines():
        lines.extend(textwrap.wrap(paragraph, width=width) or [''])
    return lines


class Details:
    """Scrollable text of the currently opened record."""

    overlay = False

    def __init__(self) -> None:
        self.mode = Mode.CURRENT_ASSIGNMENT_SCREEN
        self.enabled = False
        self.current_text: Optional[str] = None
        self.assignment: Optional[Assignment] = None
        self.attachment_count = 0
        self.popup_visible = False
        self.offset = 0
        self.viewport_width = 80
        self.viewport_height = 20
        self._send: Optional[SendAction] = None

    def register_action_handler(self, send: SendAction) -> None:
        self._send = send

    def lines(self) -> List[str]:
        return wrap_text(self.current_text or '', self.viewport_width)

    def max_offset(self) -> int:
        return max(0, len(self.lines()) - self.viewport_height)

    def scroll_to(self, offset: int) -> None:
        self.offset = min(max(offset, 0), self.max_offset())

    def scroll_by(self, delta: int) -> None:
        self.scroll_to(self.offset + delta)

    def set_viewport(self, width: int, height: int) -> None:
        self.viewport_width = max(width, 1)
        self.viewport_height = max(height, 1)
        self.scroll_to(self.offset)

    def update(self, action: Action) -> Optional[Action]:
        if isinstance(action, ModeChange):
            self.enabled = action.mode == self.mode
        elif isinstance(action, AssignmentDetailsLoaded):
            self.current_text = action.text
            self.offset = 0
        elif isinstance(action, AssignmentSelected):
            self.assignment = action.assignment
        elif isinstance(action, AttachmentsLoaded):
            self.attachment_count = len(action.attachments)
            self.popup_visible = False
        elif isinstance(action, ToggleDownloadPopup):
            self.popup_visible = not self.popup_visible
        return None

    def handle_key_event(self, key: KeyEvent) -> Optional[Action]:
        # The attachment picker owns the keyboard while it is showing
        if not self.enabled or self.popup_visible:
            return None
        logger.debug('details: got key %s', key.key)
        if key.key in KEYS_DOWN:
            self.scroll_by(1)
        elif key.key in KEYS_UP:
            self.scroll_by(-1)
        elif key.key in ('f', 'pagedown', 'space'):
            self.scroll_by(self.viewport_height)
        elif key.key in ('b', 'pageup'):
            self.scroll_by(-self.viewport_height)
        elif key.key in KEYS_FIRST:
            self.scroll_to(0)
        elif key.key in KEYS_LAST:
            self.scroll_to(self.max_offset())
        elif key.key == 'a':
            if not self.attachment_count:
                return Error('This entry has no attachments')
            return ToggleDownloadPopup()
        elif key.key == 'escape':
            if self._send is not None:
                self._send(ClearScreen())
            self.offset = 0
            return ModeChange(Mode.LIST_SCREEN)
        elif key.key == 'q':
            return Quit()
        elif key.key == 'question_mark':
            return Help()
        return None

    def draw(self, width: int, height: int) -> Optional[RenderableType]:
        panel_width = max(min(width, max(width * 4 // 5, 60)), PANEL_CHROME_COLS + 1)
        panel_height = max(height - 2, PANEL_CHROME_ROWS + 1)
        self.set_viewport(panel_width - PANEL_CHROME_COLS, panel_height - PANEL_CHROME_ROWS)
        visible = self.lines()[self.offset:self.offset + self.viewport_height]
        if self.assignment is not None:
            title = f'[bold]{_escape_markup(self.assignment.name)}[/bold]'
        else:
            title = '[bold]Assignment Details[/bold]'
        hint = 'j/k scroll, Esc back'
        if self.attachment_count:
            hint = f'a attachments ({self.attachment_count}), ' + hint
        if self.max_offset():
            hint = f'{self.offset + 1}-{self.offset + len(visible)}/{len(self.lines())}  ' + hint
        panel = Panel(Text('\n'.join(visible)), title=title, subtitle=hint, box=box.ROUNDED,
                      border_style=BORDER_STYLE, padding=(1, 2), width=panel_width, height=panel_height)
        return Align.center(panel, vertical='middle', height=height)
