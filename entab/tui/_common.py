#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
from typing import Callable, List, Optional, Protocol

from rich.console import RenderableType
from rich.style import Style

import entab

from entab.tui._action import Action, KeyEvent, Mode

logger = entab.logger

SELECTED_STYLE = Style(bgcolor='grey23', bold=True)
BORDER_STYLE = Style(color='grey50')
ACTIVE_BORDER_STYLE = Style(color='yellow')
HIGHLIGHT_SYMBOL = '> '

KEYS_DOWN = ('j', 'down')
KEYS_UP = ('k', 'up')
KEYS_FIRST = ('g', 'home')
KEYS_LAST = ('G', 'end')
KEYS_NONE = ('h', 'left')

SendAction = Callable[[Action], None]


class Component(Protocol):
    """What the runtime needs from every screen.

    Each screen owns one Mode and must ignore key presses unless that Mode
    is the active one.  Overlay components draw on top of the other
    components that share their Mode.
    """

    mode: Mode
    overlay: bool

    def register_action_handler(self, send: SendAction) -> None:
        ...

    def update(self, action: Action) -> Optional[Action]:
        ...

    def handle_key_event(self, key: KeyEvent) -> Optional[Action]:
        ...

    def draw(self, width: int, height: int) -> Optional[RenderableType]:
        ...


class Selector:
    """Cursor over a short fixed list; stops at either end instead of wrapping."""

    def __init__(self, count: int = 0) -> None:
        self.count = count
        self.selected: Optional[int] = None

    def reset(self, count: int) -> None:
        self.count = count
        self.selected = None

    def select_next(self) -> None:
        if not self.count:
            return
        if self.selected is None:
            self.selected = 0
        else:
            self.selected = min(self.selected + 1, self.count - 1)

    def select_previous(self) -> None:
        if not self.count:
            return
        if self.selected is None:
            self.selected = self.count - 1
        else:
            self.selected = max(self.selected - 1, 0)

    def select_first(self) -> None:
        if self.count:
            self.selected = 0

    def select_last(self) -> None:
        if self.count:
            self.selected = self.count - 1

    def select_none(self) -> None:
        self.selected = None

    def handle_navigation(self, key: KeyEvent) -> bool:
        """Apply a j/k/g/G/h style move; returns False if the key is not a move."""
        if key.key in KEYS_DOWN:
            self.select_next()
        elif key.key in KEYS_UP:
            self.select_previous()
        elif key.key in KEYS_FIRST:
            self.select_first()
        elif key.key in KEYS_LAST:
            self.select_last()
        elif key.key in KEYS_NONE:
            self.select_none()
        else:
            return False
        return True


HELP_LINES: List[str] = [
    '[bold]entab keybindings[/bold]\n',
    '\n',
    '[bold]Home[/bold]\n',
    '  [bold]j[/bold] / [bold]↓[/bold]     Next record type\n',
    '  [bold]k[/bold] / [bold]↑[/bold]     Previous record type\n',
    '  [bold]Enter[/bold]     Load the selected type\n',
    '\n',
    '[bold]List[/bold]\n',
    '  [bold]j[/bold] / [bold]k[/bold]     Move down / up (wraps around)\n',
    '  [bold]g[/bold] / [bold]G[/bold]     First / last entry\n',
    '  [bold]/[/bold]         Search (Esc or Tab to leave)\n',
    '  [bold]Enter[/bold]     Open the selected entry\n',
    '  [bold]Esc[/bold]       Back to record types\n',
    '\n',
    '[bold]Details[/bold]\n',
    '  [bold]j[/bold] / [bold]k[/bold]     Scroll down / up\n',
    '  [bold]f[/bold] / [bold]b[/bold]     Page down / up\n',
    '  [bold]a[/bold]         Attachments (Space toggle, Enter download)\n',
    '  [bold]Esc[/bold]       Back to the list\n',
    '\n',
    '[bold]App[/bold]\n',
    '  [bold]q[/bold]         Quit\n',
    '  [bold]?[/bold]         Show this help\n',
]
