#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
from typing import List, Optional

from rich import box
from rich.align import Align
from rich.console import RenderableType
from rich.panel import Panel
from rich.text import Text

import entab

from entab.records import AssignmentType
from entab.tui._action import Action, AssignmentTypeChosen, Help, KeyEvent, Mode, ModeChange, Quit
from entab.tui._common import HIGHLIGHT_SYMBOL, SELECTED_STYLE, SendAction, Selector

logger = entab.logger


class Home:
    """Record type picker shown when the session starts."""

    overlay = False

    def __init__(self, kinds: Optional[List[AssignmentType]] = None) -> None:
        self.mode = Mode.HOME
        self.enabled = True
        self.kinds = kinds if kinds is not None else [AssignmentType.CIRCULAR, AssignmentType.HOMEWORK]
        self.selector = Selector(len(self.kinds))
        self._send: Optional[SendAction] = None

    def register_action_handler(self, send: SendAction) -> None:
        self._send = send

    def update(self, action: Action) -> Optional[Action]:
        if isinstance(action, ModeChange):
            self.enabled = action.mode == self.mode
        return None

    def handle_key_event(self, key: KeyEvent) -> Optional[Action]:
        if not self.enabled:
            return None
        logger.debug('home: got key %s', key.key)
        if self.selector.handle_navigation(key):
            return None
        if key.key == 'enter':
            idx = self.selector.selected if self.selector.selected is not None else 0
            return AssignmentTypeChosen(self.kinds[idx])
        if key.key == 'q':
            return Quit()
        if key.key == 'question_mark':
            return Help()
        return None

    def draw(self, width: int, height: int) -> Optional[RenderableType]:
        body = Text()
        for idx, kind in enumerate(self.kinds):
            if idx:
                body.append('\n')
            if idx == self.selector.selected:
                body.append(HIGHLIGHT_SYMBOL + kind.label, style=SELECTED_STYLE)
            else:
                body.append(' ' * len(HIGHLIGHT_SYMBOL) + kind.label)
        panel = Panel(body, title='[bold]Modes[/bold]', subtitle='Enter to open, q to quit',
                      box=box.ROUNDED, padding=(1, 2), width=min(width, 40))
        return Align.center(panel, vertical='middle', height=height)
