#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
from dataclasses import dataclass
from typing import List, Optional

from rich import box
from rich.console import RenderableType
from rich.panel import Panel
from rich.style import Style
from rich.text import Text

import entab

from entab.records import Attachment
from entab.tui._action import (
    Action, AttachmentsLoaded, Error, FinishDownload, KeyEvent, Mode, ModeChange, Quit,
    StartDownload, ToggleDownloadPopup,
)
from entab.tui._common import HIGHLIGHT_SYMBOL, SELECTED_STYLE, SendAction, Selector

logger = entab.logger

CHECKED_STYLE = Style(color='green', bold=True)
UNCHECKED_STYLE = Style(dim=True)


@dataclass
class PickerItem:
    attachment: Attachment
    selected: bool = False


class AttachmentPicker:
    """Multi-select download popup drawn over the details screen."""

    overlay = True

    def __init__(self) -> None:
        self.mode = Mode.CURRENT_ASSIGNMENT_SCREEN
        self.enabled = False
        self.visible = False
        self.items: List[PickerItem] = list()
        self.selector = Selector()
        self._send: Optional[SendAction] = None

    def register_action_handler(self, send: SendAction) -> None:
        self._send = send

    def selected_attachments(self) -> List[Attachment]:
        return [item.attachment for item in self.items if item.selected]

    def _set_visible(self, visible: bool) -> None:
        self.visible = visible
        if not visible:
            # Ticks don't survive closing the popup
            for item in self.items:
                item.selected = False

    def update(self, action: Action) -> Optional[Action]:
        if isinstance(action, ModeChange):
            self.enabled = action.mode == self.mode
        elif isinstance(action, ToggleDownloadPopup):
            self._set_visible(not self.visible)
        elif isinstance(action, AttachmentsLoaded):
            self.items = [PickerItem(attachment) for attachment in action.attachments]
            self.selector.reset(len(self.items))
            self.visible = False
        elif isinstance(action, FinishDownload):
            if self.visible:
                return ToggleDownloadPopup()
        return None

    def toggle_current(self) -> None:
        idx = self.selector.selected
        if idx is None or idx >= len(self.items):
            return
        self.items[idx].selected = not self.items[idx].selected

    def handle_key_event(self, key: KeyEvent) -> Optional[Action]:
        if not self.enabled or not self.visible:
            return None
        logger.debug('picker: got key %s', key.key)
        if self.selector.handle_navigation(key):
            return None
        if key.key == 'space':
            self.toggle_current()
        elif key.key == 'enter':
            selected = self.selected_attachments()
            if not selected:
                return Error('Select attachments with <space> first')
            logger.info('Starting download of %d attachment(s)', len(selected))
            return StartDownload(tuple(selected))
        elif key.key == 'escape':
            return ToggleDownloadPopup()
        elif key.key == 'q':
            return Quit()
        return None

    def draw(self, width: int, height: int) -> Optional[RenderableType]:
        if not self.visible:
            return None
        body = Text()
        for idx, item in enumerate(self.items):
            if idx:
                body.append('\n')
            highlighted = idx == self.selector.selected
            body.append(HIGHLIGHT_SYMBOL if highlighted else ' ' * len(HIGHLIGHT_SYMBOL))
            body.append('[x]  ' if item.selected else '[ ]  ',
                        style=CHECKED_STYLE if item.selected else UNCHECKED_STYLE)
            line_style = SELECTED_STYLE if highlighted else (Style(bold=True) if item.selected else UNCHECKED_STYLE)
            body.append(item.attachment.name, style=line_style)
        return Panel(body, title='[bold]Attachments[/bold]',
                     subtitle='<space> to select, <enter> to download',
                     box=box.ROUNDED, padding=(1, 1), width=max(min(width - 4, 72), 20))
