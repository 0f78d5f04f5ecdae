#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
"""Action router for the interactive session.

The runtime owns the active Mode and a queue of pending actions.  Key
presses go to every component; whatever they hand back is queued and
then broadcast, breadth-first, to every component's update().  Only the
components that belong to the active Mode are drawn.

Nothing here knows about the terminal, which is the host's business
(see _app.py).
"""
import collections

from dataclasses import dataclass
from typing import Deque, List, Optional, Protocol, Sequence, Tuple

from rich.console import Group, RenderableType

import entab

from entab.records import Attachment
from entab.tui._action import (
    Action, Error, FinishDownload, Help, KeyEvent, Mode, ModeChange, Quit, Render,
    Resize, StartDownload, Tick,
)
from entab.tui._common import Component

logger = entab.logger

# Older error messages are dropped once this many have been shown
ERROR_HISTORY = 50


class DownloadService(Protocol):
    def download(self, attachments: Sequence[Attachment]) -> list:
        ...


@dataclass(frozen=True)
class Frame:
    base: Optional[RenderableType]
    overlay: Optional[RenderableType]


class Runtime:
    def __init__(self, components: Sequence[Component],
                 downloader: Optional[DownloadService] = None) -> None:
        self.components: Tuple[Component, ...] = tuple(components)
        self.downloader = downloader
        self.mode = Mode.HOME
        self.pending: Deque[Action] = collections.deque()
        self.should_quit = False
        self.errors: Deque[str] = collections.deque(maxlen=ERROR_HISTORY)
        self.help_requested = False
        self.dirty = True
        self.width = 80
        self.height = 24
        # (severity, message) pairs waiting for the host to show them
        self._messages: Deque[Tuple[str, str]] = collections.deque()
        for component in self.components:
            component.register_action_handler(self.send)

    def send(self, action: Action) -> None:
        self.pending.append(action)

    def start(self) -> None:
        self.dispatch(ModeChange(Mode.HOME))

    def dispatch(self, action: Action) -> None:
        self.send(action)
        self.process()

    def tick(self) -> None:
        self.dispatch(Tick())

    def render(self) -> None:
        self.dispatch(Render())

    def handle_key_event(self, key: KeyEvent) -> None:
        if self.should_quit:
            return
        for component in self.components:
            follow = component.handle_key_event(key)
            if follow is not None:
                self.pending.append(follow)
        self.dirty = True
        self.process()

    def process(self) -> None:
        while self.pending and not self.should_quit:
            action = self.pending.popleft()
            self._apply(action)
            if self.should_quit:
                break
            for component in self.components:
                follow = component.update(action)
                if follow is not None:
                    self.pending.append(follow)

    def _apply(self, action: Action) -> None:
        if isinstance(action, (Tick, Render)):
            return
        logger.debug('action: %s', action)
        self.dirty = True
        if isinstance(action, Quit):
            self.should_quit = True
            self.pending.clear()
        elif isinstance(action, ModeChange):
            self.mode = action.mode
        elif isinstance(action, Error):
            self.errors.append(action.message)
            self._messages.append(('error', action.message))
        elif isinstance(action, Help):
            self.help_requested = True
        elif isinstance(action, Resize):
            self.width = action.width
            self.height = action.height
        elif isinstance(action, StartDownload):
            self._download(action.attachments)

    def _download(self, attachments: Sequence[Attachment]) -> None:
        if self.downloader is None:
            self.send(Error('Downloads are not available in this session'))
            return
        try:
            saved = self.downloader.download(attachments)
        except entab.DownloadError as ex:
            logger.warning('Download failed: %s', ex)
            self.send(Error(str(ex)))
            return
        self._messages.append(('information', f'Saved {len(saved)} file(s)'))
        self.send(FinishDownload(len(saved)))

    def drain_messages(self) -> List[Tuple[str, str]]:
        messages = list(self._messages)
        self._messages.clear()
        return messages

    def take_help_request(self) -> bool:
        requested = self.help_requested
        self.help_requested = False
        return requested

    def draw(self, width: Optional[int] = None, height: Optional[int] = None) -> Frame:
        if width is None:
            width = self.width
        if height is None:
            height = self.height
        base: List[RenderableType] = list()
        overlay: Optional[RenderableType] = None
        for component in self.components:
            if component.mode != self.mode:
                continue
            renderable = component.draw(width, height)
            if renderable is None:
                continue
            if component.overlay:
                overlay = renderable
            else:
                base.append(renderable)
        self.dirty = False
        if not base:
            return Frame(None, overlay)
        if len(base) == 1:
            return Frame(base[0], overlay)
        return Frame(Group(*base), overlay)
