#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
from typing import List, Optional

from rich.console import RenderableType

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widget import Widget
from textual.widgets import Static

import entab

from entab.tui._action import KeyEvent, Resize
from entab.tui._common import HELP_LINES
from entab.tui._runtime import Runtime

logger = entab.logger


def _to_key_event(event: events.Key) -> KeyEvent:
    return KeyEvent(key=event.key, character=event.character)


class HelpScreen(ModalScreen[None]):
    """Modal showing keybinding help."""

    BINDINGS = [
        Binding('escape', 'close', 'Close'),
        Binding('question_mark', 'close', 'Close'),
        Binding('q', 'close', 'Close'),
    ]

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }
    #help-dialog {
        width: 64;
        height: auto;
        max-height: 80%;
        border: solid $primary;
        background: $surface;
        padding: 1 2;
        overflow-y: auto;
    }
    """

    def __init__(self, lines: List[str]) -> None:
        super().__init__()
        self._lines = lines

    def compose(self) -> ComposeResult:
        with Vertical(id='help-dialog'):
            yield Static(''.join(self._lines))

    def action_close(self) -> None:
        self.dismiss(None)


class PickerScreen(ModalScreen[None]):
    """Hosts whatever the overlay component drew; keys go back to the runtime."""

    DEFAULT_CSS = """
    PickerScreen {
        align: center middle;
    }
    #picker-body {
        width: auto;
        height: auto;
    }
    """

    def __init__(self, renderable: RenderableType) -> None:
        super().__init__()
        self._renderable = renderable

    def compose(self) -> ComposeResult:
        yield Static(self._renderable, id='picker-body')

    def show(self, renderable: RenderableType) -> None:
        self._renderable = renderable
        if self.is_mounted:
            self.query_one('#picker-body', Static).update(renderable)

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        self.app.forward_key(event)  # type: ignore[attr-defined]


class SessionView(Widget, can_focus=True):
    """Shows the base renderable of the active screen."""

    DEFAULT_CSS = """
    SessionView {
        width: 1fr;
        height: 1fr;
    }
    """

    def __init__(self) -> None:
        super().__init__(id='session')
        self._renderable: Optional[RenderableType] = None

    def show(self, renderable: Optional[RenderableType]) -> None:
        self._renderable = renderable
        self.refresh()

    def render(self) -> RenderableType:
        if self._renderable is None:
            return ''
        return self._renderable

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        self.app.forward_key(event)  # type: ignore[attr-defined]


class SessionApp(App[None]):
    """Owns the terminal and feeds ticks, frames and key presses to the runtime."""

    TITLE = 'entab'
    ENABLE_COMMAND_PALETTE = False

    def __init__(self, runtime: Runtime, tick_rate: float = 4.0, frame_rate: float = 60.0) -> None:
        super().__init__()
        self.runtime = runtime
        self.tick_rate = tick_rate
        self.frame_rate = frame_rate
        self._picker: Optional[PickerScreen] = None

    def compose(self) -> ComposeResult:
        yield SessionView()

    def on_mount(self) -> None:
        self.runtime.start()
        self.query_one(SessionView).focus()
        self.set_interval(1 / self.tick_rate, self._on_tick, name='tick')
        self.set_interval(1 / self.frame_rate, self._on_frame, name='frame')

    def on_resize(self, event: events.Resize) -> None:
        self.runtime.dispatch(Resize(event.size.width, event.size.height))
        self._sync()

    def forward_key(self, event: events.Key) -> None:
        self.runtime.handle_key_event(_to_key_event(event))
        self._sync()

    def _on_tick(self) -> None:
        self.runtime.tick()
        self._sync()

    def _on_frame(self) -> None:
        self.runtime.render()
        if self.runtime.dirty:
            self._draw()

    def _sync(self) -> None:
        if self.runtime.should_quit:
            logger.debug('Quit requested, leaving the session')
            self.exit()
            return
        for severity, message in self.runtime.drain_messages():
            self.notify(message, severity=severity)  # type: ignore[arg-type]
        if self.runtime.take_help_request():
            self.push_screen(HelpScreen(HELP_LINES))

    def _draw(self) -> None:
        view = self.query_one(SessionView)
        width, height = view.size.width, view.size.height
        if not width or not height:
            return
        frame = self.runtime.draw(width, height)
        view.show(frame.base)
        if frame.overlay is not None:
            if self._picker is None:
                self._picker = PickerScreen(frame.overlay)
                self.push_screen(self._picker)
            else:
                self._picker.show(frame.overlay)
        elif self._picker is not None:
            self._picker.dismiss(None)
            self._picker = None
