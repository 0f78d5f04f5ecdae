#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
"""Messages exchanged between the runtime and the screen components.

Every action is an immutable value.  The runtime broadcasts each one to
all components regardless of which screen is showing, so components
that are hidden still see the events that concern them.
"""
import enum

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from entab.records import Assignment, AssignmentType, Attachment


class Mode(enum.Enum):
    HOME = 'home'
    LIST_SCREEN = 'list'
    CURRENT_ASSIGNMENT_SCREEN = 'current-assignment'


@dataclass(frozen=True)
class KeyEvent:
    """A key press, named the way Textual names keys ('j', 'down', 'enter', 'space')."""
    key: str
    character: Optional[str] = None

    @property
    def printable(self) -> bool:
        return self.character is not None and len(self.character) == 1 and self.character.isprintable()


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Render:
    pass


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class ClearScreen:
    pass


@dataclass(frozen=True)
class Error:
    message: str


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class ModeChange:
    mode: Mode


@dataclass(frozen=True)
class AssignmentTypeChosen:
    kind: AssignmentType


@dataclass(frozen=True)
class AssignmentSelected:
    assignment: Assignment


@dataclass(frozen=True)
class AssignmentDetailsLoaded:
    text: Optional[str]


@dataclass(frozen=True)
class AttachmentsLoaded:
    attachments: Tuple[Attachment, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ToggleDownloadPopup:
    pass


@dataclass(frozen=True)
class StartDownload:
    attachments: Tuple[Attachment, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FinishDownload:
    count: int = 0


Action = Union[
    Tick, Render, Resize, Quit, ClearScreen, Error, Help, ModeChange,
    AssignmentTypeChosen, AssignmentSelected, AssignmentDetailsLoaded,
    AttachmentsLoaded, ToggleDownloadPopup, StartDownload, FinishDownload,
]
