# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
from entab.tui._action import (  # noqa: F401
    Mode, KeyEvent, ModeChange, Quit, Error,
)
from entab.tui._engine import Direction, RecordList  # noqa: F401
from entab.tui._runtime import Frame, Runtime  # noqa: F401
from entab.tui._app import SessionApp  # noqa: F401
from entab.tui._entry import build_runtime, run_session  # noqa: F401

__all__ = [
    'Mode', 'KeyEvent', 'ModeChange', 'Quit', 'Error',
    'Direction', 'RecordList',
    'Frame', 'Runtime',
    'SessionApp',
    'build_runtime', 'run_session',
]
