#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
import sys

from typing import Optional

from rich.console import Console

import entab

from entab.tui._app import SessionApp
from entab.tui._details import Details
from entab.tui._home import Home
from entab.tui._list import AssignmentListView, AssignmentRepository
from entab.tui._popup import AttachmentPicker
from entab.tui._runtime import DownloadService, Runtime

logger = entab.logger


def build_runtime(repository: AssignmentRepository,
                  downloader: Optional[DownloadService] = None) -> Runtime:
    """Wire the four screens of a session to a fresh runtime."""
    components = [
        Home(),
        AssignmentListView(repository),
        Details(),
        AttachmentPicker(),
    ]
    return Runtime(components, downloader=downloader)


def run_session(repository: AssignmentRepository, downloader: Optional[DownloadService] = None,
                tick_rate: float = 4.0, frame_rate: float = 60.0) -> Runtime:
    """Run the interactive session until the user quits.

    The terminal is handed back in a usable state however the session
    ends.
    """
    if not sys.stdin.isatty() or not sys.stdout.isatty():
        raise entab.InputError('The interactive session needs a terminal on stdin and stdout')
    if tick_rate <= 0 or frame_rate <= 0:
        raise entab.InputError('Tick and frame rates must be positive')

    runtime = build_runtime(repository, downloader)
    app = SessionApp(runtime, tick_rate=tick_rate, frame_rate=frame_rate)
    try:
        app.run()
    except OSError as ex:
        raise entab.InputError(f'Terminal backend failed: {ex}') from ex
    finally:
        Console().show_cursor(True)
    if app.return_code:
        raise entab.InputError(f'Session ended abnormally (code {app.return_code})')
    logger.debug('Session finished with %d error(s) shown', len(runtime.errors))
    return runtime
