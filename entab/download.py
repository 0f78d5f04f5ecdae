#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
import os
import pathlib

from typing import List, Optional, Sequence

import requests

import entab

from entab.records import Attachment, CampusCareRepository

logger = entab.logger


def _unique_path(dirpath: pathlib.Path, filename: str) -> pathlib.Path:
    # Never clobber something the user already has
    dest = dirpath / filename
    stem, suffix = os.path.splitext(filename)
    counter = 1
    while dest.exists():
        dest = dirpath / f'{stem}-{counter}{suffix}'
        counter += 1
    return dest


def _discard(partial: pathlib.Path) -> None:
    try:
        partial.unlink()
    except FileNotFoundError:
        pass
    except OSError as ex:
        logger.debug('Could not remove %s: %s', partial, ex)


class Downloader:
    """Saves attachments next to each other in the download directory."""

    def __init__(self, repository: CampusCareRepository, session: Optional[requests.Session] = None,
                 outdir: Optional[str] = None) -> None:
        self._repository = repository
        self._session = session if session is not None else entab.get_requests_session()
        if outdir is None:
            outdir = str(entab.get_main_config()['download-dir'])
        self.outdir = pathlib.Path(os.path.expanduser(outdir))

    def download(self, attachments: Sequence[Attachment]) -> List[pathlib.Path]:
        try:
            self.outdir.mkdir(parents=True, exist_ok=True)
        except OSError as ex:
            raise entab.DownloadError(f'Cannot use download directory {self.outdir}: {ex}') from ex
        saved = list()
        for attachment in attachments:
            url = self._repository.attachment_url(attachment)
            filename = os.path.basename(attachment.name) or 'attachment'
            dest = _unique_path(self.outdir, filename)
            # Only complete files ever appear under their real name
            partial = dest.with_name(dest.name + '.part')
            logger.info('Downloading %s -> %s', url, dest)
            try:
                with self._session.get(url, headers=self._repository.headers(), stream=True,
                                       timeout=entab.get_request_timeout()) as rsp:
                    rsp.raise_for_status()
                    with open(partial, 'wb') as fh:
                        for chunk in rsp.iter_content(chunk_size=65536):
                            fh.write(chunk)
                os.replace(partial, dest)
            except requests.exceptions.RequestException as ex:
                _discard(partial)
                raise entab.DownloadError(f'Could not download {attachment.name}: {ex}') from ex
            except OSError as ex:
                _discard(partial)
                raise entab.DownloadError(f'Could not save {dest}: {ex}') from ex
            saved.append(dest)
        return saved
