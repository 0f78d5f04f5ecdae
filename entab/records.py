#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
import enum
import html
import html.parser
import re
import urllib.parse

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

import entab

from entab.login import Credentials

logger = entab.logger

# Re-exported so callers only need this module for the repository contract
FetchError = entab.FetchError
NormalizationError = entab.NormalizationError

LIST_ENDPOINT = '/Parent/AssignmentDetailsByAssignmentType'
DETAILS_ENDPOINT = '/Parent/GetAssignemtDetails'
ATTACHMENT_PREFIX = '/Assignment/'

# Tags that start a new line when flattening detail html
BLOCK_TAGS = {'p', 'div', 'br', 'li', 'tr', 'table', 'ul', 'ol', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6'}

BLANK_RUN_RE = re.compile(r'\n{3,}')


class AssignmentType(enum.Enum):
    CIRCULAR = 'C'
    HOMEWORK = 'H'

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_str(cls, value: str) -> 'AssignmentType':
        wanted = value.strip().upper()
        for member in cls:
            if wanted in (member.value, member.name):
                return member
        raise ValueError(f'Invalid assignment type: {value!r}')


@dataclass(frozen=True)
class Assignment:
    """A single row of the assignment or circular listing."""
    serial: str
    remote_id: str
    name: str
    date: str
    category: str
    kind: AssignmentType = AssignmentType.HOMEWORK

    def haystack(self) -> str:
        return f'{self.name} {self.category} {self.date}'.lower()


@dataclass(frozen=True)
class Attachment:
    name: str
    remote_path: str


@dataclass(frozen=True)
class AssignmentDetails:
    text: str
    attachments: List[Attachment] = field(default_factory=list)


def clean_string(value: str) -> str:
    """Unescape entities and collapse all whitespace runs into single spaces."""
    return ' '.join(html.unescape(value).split())


class _RowParser(html.parser.HTMLParser):
    """Collect (cells, element id) for every data row of a table fragment."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.rows: List[Tuple[List[str], str]] = list()
        self._cells: Optional[List[str]] = None
        self._cell: Optional[List[str]] = None
        self._rowid = ''
        self._header = False

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        attrmap = dict(attrs)
        if tag == 'tr':
            self._cells = list()
            self._cell = None
            self._rowid = attrmap.get('id') or ''
            self._header = False
            return
        if self._cells is None:
            return
        if tag in ('td', 'th'):
            self._cell = list()
            if tag == 'th':
                self._header = True
        if attrmap.get('id'):
            self._rowid = attrmap['id']

    def handle_endtag(self, tag: str) -> None:
        if tag in ('td', 'th') and self._cell is not None and self._cells is not None:
            self._cells.append(clean_string(''.join(self._cell)))
            self._cell = None
        elif tag == 'tr' and self._cells is not None:
            if self._cells and not self._header:
                self.rows.append((self._cells, self._rowid))
            self._cells = None

    def handle_data(self, data: str) -> None:
        if self._cell is not None:
            self._cell.append(data)


class _TextParser(html.parser.HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._chunks: List[str] = list()

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        if tag in BLOCK_TAGS:
            self._chunks.append('\n')

    def handle_endtag(self, tag: str) -> None:
        if tag in BLOCK_TAGS:
            self._chunks.append('\n')

    def handle_data(self, data: str) -> None:
        self._chunks.append(data.replace('\r', ''))

    def get_text(self) -> str:
        lines = [' '.join(line.split()) for line in ''.join(self._chunks).split('\n')]
        return BLANK_RUN_RE.sub('\n\n', '\n'.join(lines)).strip()


def parse_assignment_rows(fragment: str, kind: AssignmentType) -> List[Assignment]:
    parser = _RowParser()
    parser.feed(fragment)
    parser.close()
    records = list()
    for cells, rowid in parser.rows:
        if len(cells) < 4:
            raise NormalizationError(f'Expected at least 4 columns per row, got {len(cells)}: {cells!r}')
        records.append(Assignment(serial=cells[0], date=cells[1], category=cells[2],
                                  name=cells[3], remote_id=rowid, kind=kind))
    return records


def html_to_text(fragment: str) -> str:
    parser = _TextParser()
    parser.feed(fragment)
    parser.close()
    return parser.get_text()


def parse_attachments(entries: Any) -> List[Attachment]:
    if entries is None:
        return list()
    if not isinstance(entries, list):
        raise NormalizationError('Attachment list is not a list')
    attachments = list()
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get('Attachment'), str):
            raise NormalizationError(f'Unexpected attachment entry: {entry!r}')
        remote_path = entry['Attachment'].strip()
        if not remote_path:
            continue
        attachments.append(Attachment(name=remote_path.rsplit('/', 1)[-1], remote_path=remote_path))
    return attachments


def _get_data(payload: Any) -> List[Any]:
    if not isinstance(payload, dict) or not isinstance(payload.get('Data'), list):
        raise NormalizationError('Response has no Data list')
    data = payload['Data']
    if not data:
        raise FetchError('Response Data list is empty')
    return data


class CampusCareRepository:
    """Fetches assignment listings and details from the parent portal."""

    def __init__(self, credentials: Credentials, session: Optional[requests.Session] = None,
                 config: Optional[Dict[str, Optional[str]]] = None) -> None:
        self._credentials = credentials
        self._session = session if session is not None else entab.get_requests_session()
        self._config = config if config is not None else entab.get_main_config()
        self._baseurl = str(self._config['base-url']).rstrip('/')

    def headers(self) -> Dict[str, str]:
        return {
            'Cookie': self._credentials.cookie_header(str(self._config.get('school-code') or '')),
            'Referer': self._baseurl + '/Parent/Assignment',
        }

    def attachment_url(self, attachment: Attachment) -> str:
        return self._baseurl + ATTACHMENT_PREFIX + urllib.parse.quote(attachment.remote_path)

    def _post(self, endpoint: str, form: Dict[str, str]) -> Any:
        headers = self.headers()
        headers.update({
            'Accept': 'application/json, text/javascript, */*; q=0.01',
            'Content-Type': 'application/x-www-form-urlencoded; charset=UTF-8',
            'Origin': self._baseurl,
            'X-Requested-With': 'XMLHttpRequest',
        })
        url = self._baseurl + endpoint
        logger.debug('POST %s form=%s', url, form)
        try:
            rsp = self._session.post(url, headers=headers, data=form, timeout=entab.get_request_timeout())
            rsp.raise_for_status()
        except requests.exceptions.RequestException as ex:
            raise FetchError(f'Request to {endpoint} failed: {ex}') from ex
        try:
            return rsp.json()
        except ValueError as ex:
            # The portal answers with its login page once the session expires
            raise FetchError(f'{endpoint} did not return JSON (session expired?)') from ex

    def fetch_records(self, kind: AssignmentType) -> List[Assignment]:
        form = {
            'AssignType': kind.value,
            'frmDate': '',
            'toDate': '',
            'Subject': '',
        }
        data = _get_data(self._post(LIST_ENDPOINT, form))
        if not isinstance(data[0], str):
            raise NormalizationError('Listing is not an html fragment')
        records = parse_assignment_rows(data[0], kind)
        if not records:
            raise FetchError(f'No {kind.label.lower()} entries found')
        logger.info('Fetched %d %s entries', len(records), kind.label.lower())
        return records

    def fetch_details(self, record: Assignment) -> AssignmentDetails:
        form = {
            'frmDate': '',
            'AssignType': record.kind.value,
            'toDate': '',
            'Subject': '0',
            'AssigID': record.remote_id,
        }
        data = _get_data(self._post(DETAILS_ENDPOINT, form))
        head = data[0]
        if not isinstance(head, dict) or not isinstance(head.get('Assignment'), str):
            raise NormalizationError('Details payload has no Assignment html')
        text = html_to_text(head['Assignment'])
        attachments = parse_attachments(data[3] if len(data) > 3 else None)
        logger.debug('Details for %s: %d chars, %d attachments', record.serial, len(text), len(attachments))
        return AssignmentDetails(text=text, attachments=attachments)
