#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
import getpass
import hashlib
import html.parser
import os

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import requests

import entab

logger = entab.logger

SESSION_ENV = 'ENTAB_SESSION_ID'
TOKEN_ENV = 'ENTAB_REQUEST_VERIFICATION_TOKEN'
AUTH_ENV = 'ENTAB_ASPXAUTH'

SESSION_COOKIE = 'ASP.NET_SessionId'
AUTH_COOKIE = '.ASPXAUTH'
TOKEN_FIELD = '__RequestVerificationToken'

# Parent accounts log in with this user type
PARENT_USER_TYPE = '3'


@dataclass(frozen=True)
class Credentials:
    """Session values the portal wants on every request."""
    session_id: str
    verification_token: str
    auth_token: str

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'Credentials':
        if environ is None:
            environ = dict(os.environ)
        missing = [name for name in (SESSION_ENV, TOKEN_ENV, AUTH_ENV) if not environ.get(name)]
        if missing:
            raise entab.CredentialsError('Missing %s (run with --login)' % ', '.join(missing))
        return cls(session_id=environ[SESSION_ENV],
                   verification_token=environ[TOKEN_ENV],
                   auth_token=environ[AUTH_ENV])

    def cookie_header(self, school_code: str) -> str:
        return (f'{SESSION_COOKIE}={self.session_id}; chk=enable; '
                f'{TOKEN_FIELD}={self.verification_token}; '
                f'{AUTH_COOKIE}={self.auth_token}; SchoolCode={school_code}')

    def export_line(self) -> str:
        return (f'export {SESSION_ENV}={self.session_id} {AUTH_ENV}={self.auth_token} '
                f'{TOKEN_ENV}={self.verification_token}')


class _TokenParser(html.parser.HTMLParser):
    def __init__(self) -> None:
        super().__init__()
        self.token: Optional[str] = None

    def handle_starttag(self, tag: str, attrs: list) -> None:
        if tag != 'input':
            return
        attrmap = dict(attrs)
        if attrmap.get('name') == TOKEN_FIELD:
            self.token = attrmap.get('value') or ''


def parse_verification_token(body: str) -> str:
    parser = _TokenParser()
    parser.feed(body)
    parser.close()
    if not parser.token:
        raise entab.CredentialsError('Logon page did not contain a verification token')
    return parser.token


def hash_password(password: str) -> str:
    return hashlib.sha1(password.encode()).hexdigest()


def get_credentials_file() -> str:
    return os.path.join(entab.get_data_dir(), 'credentials')


def store_credentials(username: str, pwhash: str) -> None:
    path = get_credentials_file()
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    # os.open only applies the mode to new files
    os.fchmod(fd, 0o600)
    with os.fdopen(fd, 'w', encoding='utf-8') as fh:
        fh.write(f'{username}:{pwhash}')
    logger.debug('Stored credentials in %s', path)


def fetch_credentials() -> Tuple[str, str]:
    """Return the stored (username, password hash) pair."""
    path = get_credentials_file()
    try:
        with open(path, 'r', encoding='utf-8') as fh:
            contents = fh.read().strip()
    except OSError as ex:
        raise entab.CredentialsError(f'No stored credentials: {ex}') from ex
    username, sep, pwhash = contents.partition(':')
    if not sep or not username or not pwhash:
        raise entab.CredentialsError(f'Malformed credentials file: {path}')
    return username, pwhash


def prompt_credentials() -> Tuple[str, str]:
    username = input('Username: ').strip()
    password = getpass.getpass('Password: ')
    return username, hash_password(password)


def get_request_verification_token(session: requests.Session) -> str:
    config = entab.get_main_config()
    baseurl = str(config['base-url']).rstrip('/')
    headers = {
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Referer': baseurl + '/',
    }
    try:
        resp = session.get(baseurl + '/Logon/Logon', headers=headers, timeout=entab.get_request_timeout())
        resp.raise_for_status()
    except requests.exceptions.RequestException as ex:
        raise entab.CredentialsError(f'Unable to load logon page: {ex}') from ex
    return parse_verification_token(resp.text)


def login(store: bool = True, fetch: bool = False) -> Credentials:
    """Log in to the portal and return fresh session credentials.

    With *fetch*, the stored username and password hash are used if present,
    falling back to prompting.  Prompted credentials are saved when *store*
    is set.
    """
    session = entab.get_requests_session()
    token = get_request_verification_token(session)

    userpair = None
    if fetch:
        try:
            userpair = fetch_credentials()
            logger.info('Using stored credentials for %s', userpair[0])
        except entab.CredentialsError as ex:
            logger.debug('Falling back to prompt: %s', ex)
    if userpair is None:
        userpair = prompt_credentials()
        if store:
            store_credentials(*userpair)
    username, pwhash = userpair

    config = entab.get_main_config()
    baseurl = str(config['base-url']).rstrip('/')
    headers = {
        'Accept': '*/*',
        'Content-Type': 'application/x-www-form-urlencoded; charset=UTF-8',
        'Origin': baseurl,
        'Referer': baseurl + '/Logon/Logon',
        'Cookie': f'{TOKEN_FIELD}={token}',
        'X-Requested-With': 'XMLHttpRequest',
    }
    form = {
        'log[UserName]': username,
        'log[UserPassword]': pwhash,
        'log[UserTypeID]': PARENT_USER_TYPE,
    }
    try:
        resp = session.post(baseurl + '/Logon/Logon', headers=headers, data=form,
                            timeout=entab.get_request_timeout())
        resp.raise_for_status()
    except requests.exceptions.RequestException as ex:
        raise entab.CredentialsError(f'Login request failed: {ex}') from ex

    session_id = resp.cookies.get(SESSION_COOKIE)
    auth_token = resp.cookies.get(AUTH_COOKIE)
    if not session_id or not auth_token:
        raise entab.CredentialsError('Login rejected: no session cookies returned')

    logger.info('Logged in as %s', username)
    return Credentials(session_id=session_id, verification_token=token, auth_token=auth_token)
