# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
import argparse
import configparser
import copy
import logging
import os
import pathlib

import requests

from typing import Dict, Optional, Union

__VERSION__ = '0.3.0'

logger = logging.getLogger('entab')

DEFAULT_CONFIG = {
    'base-url': 'https://www.lviscampuscare.org',
    # Sent as the SchoolCode cookie with every request
    'school-code': '11674',
    # The portal rejects requests that don't look like they come from a browser
    'user-agent': ('Mozilla/5.0 (Linux; Android 6.0; Nexus 5 Build/MRA58N) AppleWebKit/537.36 '
                   '(KHTML, like Gecko) Chrome/135.0.0.0 Mobile Safari/537.36'),
    # Where attachments end up
    'download-dir': os.path.join(str(pathlib.Path.home()), 'Downloads'),
    # Seconds before giving up on a request
    'request-timeout': '30',
    # Ticks and frames per second for the interactive session
    'tick-rate': '4.0',
    'frame-rate': '60.0',
}

# This is where we store actual config
MAIN_CONFIG: Dict[str, Optional[str]] = dict()

# Used for storing our requests session
REQSESSION = None


class EntabError(Exception):
    """Base class for everything entab raises on purpose."""


class FetchError(EntabError):
    """The portal could not be reached or returned something unusable."""


class NormalizationError(EntabError):
    """The portal returned data that does not map onto records or attachments."""


class InputError(EntabError):
    """The terminal backend is unavailable or failed."""


class CredentialsError(EntabError):
    """Session credentials are missing or were rejected."""


class DownloadError(EntabError):
    """An attachment could not be saved."""


def _cmdline_config_override(cmdargs: argparse.Namespace, config: dict, section: str) -> None:
    """Use cmdline.config to set and override config values for section."""
    if not getattr(cmdargs, 'config', None):
        return

    section += '.'

    config_override = {
        key[len(section):]: val
        for key, val in cmdargs.config.items()
        if key.startswith(section)
    }

    config.update(config_override)


def get_config_dir(appname: str = 'entab') -> str:
    if 'XDG_CONFIG_HOME' in os.environ:
        confighome = os.environ['XDG_CONFIG_HOME']
    else:
        confighome = os.path.join(str(pathlib.Path.home()), '.config')
    return os.path.join(confighome, appname)


def get_config_from_file(source: str, defaults: Optional[dict] = None) -> dict:
    config = defaults
    if config is None:
        config = dict()
    if not os.access(source, os.R_OK):
        return config

    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(source, encoding='utf-8')
    except configparser.Error as ex:
        logger.warning('Ignoring unreadable config file %s: %s', source, ex)
        return config

    if not parser.has_section('entab'):
        return config
    for key, value in parser.items('entab'):
        config[key.lower()] = value
    return config


def setup_config(cmdargs: Optional[argparse.Namespace] = None) -> None:
    """Setup configuration options. Needs to be called before accessing any of
    the config options."""
    global MAIN_CONFIG

    defcfg = copy.deepcopy(DEFAULT_CONFIG)
    cfgfile = os.path.join(get_config_dir(), 'config')
    config = get_config_from_file(cfgfile, defaults=defcfg)
    if cmdargs:
        _cmdline_config_override(cmdargs, config, 'entab')

    MAIN_CONFIG = config


def get_main_config() -> Dict[str, Optional[str]]:
    if not MAIN_CONFIG:
        setup_config()
    return MAIN_CONFIG


def get_config_float(key: str) -> float:
    config = get_main_config()
    try:
        return float(config[key])
    except (TypeError, ValueError):
        logger.critical('ERROR: %s must be a number: %s', key, config[key])
        return float(DEFAULT_CONFIG[key])


def get_data_dir(appname: str = 'entab') -> str:
    if 'XDG_DATA_HOME' in os.environ:
        datahome = os.environ['XDG_DATA_HOME']
    else:
        datahome = os.path.join(str(pathlib.Path.home()), '.local', 'share')
    datadir = os.path.join(datahome, appname)
    pathlib.Path(datadir).mkdir(parents=True, exist_ok=True)
    return datadir


def get_requests_session() -> requests.Session:
    global REQSESSION
    if REQSESSION is None:
        config = get_main_config()
        REQSESSION = requests.session()
        REQSESSION.headers.update({'User-Agent': config.get('user-agent') or 'entab/%s' % __VERSION__})
    return REQSESSION


def get_request_timeout() -> Union[float, None]:
    timeout = get_config_float('request-timeout')
    if timeout <= 0:
        return None
    return timeout
