#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-or-later
# Copyright (C) 2025 by the entab authors
#
import argparse
import contextlib
import logging
import os
import sys

from typing import Iterator, List, Tuple

import entab

logger = entab.logger

SHELLS = ('bash', 'zsh', 'fish')


class ConfigOption(argparse.Action):
    """Action class for storing key=value arguments in a dict."""
    def __call__(self, parser, namespace, keyval, option_string=None):
        config = getattr(namespace, self.dest, None)

        if config is None:
            config = dict()
            setattr(namespace, self.dest, config)

        if '=' in keyval:
            key, value = keyval.split('=', maxsplit=1)
        else:
            # mimic git -c option
            key, value = keyval, 'true'

        config[key] = value


def _parser_layout(parser: argparse.ArgumentParser) -> Tuple[List[argparse.Action], List[Tuple[str, str, List[str]]]]:
    """Return the option actions and (name, help, choices) for every subcommand.

    argparse has no public way to walk a parser, so this is the only place
    that reads its private attributes.
    """
    options = list()
    subcommands = list()
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            helps = {choice.dest: choice.help or '' for choice in action._choices_actions}
            for name, subparser in action.choices.items():
                choices = [str(choice) for sub in subparser._actions
                           if not sub.option_strings and sub.choices for choice in sub.choices]
                subcommands.append((name, helps.get(name, ''), choices))
        elif action.option_strings:
            options.append(action)
    return options, subcommands


def _help_of(action: argparse.Action) -> str:
    if not action.help or action.help == argparse.SUPPRESS:
        return ''
    return action.help


def _bash_completion(parser: argparse.ArgumentParser) -> str:
    prog = parser.prog
    options, subs = _parser_layout(parser)
    words = [opt for action in options for opt in action.option_strings]
    words += [name for name, _, _ in subs]
    fn = '_%s_complete' % prog.replace('-', '_')
    lines = [
        f'# bash completion for {prog}',
        f'{fn}() {{',
        '    local cur prev',
        '    cur="${COMP_WORDS[COMP_CWORD]}"',
        '    prev="${COMP_WORDS[COMP_CWORD-1]}"',
        '    case "$prev" in',
    ]
    for name, _, choices in subs:
        if choices:
            lines.append(f'        {name})')
            lines.append(f'            COMPREPLY=( $(compgen -W "{" ".join(choices)}" -- "$cur") )')
            lines.append('            return 0')
            lines.append('            ;;')
    lines += [
        '    esac',
        f'    COMPREPLY=( $(compgen -W "{" ".join(words)}" -- "$cur") )',
        '}',
        f'complete -F {fn} {prog}',
    ]
    return '\n'.join(lines) + '\n'


def _zsh_quote(text: str) -> str:
    return text.replace("'", "'\\''").replace(':', '\\:')


def _zsh_completion(parser: argparse.ArgumentParser) -> str:
    prog = parser.prog
    options, subs = _parser_layout(parser)
    lines = [f'#compdef {prog}', '', f'_{prog}() {{', '    local -a opts subcmds']
    lines.append('    opts=(')
    for action in options:
        for opt in action.option_strings:
            lines.append(f"        '{_zsh_quote(opt)}:{_zsh_quote(_help_of(action))}'")
    lines.append('    )')
    lines.append('    subcmds=(')
    for name, helptext, _ in subs:
        lines.append(f"        '{_zsh_quote(name)}:{_zsh_quote(helptext)}'")
    lines.append('    )')
    lines.append('    case "$words[CURRENT-1]" in')
    for name, _, choices in subs:
        if choices:
            lines.append(f"        {name}) compadd -- {' '.join(choices)}; return ;;")
    lines += [
        '    esac',
        "    _describe -t options 'option' opts",
        "    _describe -t commands 'command' subcmds",
        '}',
        '',
        f'_{prog} "$@"',
    ]
    return '\n'.join(lines) + '\n'


def _fish_quote(text: str) -> str:
    return text.replace('\\', '\\\\').replace("'", "\\'")


def _fish_completion(parser: argparse.ArgumentParser) -> str:
    prog = parser.prog
    options, subs = _parser_layout(parser)
    lines = [f'# fish completion for {prog}']
    for action in options:
        parts = [f'complete -c {prog}']
        for opt in action.option_strings:
            if opt.startswith('--'):
                parts.append(f'-l {opt[2:]}')
            else:
                parts.append(f'-s {opt[1:]}')
        if action.nargs != 0:
            parts.append('-r')
        helptext = _help_of(action)
        if helptext:
            parts.append(f"-d '{_fish_quote(helptext)}'")
        lines.append(' '.join(parts))
    for name, helptext, choices in subs:
        lines.append(f"complete -c {prog} -f -n '__fish_use_subcommand' -a {name} -d '{_fish_quote(helptext)}'")
        if choices:
            lines.append(f"complete -c {prog} -f -n '__fish_seen_subcommand_from {name}' -a '{' '.join(choices)}'")
    return '\n'.join(lines) + '\n'


def completion_script(parser: argparse.ArgumentParser, shell: str) -> str:
    if shell == 'bash':
        return _bash_completion(parser)
    if shell == 'zsh':
        return _zsh_completion(parser)
    if shell == 'fish':
        return _fish_completion(parser)
    raise ValueError(f'Unsupported shell: {shell}')


def cmd_completions(cmdargs: argparse.Namespace) -> None:
    sys.stdout.write(completion_script(setup_parser(), cmdargs.shell))


def setup_parser() -> argparse.ArgumentParser:
    # noinspection PyTypeChecker
    parser = argparse.ArgumentParser(
        prog='entab',
        description='Browse homework and circulars from the Entab CampusCare parent portal',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument('--version', action='version', version=entab.__VERSION__)
    parser.add_argument('-d', '--debug', action='store_true', default=False,
                        help='Add more debugging info to the output')
    parser.add_argument('-q', '--quiet', action='store_true', default=False,
                        help='Output critical information only')
    parser.add_argument('-c', '--config', metavar='NAME=VALUE', action=ConfigOption,
                        help='Set config option NAME to VALUE, e.g. entab.download-dir=/tmp')
    parser.add_argument('-l', '--login', action='store_true', default=False,
                        help='Log in and print fresh session credentials before starting')
    parser.add_argument('-s', '--store-credentials', dest='store', action='store_true', default=True,
                        help='Save the username and password hash after logging in')
    parser.add_argument('--no-store-credentials', dest='store', action='store_false',
                        help='Do not save the username and password hash')
    parser.add_argument('-f', '--fetch-credentials', dest='fetch', action='store_true', default=False,
                        help='Log in with the saved username and password hash')
    parser.add_argument('-t', '--tick-rate', dest='tick_rate', type=float, default=None,
                        help='Ticks per second (config: tick-rate, 4.0 if unset)')
    parser.add_argument('--frame-rate', dest='frame_rate', type=float, default=None,
                        help='Frames per second (config: frame-rate, 60.0 if unset)')

    subparsers = parser.add_subparsers(help='sub-command help', dest='subcmd')

    # entab completions
    sp_comp = subparsers.add_parser('completions', help='Print a shell completion script')
    sp_comp.add_argument('shell', choices=SHELLS, help='Shell to generate the script for')
    sp_comp.set_defaults(func=cmd_completions)

    return parser


@contextlib.contextmanager
def _log_to_file() -> Iterator[str]:
    """Send log output to a file while the session owns the terminal."""
    logfile = os.path.join(entab.get_data_dir(), 'entab.log')
    streams = [h for h in logger.handlers if type(h) is logging.StreamHandler]
    fh = logging.FileHandler(logfile, encoding='utf-8')
    fh.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
    fh.setLevel(min([h.level for h in streams] or [logging.INFO]))
    for handler in streams:
        logger.removeHandler(handler)
    logger.addHandler(fh)
    try:
        yield logfile
    finally:
        logger.removeHandler(fh)
        fh.close()
        for handler in streams:
            logger.addHandler(handler)


def main(cmdargs: argparse.Namespace) -> None:
    import entab.download
    import entab.login
    import entab.records
    import entab.tui

    entab.setup_config(cmdargs)

    if cmdargs.login:
        credentials = entab.login.login(store=cmdargs.store, fetch=cmdargs.fetch)
        logger.info('Logged in; run this to reuse the session:')
        print(credentials.export_line())
    else:
        credentials = entab.login.Credentials.from_env()

    tick_rate = cmdargs.tick_rate
    if tick_rate is None:
        tick_rate = entab.get_config_float('tick-rate')
    frame_rate = cmdargs.frame_rate
    if frame_rate is None:
        frame_rate = entab.get_config_float('frame-rate')

    repository = entab.records.CampusCareRepository(credentials)
    downloader = entab.download.Downloader(repository)
    with _log_to_file() as logfile:
        logger.debug('Session log goes to %s', logfile)
        runtime = entab.tui.run_session(repository, downloader, tick_rate=tick_rate, frame_rate=frame_rate)
    for message in runtime.errors:
        logger.debug('Shown during session: %s', message)


def cmd() -> None:
    parser = setup_parser()
    cmdargs = parser.parse_args()
    logger.setLevel(logging.DEBUG)

    ch = logging.StreamHandler()
    formatter = logging.Formatter('%(message)s')
    ch.setFormatter(formatter)

    if cmdargs.quiet:
        ch.setLevel(logging.CRITICAL)
    elif cmdargs.debug:
        ch.setLevel(logging.DEBUG)
    else:
        ch.setLevel(logging.INFO)

    logger.addHandler(ch)

    if 'func' in cmdargs:
        cmdargs.func(cmdargs)
        return

    try:
        main(cmdargs)
    except entab.EntabError as ex:
        logger.critical('ERROR: %s', ex)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info('Interrupted')
        sys.exit(130)


if __name__ == '__main__':
    cmd()
