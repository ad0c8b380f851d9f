# -*- coding: utf-8 -*-
#
# GPL License and Copyright Notice ============================================
#  This file is part of Palhost.
#
#  Palhost is free software: you can redistribute it and/or
#  modify it under the terms of the GNU General Public License
#  as published by the Free Software Foundation, either version 3
#  of the License, or (at your option) any later version.
#
#  Palhost is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with Palhost.  If not, see <https://www.gnu.org/licenses/>.
#
#  Palhost copyright (C) 2025-2026 Palhost Team
#
# =============================================================================
"""Functions for initializing Palhost data structures on boot: the bass.dirs
dictionary and the settings read from palhost.ini."""
from __future__ import annotations

import os
from configparser import ConfigParser, Error as ConfigParserError

from . import bass
from .bolt import deprint
from .exception import BoltError

# Maps the type of a default setting to the prefix used for it in the ini
_type_prefix = {str: 's', int: 'i', bool: 'b'}

def init_dirs(app_dir=None, user_dir=None):
    """Initialize bass.dirs. app_dir defaults to the directory holding the
    palhost package, user_dir to ~/.palhost."""
    app_dir = app_dir or os.path.dirname(os.path.dirname(
        os.path.abspath(__file__)))
    user_dir = user_dir or os.path.join(os.path.expanduser('~'), '.palhost')
    bass.dirs['app'] = app_dir
    bass.dirs['user'] = user_dir

def palhost_ini_parser(ini_path) -> ConfigParser | None:
    """Parse the ini at ini_path, returning None if it does not exist."""
    ini_parser = None
    if ini_path is not None and os.path.exists(ini_path):
        ini_parser = ConfigParser()
        # palhost.ini is always UTF-8 (or its ASCII subset)
        try:
            ini_parser.read(ini_path, encoding='utf-8')
        except (ConfigParserError, UnicodeError) as e:
            raise BoltError(f'{ini_path} is malformed: {e}') from e
    return ini_parser

def init_default_settings():
    """Reset bass.inisettings to the defaults."""
    bass.inisettings.clear()
    bass.inisettings.update(bass.inisettings_defaults)

def init_settings(ini_path=None):
    """Read palhost.ini (ini_path, or palhost.ini in the user or app dir)
    into bass.inisettings. Unknown options are reported and ignored."""
    init_default_settings()
    if ini_path is None:
        for dir_key in ('user', 'app'):
            if dir_key not in bass.dirs: continue
            candidate = os.path.join(bass.dirs[dir_key], 'palhost.ini')
            if os.path.exists(candidate):
                ini_path = candidate
                break
    ini_parser = palhost_ini_parser(ini_path)
    if not ini_parser or not ini_parser.has_section('General'):
        return
    default_options = {}
    for default_key, default_value in bass.inisettings_defaults.items():
        read_key = _type_prefix[type(default_value)] + default_key
        default_options[read_key.lower()] = default_key
    # configparser lowercases keys, the section name is case sensitive
    for read_key, raw_value in ini_parser.items('General'):
        try:
            used_key = default_options[read_key]
        except KeyError:
            deprint(f'Unknown option {read_key!r} in {ini_path}')
            continue
        default_value = bass.inisettings_defaults[used_key]
        if raw_value == '.':
            continue # '.' keeps the default, see palhost_default.ini
        try:
            if type(default_value) is bool:
                value = ini_parser.getboolean('General', read_key)
            else:
                value = type(default_value)(raw_value)
        except ValueError:
            deprint(f'Invalid value {raw_value!r} for option {read_key!r} in '
                    f'{ini_path}, using the default')
            continue
        bass.inisettings[used_key] = value

def get_list_setting(setting_key) -> list[str]:
    """Split a semicolon-separated string setting into its non-empty
    parts."""
    return [part.strip() for part in bass.inisettings.get(
        setting_key, '').split(';') if part.strip()]
