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
"""Loads the table of struct types for map keys/values and set elements (see
palworld_types.yaml) and merges the user's additions from sTypeHintsFile
into it."""
from __future__ import annotations

import os

import yaml

from .. import bass
from ..bolt import deprint
from ..exception import BoltError

# Try to use the C version (way faster), if that isn't possible fall back to
# the pure Python version
try:
    from yaml import CSafeLoader as SafeLoader
except ImportError:
    from yaml import SafeLoader

BUILTIN_HINTS_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                                  'palworld_types.yaml')

# (user hints path, its mtime) -> merged hints
_hints_cache: dict[tuple, dict[str, str]] = {}

def parse_hints_file(hints_path) -> dict[str, str]:
    """Parse a hints file, returning a dict mapping paths to struct
    types. Raises yaml.YAMLError or BoltError if the file is malformed."""
    with open(hints_path, 'rb') as ins:
        hints_contents = yaml.load(ins, Loader=SafeLoader) or {}
    hints = hints_contents.get('hints') if isinstance(
        hints_contents, dict) else None
    if not isinstance(hints, dict) or not all(
            isinstance(k, str) and isinstance(v, str)
            for k, v in hints.items()):
        raise BoltError(f'{hints_path}: expected a "hints" mapping of '
                        f'property paths to struct types')
    return hints

def get_type_hints() -> dict[str, str]:
    """Return the builtin hints, merged with the user's hints file if one is
    configured. A broken user file is reported and ignored."""
    user_path = bass.get_path_from_ini('TypeHintsFile', 'user') or None
    try:
        cache_key = (user_path, user_path and os.path.getmtime(user_path))
    except OSError:
        deprint(f'Type hints file {user_path} not found, ignoring it')
        user_path, cache_key = None, (None, None)
    try:
        return _hints_cache[cache_key]
    except KeyError:
        pass
    hints = parse_hints_file(BUILTIN_HINTS_PATH)
    if user_path:
        try:
            hints.update(parse_hints_file(user_path))
        except (OSError, yaml.YAMLError, BoltError):
            deprint(f'Error when parsing type hints file {user_path}',
                    traceback=True)
    _hints_cache[cache_key] = hints
    return hints
