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
"""Temporary files for Palhost.

Saves and configs are never written in place: the new contents go to a
TempFile created in the target's directory (pass base_dir), which then
replaces the target via bolt.replace_with_temp. Keeping both on the same
filesystem makes the replacement a plain rename.

TempFile deletes its file on exit unless it was moved away. Files made with
new_temp_file are the caller's to release through cleanup_temp_file.
cleanup_temp runs at exit (main registers it) and removes whatever is left
over."""
import os
import tempfile
from pathlib import Path as PPath

# *No other local imports!* bolt imports this module
from . import bass

# Internals -------------------------------------------------------------------
# Where temp files without a base_dir go, resolved on first use
_global_temp_dir: PPath | None = None
# Every temp file this process made and has not released yet
_our_temp_files: set[PPath] = set()

def _get_global_dir() -> PPath:
    """<user dir>/temp once initialization.init_dirs has run, the system
    temp directory otherwise."""
    global _global_temp_dir
    if _global_temp_dir is not None:
        return _global_temp_dir
    if not bass.dirs.get('user'):
        return PPath(tempfile.gettempdir())
    user_temp = PPath(bass.dirs['user'], 'temp')
    os.makedirs(user_temp, exist_ok=True)
    _global_temp_dir = user_temp
    return user_temp

# API -------------------------------------------------------------------------
def new_temp_file(*, temp_prefix='', temp_suffix='.tmp', base_dir='') -> str:
    """Create an empty temp file in base_dir (or the global temp directory)
    and return its path. Release it with cleanup_temp_file."""
    tmp_fd, tmp_path = tempfile.mkstemp(dir=base_dir or _get_global_dir(),
        prefix=f'{temp_prefix}_' if temp_prefix else '', suffix=temp_suffix)
    os.close(tmp_fd)
    _our_temp_files.add(PPath(tmp_path))
    return tmp_path

def cleanup_temp_file(temp_file: str | os.PathLike) -> None:
    """Delete a file made by new_temp_file. Raises RuntimeError for any
    other path, including one that was already released. A file that has
    been moved away is fine."""
    tmp_path = PPath(temp_file)
    if tmp_path not in _our_temp_files:
        raise RuntimeError(f'{temp_file} is not a temp file of ours or was '
                           f'already cleaned up')
    _our_temp_files.discard(tmp_path)
    try:
        os.remove(tmp_path)
    except FileNotFoundError:
        pass # replaced a save or config

class TempFile:
    """Context manager around new_temp_file and cleanup_temp_file, returns
    the path of the temp file."""
    def __init__(self, *, temp_prefix='', temp_suffix='.tmp', base_dir=''):
        self._new_file_args = {'temp_prefix': temp_prefix,
                               'temp_suffix': temp_suffix,
                               'base_dir': base_dir}
        self._temp_file = None

    def __enter__(self):
        self._temp_file = new_temp_file(**self._new_file_args)
        return self._temp_file

    def __exit__(self, exc_type, exc_val, exc_tb):
        cleanup_temp_file(self._temp_file)

def cleanup_temp():
    """Delete every temp file this process still holds. Runs at exit."""
    for tmp_path in _our_temp_files:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
    _our_temp_files.clear()
