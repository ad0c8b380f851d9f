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
import os

import pytest

from .. import bass, temp_files
from ..temp_files import TempFile, cleanup_temp, cleanup_temp_file, \
    new_temp_file

def test_temp_file(tmp_path):
    with TempFile(temp_prefix='swap', base_dir=tmp_path) as tmp_file:
        assert os.path.dirname(tmp_file) == os.fspath(tmp_path)
        assert os.path.basename(tmp_file).startswith('swap_')
        assert tmp_file.endswith('.tmp')
        assert os.path.isfile(tmp_file)
    assert not os.path.exists(tmp_file)

def test_temp_file_moved_away(tmp_path):
    """Replacing a save with its temp file leaves nothing to clean up."""
    with TempFile(base_dir=tmp_path) as tmp_file:
        os.replace(tmp_file, tmp_path / 'Level.sav')
    assert os.listdir(tmp_path) == ['Level.sav']

def test_cleanup_twice(tmp_path):
    tmp_file = new_temp_file(base_dir=tmp_path)
    cleanup_temp_file(tmp_file)
    with pytest.raises(RuntimeError):
        cleanup_temp_file(tmp_file)
    with pytest.raises(RuntimeError):
        cleanup_temp_file(tmp_path / 'not_ours.tmp')

def test_global_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(temp_files, '_global_temp_dir', None)
    monkeypatch.setitem(bass.dirs, 'user', os.fspath(tmp_path / 'user'))
    with TempFile() as tmp_file:
        assert os.path.dirname(tmp_file) == os.fspath(tmp_path / 'user' /
                                                      'temp')

def test_cleanup_temp(tmp_path):
    tmp_file = new_temp_file(base_dir=tmp_path)
    cleanup_temp()
    assert os.listdir(tmp_path) == []
    with pytest.raises(RuntimeError):
        cleanup_temp_file(tmp_file)
