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

from .. import bass
from ..exception import BoltError
from ..initialization import get_list_setting, init_default_settings, \
    init_dirs, init_settings, palhost_ini_parser

_DEFAULT_INI = os.path.join(os.path.dirname(os.path.dirname(
    os.path.dirname(os.path.abspath(__file__)))), 'palhost_default.ini')

@pytest.fixture(autouse=True)
def _restore_bass():
    saved_dirs = dict(bass.dirs)
    yield
    bass.dirs.clear()
    bass.dirs.update(saved_dirs)
    init_default_settings()

def _write_ini(ini_dir, ini_text, ini_name='palhost.ini'):
    ini_path = os.path.join(ini_dir, ini_name)
    with open(ini_path, 'w', encoding='utf-8') as out:
        out.write(ini_text)
    return ini_path

class TestInitDirs(object):
    def test_defaults(self):
        init_dirs()
        package_dir = os.path.dirname(os.path.dirname(os.path.abspath(
            __file__)))
        assert bass.dirs['app'] == os.path.dirname(package_dir)
        assert bass.dirs['user'] == os.path.join(os.path.expanduser('~'),
                                                 '.palhost')

    def test_explicit(self, tmp_path):
        init_dirs(app_dir=os.fspath(tmp_path / 'app'),
                  user_dir=os.fspath(tmp_path / 'user'))
        assert bass.dirs == {'app': os.fspath(tmp_path / 'app'),
                             'user': os.fspath(tmp_path / 'user')}

class TestInitSettings(object):
    def test_values(self, tmp_path):
        ini_path = _write_ini(tmp_path, '\n'.join([
            '[General]',
            'iZlibLevel=9',
            'bVerifyRawData=false',
            'sOodleSearchDirs=C:\\Games\\Palworld; /opt/oodle ;',
            'iWorkerThreads=.',
        ]))
        init_settings(ini_path)
        assert bass.inisettings['ZlibLevel'] == 9
        assert bass.inisettings['VerifyRawData'] is False
        assert get_list_setting('OodleSearchDirs') == ['C:\\Games\\Palworld',
                                                       '/opt/oodle']
        assert bass.inisettings['WorkerThreads'] == 1

    def test_option_case(self, tmp_path):
        ini_path = _write_ini(tmp_path, '[General]\nIZLIBLEVEL=3\n')
        init_settings(ini_path)
        assert bass.inisettings['ZlibLevel'] == 3

    def test_bad_values(self, tmp_path):
        """Invalid and unknown options are ignored."""
        ini_path = _write_ini(tmp_path, '\n'.join([
            '[General]',
            'iZlibLevel=best',
            'bVerifyRawData=sometimes',
            'sZlibLevel=9',
            'sSomethingElse=1',
        ]))
        init_settings(ini_path)
        assert bass.inisettings == bass.inisettings_defaults

    def test_resets(self, tmp_path):
        ini_path = _write_ini(tmp_path, '[General]\niZlibLevel=1\n')
        init_settings(ini_path)
        assert bass.inisettings['ZlibLevel'] == 1
        init_settings(os.fspath(tmp_path / 'missing.ini'))
        assert bass.inisettings['ZlibLevel'] == 6

    def test_no_general_section(self, tmp_path):
        ini_path = _write_ini(tmp_path, '[Other]\niZlibLevel=1\n')
        init_settings(ini_path)
        assert bass.inisettings == bass.inisettings_defaults

    def test_malformed(self, tmp_path):
        ini_path = _write_ini(tmp_path, 'iZlibLevel=1\n')
        with pytest.raises(BoltError):
            init_settings(ini_path)

    def test_user_dir_ini(self, tmp_path):
        user_dir = tmp_path / 'user'
        user_dir.mkdir()
        _write_ini(user_dir, '[General]\niWorkerThreads=4\n')
        init_dirs(app_dir=os.fspath(tmp_path), user_dir=os.fspath(user_dir))
        init_settings()
        assert bass.inisettings['WorkerThreads'] == 4

    def test_default_ini(self):
        """The shipped palhost_default.ini keeps every default."""
        ini_parser = palhost_ini_parser(_DEFAULT_INI)
        ini_keys = {k.lower() for k in ini_parser.options('General')}
        assert ini_keys == {'soodlelibrary', 'soodlesearchdirs',
                            'izliblevel', 'stypehintsfile', 'sopaquepaths',
                            'bverifyrawdata', 'iworkerthreads'}
        init_settings(_DEFAULT_INI)
        assert bass.inisettings == bass.inisettings_defaults

def test_palhost_ini_parser_missing(tmp_path):
    assert palhost_ini_parser(None) is None
    assert palhost_ini_parser(os.fspath(tmp_path / 'palhost.ini')) is None

def test_get_path_from_ini(tmp_path):
    bass.dirs['app'] = os.fspath(tmp_path)
    bass.inisettings['OodleLibrary'] = 'lib/oo2core.so'
    assert bass.get_path_from_ini('OodleLibrary') == os.path.join(
        tmp_path, 'lib/oo2core.so')
    absolute_path = os.fspath(tmp_path / 'oo2core.so')
    bass.inisettings['OodleLibrary'] = absolute_path
    assert bass.get_path_from_ini('OodleLibrary') == absolute_path
    bass.inisettings['OodleLibrary'] = ''
    assert bass.get_path_from_ini('OodleLibrary') == ''

def test_get_list_setting():
    bass.inisettings['OpaquePaths'] = ' .a ;;.b.c; '
    assert get_list_setting('OpaquePaths') == ['.a', '.b.c']
    bass.inisettings['OpaquePaths'] = ''
    assert get_list_setting('OpaquePaths') == []
