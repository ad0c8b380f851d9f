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
"""This module just stores some data that all modules have to be able to access
without worrying about circular imports."""
import os

# no imports

AppVersion = '1.2'

#--Global dictionaries - do _not_ reassign !
# Palhost's directories - values are absolute paths - populated in
# initialization.init_dirs()
dirs: dict[str, str] = {}
# settings read from the palhost.ini file in initialization.init_settings() -
# keys are the ini option names without their type prefix (sOodleLibrary ->
# OodleLibrary), the type of the default decides how the ini value is parsed
inisettings_defaults = {
    'OodleLibrary': '',
    'OodleSearchDirs': '',
    'ZlibLevel': 6,
    'TypeHintsFile': '',
    'OpaquePaths': '.worldSaveData.FoliageGridSaveDataMap;'
                   '.worldSaveData.MapObjectSpawnerInStageSaveData',
    'VerifyRawData': True,
    'WorkerThreads': 1,
}
inisettings = dict(inisettings_defaults)

def get_path_from_ini(option_key, dir_key='app'):
    """Return the path stored under option_key in the ini, resolved against
    dirs[dir_key] if it is relative and that directory is known. Returns the
    raw (falsy) value if the option is unset."""
    if not (get_value := inisettings.get(option_key)):
        return get_value
    if os.path.isabs(get_value) or dir_key not in dirs:
        return get_value
    return os.path.join(dirs[dir_key], get_value)
