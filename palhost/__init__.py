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
"""Palhost: reads and rewrites the player identities stored in Palworld save
files. See palhost.gvas for the save codec and palhost.worlds for the
operations on whole worlds."""
