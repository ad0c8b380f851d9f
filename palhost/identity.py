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
"""Rewriting player identities. Both operations here work on parsed documents
only, reading and writing the files is up to the caller (see worlds.py)."""
from __future__ import annotations

from typing import NamedTuple

from .exception import ArgumentError, IdentifierNotFound
from .gvas import Guid, PropertyList, SaveDocument, walk_values

def as_guid(player_id: Guid | str) -> Guid:
    """Accept a Guid or its hex form (dashed or not)."""
    return player_id if isinstance(player_id, Guid) else Guid.from_hex(
        player_id)

def swap_identifiers(document: SaveDocument, id_a, id_b) -> int:
    """Exchange the Guids id_a and id_b everywhere in document: map keys
    and values, struct fields, container elements and decoded raw data alike.
    Every Guid is compared against the original id_a and id_b once, so a
    single pass suffices and swapping twice restores the document. Returns
    the number of Guids that were rewritten.

    Raises IdentifierNotFound (before changing anything) if either id does
    not occur in document."""
    guid_a, guid_b = as_guid(id_a), as_guid(id_b)
    if guid_a == guid_b:
        raise ArgumentError(f'Cannot swap {guid_a.hex} with itself')
    found = set()
    def _find(leaf):
        if isinstance(leaf, Guid) and (leaf == guid_a or leaf == guid_b):
            found.add(leaf)
        return leaf
    walk_values(document.properties, _find)
    for wanted in (guid_a, guid_b):
        if wanted not in found:
            raise IdentifierNotFound(wanted.hex, document.in_name or
                                     'document')
    swap_count = 0
    def _swap(leaf):
        nonlocal swap_count
        if isinstance(leaf, Guid):
            if leaf == guid_a:
                swap_count += 1
                return guid_b
            if leaf == guid_b:
                swap_count += 1
                return guid_a
        return leaf
    walk_values(document.properties, _swap)
    return swap_count

class PatchResult(NamedTuple):
    old_id: str
    new_id: str
    # The name the patched save must be stored under
    file_name: str

def patch_player_identity(player_document: SaveDocument,
                          new_id) -> PatchResult:
    """Point a player's own save at new_id: SaveData.PlayerUId and its copy
    in SaveData.IndividualId are set to it. The save must then be renamed to
    the returned file_name."""
    new_guid = as_guid(new_id)
    save_data = player_document.properties.value_of('SaveData')
    uid_prop = save_data.get('PlayerUId') if isinstance(
        save_data, PropertyList) else None
    if uid_prop is None or not isinstance(uid_prop.value, Guid):
        raise IdentifierNotFound('SaveData.PlayerUId',
                                 player_document.in_name or 'player save')
    old_guid = uid_prop.value
    uid_prop.value = new_guid
    individual_id = save_data.value_of('IndividualId')
    if isinstance(individual_id, PropertyList) and (
            copy_prop := individual_id.get('PlayerUId')) is not None:
        copy_prop.value = new_guid
    return PatchResult(old_guid.hex, new_guid.hex, f'{new_guid.hex}.sav')
