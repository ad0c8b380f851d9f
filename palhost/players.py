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
"""Player records, extracted from a parsed Level.sav. Extraction is read only
and forgiving: missing optional fields fall back to zero or empty values,
characters without a player id are skipped. Every call builds new records,
which are never updated in place."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from .bolt import deprint
from .exception import IdentifierNotFound
from .gvas import ByteProperty, CharacterRawData, FixedPoint64Property, \
    Guid, GuildRawData, Int64Property, IntProperty, PropertyList, \
    SaveDocument, UInt16Property, UInt32Property, UInt64Property

# The id of the player hosting the world, i.e. the owner of
# Players/00000000000000000000000000000001.sav
HOST_ID = '00000000000000000000000000000001'

_TICKS_PER_SECOND = 10_000_000
_int_properties = (IntProperty, Int64Property, UInt16Property, UInt32Property,
                   UInt64Property, FixedPoint64Property)

@dataclass(frozen=True, slots=True)
class PlayerRecord:
    """A player of a world. id is the 32 digit hex form of the player's Guid
    (and the name of their save in Players), original_id the id their data
    belonged to before any swaps. last_online is in DateTime ticks, 0 if
    unknown."""
    id: str
    name: str
    original_id: str
    is_host: bool
    level: int = 0
    pal_count: int = 0
    last_online: int = 0
    guild_name: str = ''

    def last_seen(self, now_ticks: int) -> str:
        """Describe last_online relative to now_ticks (see current_ticks)."""
        if self.last_online <= 0:
            return 'Unknown'
        seconds = (now_ticks - self.last_online) // _TICKS_PER_SECOND
        if seconds < 60: # negative if the world clock went backwards
            return 'Online now'
        if (minutes := seconds // 60) < 60:
            return f'{minutes} min ago'
        if (hours := minutes // 60) < 24:
            return f'{hours}h ago'
        return f'{hours // 24}d ago'

def numeric_value(prop, default=0) -> int:
    """Return the number held by an integer property. ByteProperty values
    are only numbers if the property has no enum type, anything else gives
    default."""
    if isinstance(prop, ByteProperty):
        return prop.value if isinstance(prop.value, int) else default
    if isinstance(prop, _int_properties):
        return prop.value
    return default

def _world_data(level_document: SaveDocument) -> PropertyList | None:
    world_data = level_document.properties.value_of('worldSaveData')
    return world_data if isinstance(world_data, PropertyList) else None

def _map_entries(world_data: PropertyList, map_name):
    return world_data.value_of(map_name) or []

def _raw_data_of(entry_value, raw_cls):
    if not isinstance(entry_value, PropertyList):
        return None
    raw_data = entry_value.value_of('RawData')
    return raw_data if isinstance(raw_data, raw_cls) else None

def current_ticks(level_document: SaveDocument) -> int:
    """The world's real time clock in DateTime ticks, 0 if not present."""
    game_time = level_document.properties.resolve('worldSaveData',
                                                  'GameTimeSaveData')
    if not isinstance(game_time, PropertyList):
        return 0
    return numeric_value(game_time.get('RealDateTimeTicks'))

def extract_players(level_document: SaveDocument) -> list[PlayerRecord]:
    """Build a record for each player of a parsed Level.sav. Guild members
    come first, in the order their guilds list them, followed by any other
    players in the order of the character map."""
    if (world_data := _world_data(level_document)) is None:
        deprint(f'{level_document.in_name}: no worldSaveData, not a world '
                f'save?')
        return []
    # player id -> (member name, last online, guild name)
    guild_info: dict[str, tuple[str, int, str]] = {}
    for entry in _map_entries(world_data, 'GroupSaveDataMap'):
        if (guild := _raw_data_of(entry.value, GuildRawData)) is None:
            continue
        for member in guild.players:
            guild_info.setdefault(member.player_uid.hex, (
                str(member.player_name), int(member.last_online),
                str(guild.guild_name)))
    # player id -> (level, nickname), in map order
    characters: dict[str, tuple[int, str]] = {}
    pal_counts = Counter()
    for entry in _map_entries(world_data, 'CharacterSaveParameterMap'):
        if (char_data := _raw_data_of(entry.value, CharacterRawData)) is None:
            continue
        save_param = char_data.properties.value_of('SaveParameter')
        if not isinstance(save_param, PropertyList):
            continue
        if save_param.value_of('IsPlayer', False):
            player_uid = entry.key.value_of('PlayerUId') if isinstance(
                entry.key, PropertyList) else None
            if not isinstance(player_uid, Guid) or player_uid.is_zero():
                continue
            characters.setdefault(player_uid.hex, (
                numeric_value(save_param.get('Level')),
                str(save_param.value_of('NickName', ''))))
        else:
            owner_uid = save_param.value_of('OwnerPlayerUId')
            if isinstance(owner_uid, Guid) and not owner_uid.is_zero():
                pal_counts[owner_uid.hex] += 1
    player_ids = list(guild_info)
    player_ids.extend(p for p in characters if p not in guild_info)
    records = []
    for player_id in player_ids:
        member_name, last_online, guild_name = guild_info.get(
            player_id, ('', 0, ''))
        level, nickname = characters.get(player_id, (0, ''))
        records.append(PlayerRecord(player_id,
            member_name or nickname or player_id, player_id,
            player_id == HOST_ID, level, pal_counts[player_id],
            last_online, guild_name))
    return records

def read_player_identity(player_document: SaveDocument) -> tuple[
        Guid, Guid | None]:
    """Return the PlayerUId and InstanceId stored in a player's own save.
    InstanceId is None if the save lacks it."""
    save_data = player_document.properties.value_of('SaveData')
    player_uid = save_data.value_of('PlayerUId') if isinstance(
        save_data, PropertyList) else None
    if not isinstance(player_uid, Guid):
        raise IdentifierNotFound('SaveData.PlayerUId',
                                 player_document.in_name or 'player save')
    instance_id = save_data.resolve('IndividualId', 'InstanceId')
    return player_uid, instance_id if isinstance(instance_id, Guid) else None
