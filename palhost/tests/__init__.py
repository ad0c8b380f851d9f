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
"""Helpers shared by the Palhost tests: building GVAS bytes by hand (so that
the reader is checked against an encoding it did not produce itself),
building synthetic worlds out of the property model, and access to any
captured saves dropped into test_resources/saves."""
import os
import struct
import tomllib
import traceback

from ..gvas import ArrayProperty, ArrayStructTag, BoolProperty, \
    ByteProperty, CharacterRawData, DateTime, EnumProperty, GuildPlayer, \
    GuildRawData, Guid, GvasHeader, Int64Property, IntProperty, MapEntry, \
    MapProperty, PropertyList, SaveDocument, StrProperty, StructProperty, \
    ZERO_GUID, write_sav
from ..gvas.compression import PLZ_ENVELOPE
from ..gvas.properties import GENERIC_STRUCT
from ..gvas.rawdata import CharacterHandle

class FailedTest(Exception):
    """Misc exception for when a test should fail for meta reasons."""

_meta_cache = {}
def get_meta_value(base_file_path, meta_key):
    """Returns the value corresponding to the given meta key from the meta file
    for the specified file. Gives helpful error messages if the file is
    missing, malformed, is missing the specified key, etc."""
    base_file_path = f'{base_file_path}'
    meta_file = base_file_path + '.meta'
    try:
        parsed_meta = _meta_cache[base_file_path]
    except KeyError:
        try:
            with open(meta_file, 'rb') as ins:
                parsed_meta = _meta_cache[base_file_path] = tomllib.load(ins)
        except FileNotFoundError:
            raise FailedTest(f'{base_file_path} is missing a .meta file.')
        except tomllib.TOMLDecodeError:
            traceback.print_exc()
            raise FailedTest(f'{meta_file} has malformed TOML syntax. Check '
                             f'the log for a traceback pointing to the '
                             f'problem.')
    try:
        return parsed_meta[meta_key]
    except KeyError:
        raise FailedTest(f"{meta_file} is missing the key '{meta_key}'")

def iter_resources(resource_subfolder):
    """Yields all resources in the specified test_resources subfolder, as
    absolute paths. README.md and .meta files are skipped."""
    full_subfolder = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                                  'test_resources', resource_subfolder)
    for resource_file in sorted(os.listdir(full_subfolder)):
        if resource_file == 'README.md' or resource_file.endswith('.meta'):
            continue
        yield os.path.join(full_subfolder, resource_file)

# Hand built GVAS bytes -------------------------------------------------------
def fstr(text: str) -> bytes:
    """Encode text the way the game does: empty strings get a zero length,
    ASCII is narrow, anything else UTF-16LE, both NUL-terminated."""
    if not text:
        return struct.pack('<i', 0)
    if text.isascii():
        data = text.encode('ascii') + b'\x00'
        return struct.pack('<i', len(data)) + data
    data = text.encode('utf-16-le') + b'\x00\x00'
    return struct.pack('<i', -(len(data) // 2)) + data

def prop(name, prop_type, payload=b'', header=b'', array_index=0,
         prop_guid: bytes = None) -> bytes:
    """A property tag followed by its payload. header holds the type
    specific fields (for bools, the value byte)."""
    guid_block = b'\x00' if prop_guid is None else b'\x01' + prop_guid
    return (fstr(name) + fstr(prop_type) +
            struct.pack('<ii', len(payload), array_index) + header +
            guid_block + payload)

NONE = fstr('None')

def header_bytes(save_game_version=3, custom_versions=(),
                 save_class='/Script/Pal.PalWorldSaveGame') -> bytes:
    out = b'GVAS' + struct.pack('<2i', save_game_version, 522)
    if save_game_version >= 3:
        out += struct.pack('<i', 1008)
    out += struct.pack('<3HI', 5, 1, 1, 0) + fstr('++UE5+Release-5.1')
    out += struct.pack('<iI', 3, len(custom_versions))
    for cv_guid, cv_version in custom_versions:
        out += cv_guid + struct.pack('<i', cv_version)
    return out + fstr(save_class)

def gvas_bytes(*prop_bytes, trailer=b'\x00' * 4, **header_kwargs) -> bytes:
    """A whole GVAS file holding the properties in prop_bytes."""
    return header_bytes(**header_kwargs) + b''.join(prop_bytes) + NONE + \
        trailer

# Synthetic worlds ------------------------------------------------------------
HOST_HEX = '00000000000000000000000000000001'
# Ids as the game generates them, upper words random, rest zero
ALICE_HEX = '3f0e8e2b000000000000000000000000'
BOB_HEX = '8a1c44d0000000000000000000000000'
CAROL_HEX = 'c2b9e7a1000000000000000000000000'
GUILD_ID = Guid.from_hex('11111111222222223333333344444444')
# 2025-01-01 00:00 in DateTime ticks
NOW_TICKS = DateTime(638712864000000000)

def instance_id_of(player_hex) -> Guid:
    """A made up, but stable, instance id for each player."""
    return Guid.from_hex('ffff' + player_hex[4:])

def guid_struct(name, guid: Guid):
    return StructProperty(name, guid, struct_type='Guid')

def make_character_entry(player_uid: Guid, save_param: PropertyList,
                         instance_id: Guid, group_id=GUILD_ID):
    key = PropertyList([guid_struct('PlayerUId', player_uid),
                        guid_struct('InstanceId', instance_id),
                        StrProperty('DebugName', '')])
    raw_data = CharacterRawData(PropertyList([StructProperty(
        'SaveParameter', save_param,
        struct_type='PalIndividualCharacterSaveParameter')]),
        b'\x00' * 4, group_id)
    value = PropertyList([ArrayProperty('RawData', raw_data,
                                        elem_type='ByteProperty')])
    return MapEntry(key, value)

def make_player_entry(player_hex, name, level):
    save_param = PropertyList([
        BoolProperty('IsPlayer', True),
        StrProperty('NickName', name),
        ByteProperty('Level', level),
        IntProperty('Exp', level * 100),
    ])
    return make_character_entry(Guid.from_hex(player_hex), save_param,
                                instance_id_of(player_hex))

def make_pal_entry(owner_hex, pal_index):
    owner_uid = Guid.from_hex(owner_hex)
    save_param = PropertyList([
        StrProperty('CharacterID', 'PinkCat'),
        ByteProperty('Level', 5),
        guid_struct('OwnerPlayerUId', owner_uid),
        ArrayProperty('OldOwnerPlayerUIds', [owner_uid],
                      elem_type='StructProperty',
                      struct_tag=ArrayStructTag('OldOwnerPlayerUIds', 'Guid')),
    ])
    pal_instance = Guid.from_hex(f'{pal_index:08x}' + owner_hex[8:])
    return make_character_entry(ZERO_GUID, save_param, pal_instance)

def make_guild_entry(members, guild_name='Cat Lovers', admin_hex=None):
    """members is a list of (player hex, name, last online ticks)."""
    admin_hex = admin_hex or members[0][0]
    guild = GuildRawData.from_fields({
        'group_id': GUILD_ID, 'group_name': 'Guild',
        'handles': [CharacterHandle(Guid.from_hex(m[0]),
                                    instance_id_of(m[0])) for m in members],
        'trailing': b'', 'org_type': 0, 'leading': b'\x00' * 4,
        'base_ids': [], 'unknown_1': 0, 'base_camp_level': 3,
        'map_object_instance_ids': [], 'guild_name': guild_name,
        'last_guild_name_modifier_player_uid': Guid.from_hex(admin_hex),
        'unknown_2': b'\x00' * 4, 'admin_player_uid': Guid.from_hex(
            admin_hex),
        'players': [GuildPlayer(Guid.from_hex(p_hex), DateTime(ticks), name)
                    for p_hex, name, ticks in members],
    })
    value = PropertyList([
        EnumProperty('GroupType', 'EPalGroupType::Guild',
                     enum_type='EPalGroupType'),
        ArrayProperty('RawData', guild, elem_type='ByteProperty'),
    ])
    return MapEntry(GUILD_ID, value)

def make_level_document(players, pals=(), guild_members=None):
    """Build a Level.sav document. players is a list of (hex, name, level),
    pals a list of owner hexes, guild_members a list of (hex, name,
    last online ticks) or None for no guild."""
    characters = [make_player_entry(*p) for p in players]
    characters.extend(make_pal_entry(owner_hex, i)
                      for i, owner_hex in enumerate(pals, start=1))
    groups = [make_guild_entry(guild_members)] if guild_members else []
    world_data = PropertyList([
        MapProperty('CharacterSaveParameterMap', characters,
                    key_struct_type=GENERIC_STRUCT,
                    value_struct_type=GENERIC_STRUCT),
        MapProperty('GroupSaveDataMap', groups, key_struct_type='Guid',
                    value_struct_type=GENERIC_STRUCT),
        StructProperty('GameTimeSaveData', PropertyList([
            Int64Property('GameDateTimeTicks', 3_000_000_000),
            Int64Property('RealDateTimeTicks', NOW_TICKS),
        ]), struct_type='PalGameTimeSaveData'),
    ])
    return SaveDocument(GvasHeader(
        save_class_name='/Script/Pal.PalWorldSaveGame'), PropertyList([
        IntProperty('Version', 100),
        StructProperty('Timestamp', NOW_TICKS, struct_type='DateTime'),
        StructProperty('worldSaveData', world_data,
                       struct_type='PalWorldSaveData'),
    ]), in_name='Level.sav')

def make_player_document(player_hex):
    """Build the Players/<hex>.sav document of a player."""
    player_uid = Guid.from_hex(player_hex)
    save_data = PropertyList([
        guid_struct('PlayerUId', player_uid),
        StructProperty('IndividualId', PropertyList([
            guid_struct('PlayerUId', player_uid),
            guid_struct('InstanceId', instance_id_of(player_hex)),
        ]), struct_type='PalInstanceID'),
        StructProperty('LastTransform', PropertyList(),
                       struct_type='Transform'),
    ])
    return SaveDocument(GvasHeader(
        save_class_name='/Script/Pal.PalWorldPlayerSaveGame'), PropertyList([
        IntProperty('Version', 100),
        StructProperty('SaveData', save_data,
                       struct_type='PalWorldPlayerSaveData'),
    ]), in_name=f'{player_hex}.sav')

def write_world(world_dir, players, pals=(), guild_members=None,
                envelope=PLZ_ENVELOPE, upper_case_names=True):
    """Write Level.sav and a player save for each of players (see
    make_level_document) to world_dir, returning world_dir."""
    players_dir = os.path.join(world_dir, 'Players')
    os.makedirs(players_dir, exist_ok=True)
    write_sav(os.path.join(world_dir, 'Level.sav'),
              make_level_document(players, pals, guild_members), envelope)
    for player_hex, _name, _level in players:
        sav_name = player_hex.upper() if upper_case_names else player_hex
        write_sav(os.path.join(players_dir, f'{sav_name}.sav'),
                  make_player_document(player_hex), envelope)
    return world_dir
