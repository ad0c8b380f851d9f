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
"""Palworld stores some of its data in byte arrays, using serializations of
its own. The ones that hold player identities are decoded here, so that the
record extractor can read them and the identity swap can rewrite the Guids
inside them:
  - CharacterSaveParameterMap values carry a RawData array holding the
    character's SaveParameter property list and the Guid of its group.
  - GroupSaveDataMap values carry a RawData array whose layout depends on
    the sibling GroupType enum, e.g. guilds list their members there.

A blob is only replaced by its decoded form if dumping that form gives back
the exact same bytes (unless bVerifyRawData is off), otherwise it stays a
plain bytes object. Decoding is wired up through the struct hooks in
STRUCT_HOOKS, see GvasReader."""
from __future__ import annotations

from .. import bass
from ..bolt import deprint
from ..exception import SaveError
from .archive import Guid, GvasReader, GvasWriter
from .properties import ARawData, ArrayProperty, AWalkable, PropertyList, \
    read_properties, write_properties
from .struct_values import DateTime

#------------------------------------------------------------------------------
# Building blocks
def _read_guids(ins: GvasReader, path) -> list[Guid]:
    return [ins.read_guid(path) for _x in range(ins.read_uint32(path))]

def _write_guids(out: GvasWriter, guids):
    out.write_uint32(len(guids))
    for guid in guids:
        out.write_guid(guid)

class CharacterHandle(AWalkable):
    """A character of a group: its player (or pal) Guid and instance id."""
    _walk_attrs = ('guid', 'instance_id')
    __slots__ = ('guid', 'instance_id')

    def __init__(self, guid: Guid, instance_id: Guid):
        self.guid = guid
        self.instance_id = instance_id

    @classmethod
    def load(cls, ins: GvasReader, path):
        return cls(ins.read_guid(path), ins.read_guid(path))

    def dump(self, out: GvasWriter):
        out.write_guid(self.guid)
        out.write_guid(self.instance_id)

    def __repr__(self):
        return f'CharacterHandle({self.guid}, {self.instance_id})'

class GuildPlayer(AWalkable):
    """A guild member as listed in the guild's raw data."""
    _walk_attrs = ('player_uid',)
    __slots__ = ('player_uid', 'last_online', 'player_name')

    def __init__(self, player_uid: Guid, last_online=DateTime(0),
                 player_name=''):
        self.player_uid = player_uid
        self.last_online = last_online
        self.player_name = player_name

    @classmethod
    def load(cls, ins: GvasReader, path):
        player_uid = ins.read_guid(path)
        last_online = DateTime(ins.unpack_one('<q', path))
        return cls(player_uid, last_online, ins.read_fstring(path))

    def dump(self, out: GvasWriter):
        out.write_guid(self.player_uid)
        out.pack('<q', self.last_online)
        out.write_fstring(self.player_name)

    def __repr__(self):
        return f'GuildPlayer({self.player_uid}, {self.player_name!r})'

#------------------------------------------------------------------------------
# Character raw data
class CharacterRawData(ARawData):
    """properties holds SaveParameter. Short blobs have no group id, their
    leftover bytes all go to trailing."""
    _fields = {'properties': 'properties', 'unknown': 'bytes',
               'group_id': 'guid', 'trailing': 'bytes'}
    _walk_attrs = ('properties', 'group_id')
    __slots__ = ('properties', 'unknown', 'group_id', 'trailing')

    def __init__(self, properties=None, unknown=b'', group_id=None,
                 trailing=b''):
        self.properties = properties if properties is not None else \
            PropertyList()
        self.unknown = unknown
        self.group_id = group_id
        self.trailing = trailing

    @classmethod
    def load_raw(cls, ins, path):
        props = read_properties(ins, path)
        if ins.remaining() < 20:
            return cls(props, trailing=ins.read_rest())
        unknown = ins.read(4, path)
        group_id = ins.read_guid(path)
        return cls(props, unknown, group_id, ins.read_rest())

    def dump_raw(self, out):
        write_properties(out, self.properties)
        if self.group_id is not None:
            out.write(self.unknown)
            out.write_guid(self.group_id)
        out.write(self.trailing)

#------------------------------------------------------------------------------
# Group raw data
class GroupRawData(ARawData):
    """Fields shared by all groups. Also used as is for group types without
    a layout of their own (e.g. neutral groups)."""
    _fields = {'group_id': 'guid', 'group_name': 'str',
               'handles': 'handles', 'trailing': 'bytes'}
    _walk_attrs = ('group_id', 'handles')
    __slots__ = ('group_id', 'group_name', 'handles', 'trailing')

    @classmethod
    def load_raw(cls, ins, path):
        group = cls.__new__(cls)
        group.load_fields(ins, path)
        group.trailing = ins.read_rest()
        return group

    def load_fields(self, ins: GvasReader, path):
        self.group_id = ins.read_guid(path)
        self.group_name = ins.read_fstring(path)
        self.handles = [CharacterHandle.load(ins, path)
                        for _x in range(ins.read_uint32(path))]

    def dump_raw(self, out):
        self.dump_fields(out)
        out.write(self.trailing)

    def dump_fields(self, out: GvasWriter):
        out.write_guid(self.group_id)
        out.write_fstring(self.group_name)
        out.write_uint32(len(self.handles))
        for handle in self.handles:
            handle.dump(out)

    def __repr__(self):
        return f'{type(self).__name__}({self.group_id}, ' \
               f'{self.group_name!r})'

class _AOrgGroupRawData(GroupRawData):
    """Groups that belong to an organization type."""
    _fields = GroupRawData._fields | {'org_type': 'int'}
    __slots__ = ('org_type',)

    def load_fields(self, ins, path):
        super().load_fields(ins, path)
        self.org_type = ins.read_byte(path)

    def dump_fields(self, out):
        super().dump_fields(out)
        out.write_byte(self.org_type)

class OrganizationRawData(_AOrgGroupRawData):
    __slots__ = ()

class GuildRawData(_AOrgGroupRawData):
    """A player guild. players lists the members, admin_player_uid is the
    guild master."""
    _fields = _AOrgGroupRawData._fields | {
        'leading': 'bytes', 'base_ids': 'guids', 'unknown_1': 'int',
        'base_camp_level': 'int', 'map_object_instance_ids': 'guids',
        'guild_name': 'str', 'last_guild_name_modifier_player_uid': 'guid',
        'unknown_2': 'bytes', 'admin_player_uid': 'guid',
        'players': 'players'}
    _walk_attrs = GroupRawData._walk_attrs + (
        'base_ids', 'map_object_instance_ids',
        'last_guild_name_modifier_player_uid', 'admin_player_uid', 'players')
    __slots__ = ('leading', 'base_ids', 'unknown_1', 'base_camp_level',
                 'map_object_instance_ids', 'guild_name',
                 'last_guild_name_modifier_player_uid', 'unknown_2',
                 'admin_player_uid', 'players')

    def load_fields(self, ins, path):
        super().load_fields(ins, path)
        self.leading = ins.read(4, path)
        self.base_ids = _read_guids(ins, path)
        self.unknown_1 = ins.read_int32(path)
        self.base_camp_level = ins.read_int32(path)
        self.map_object_instance_ids = _read_guids(ins, path)
        self.guild_name = ins.read_fstring(path)
        self.last_guild_name_modifier_player_uid = ins.read_guid(path)
        self.unknown_2 = ins.read(4, path)
        self.admin_player_uid = ins.read_guid(path)
        self.players = [GuildPlayer.load(ins, path)
                        for _x in range(ins.read_uint32(path))]

    def dump_fields(self, out):
        super().dump_fields(out)
        out.write(self.leading)
        _write_guids(out, self.base_ids)
        out.write_int32(self.unknown_1)
        out.write_int32(self.base_camp_level)
        _write_guids(out, self.map_object_instance_ids)
        out.write_fstring(self.guild_name)
        out.write_guid(self.last_guild_name_modifier_player_uid)
        out.write(self.unknown_2)
        out.write_guid(self.admin_player_uid)
        out.write_uint32(len(self.players))
        for player in self.players:
            player.dump(out)

class IndependentGuildRawData(_AOrgGroupRawData):
    """The single-player guild of a player that has not joined a guild."""
    _fields = _AOrgGroupRawData._fields | {
        'base_camp_level': 'int', 'map_object_instance_ids': 'guids',
        'guild_name': 'str', 'player_uid': 'guid', 'guild_name_2': 'str',
        'last_online': 'datetime', 'player_name': 'str'}
    _walk_attrs = GroupRawData._walk_attrs + ('map_object_instance_ids',
                                              'player_uid')
    __slots__ = ('base_camp_level', 'map_object_instance_ids', 'guild_name',
                 'player_uid', 'guild_name_2', 'last_online', 'player_name')

    def load_fields(self, ins, path):
        super().load_fields(ins, path)
        self.base_camp_level = ins.read_int32(path)
        self.map_object_instance_ids = _read_guids(ins, path)
        self.guild_name = ins.read_fstring(path)
        self.player_uid = ins.read_guid(path)
        self.guild_name_2 = ins.read_fstring(path)
        self.last_online = DateTime(ins.unpack_one('<q', path))
        self.player_name = ins.read_fstring(path)

    def dump_fields(self, out):
        super().dump_fields(out)
        out.write_int32(self.base_camp_level)
        _write_guids(out, self.map_object_instance_ids)
        out.write_fstring(self.guild_name)
        out.write_guid(self.player_uid)
        out.write_fstring(self.guild_name_2)
        out.pack('<q', self.last_online)
        out.write_fstring(self.player_name)

# EPalGroupType value -> layout of the group's RawData
GROUP_LAYOUTS: dict[str, type[GroupRawData]] = {
    'EPalGroupType::Guild': GuildRawData,
    'EPalGroupType::IndependentGuild': IndependentGuildRawData,
    'EPalGroupType::Organization': OrganizationRawData,
}
# Class name -> class, for the intermediate representation
RAW_DATA_TYPES: dict[str, type[ARawData]] = {r_cls.__name__: r_cls
    for r_cls in (CharacterRawData, GroupRawData, OrganizationRawData,
                  GuildRawData, IndependentGuildRawData)}

#------------------------------------------------------------------------------
# Struct hooks
def _decode_raw_data(ins: GvasReader, props: PropertyList, path,
                     raw_cls: type[ARawData]):
    """Replace the bytes of the RawData array in props with their decoded
    form, if raw_cls can reproduce them."""
    raw_prop = props.get('RawData')
    if not (isinstance(raw_prop, ArrayProperty) and isinstance(
            raw_prop.value, bytes)):
        return
    raw_path = f'{path}.RawData'
    raw_bytes = raw_prop.value
    try:
        decoded = raw_cls.load_raw(ins.sub_reader(raw_bytes), raw_path)
        if bass.inisettings.get('VerifyRawData', True) and (
                decoded.to_bytes() != raw_bytes):
            deprint(f'{ins.in_name}: {raw_cls.__name__} at {raw_path} does '
                    f'not round-trip, keeping it as raw bytes')
            return
    except SaveError as e:
        deprint(f'{ins.in_name}: Could not decode {raw_path}, keeping it as '
                f'raw bytes: {e}')
        return
    raw_prop.value = decoded

def _character_hook(ins, path, props):
    _decode_raw_data(ins, props, path, CharacterRawData)

def _group_hook(ins, path, props):
    group_type = props.value_of('GroupType', '')
    _decode_raw_data(ins, props, path,
                     GROUP_LAYOUTS.get(group_type, GroupRawData))

STRUCT_HOOKS = {
    '.worldSaveData.CharacterSaveParameterMap.Value': _character_hook,
    '.worldSaveData.GroupSaveDataMap.Value': _group_hook,
}
