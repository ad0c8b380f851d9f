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
"""A JSON compatible representation of SaveDocuments, mirroring the model one
to one so that from_intermediate(to_intermediate(doc)) serializes to the same
bytes as doc. Bytes are base64, Guids dashed strings and fixed layout structs
lists of their fields. Strings are plain JSON strings unless they were stored
in a way the default rule would not reproduce, in which case they become a
dict spelling out how they were stored."""
from __future__ import annotations

import base64
import binascii
import json

from ..exception import ArgumentError, SaveError
from .archive import FString, Guid, is_default_stored
from .properties import PROPERTY_TYPES, AProperty, ARawData, ArrayProperty, \
    ArrayStructTag, BoolProperty, ByteProperty, EnumProperty, MapEntry, \
    MapProperty, PropertyList, RawPayload, SetProperty, SoftObjectProperty, \
    StructProperty, TextProperty, _element_formats, _string_elements
from .rawdata import RAW_DATA_TYPES, CharacterHandle, GuildPlayer
from .save_file import GvasHeader, SaveDocument
from .struct_values import Box, DateTime, Timespan, is_fixed_struct, \
    make_fixed_struct

#------------------------------------------------------------------------------
# Leaves
def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')

def _unb64(text: str) -> bytes:
    return base64.b64decode(text.encode('ascii'), validate=True)

def _guid_out(guid: Guid | None):
    return None if guid is None else str(guid)

def _guid_in(value) -> Guid | None:
    return None if value is None else Guid.from_hex(value)

def _str_out(text: str):
    if is_default_stored(text):
        return str(text)
    return {'text': str(text), 'wide': text.wide,
            'encoding': text.encoding, 'terminated': text.terminated}

def _str_in(value) -> str:
    if isinstance(value, dict):
        return FString(value['text'], wide=value['wide'],
                       encoding=value['encoding'],
                       terminated=value['terminated'])
    return value

def _struct_out(value):
    if isinstance(value, PropertyList):
        return [_prop_out(p) for p in value]
    if isinstance(value, Guid):
        return str(value)
    if isinstance(value, (DateTime, Timespan)):
        return int(value)
    if isinstance(value, Box):
        return [list(value.min), list(value.max), value.is_valid]
    return list(value)

def _struct_in(struct_type, value):
    if is_fixed_struct(struct_type):
        return make_fixed_struct(struct_type, value)
    return PropertyList(_prop_in(p) for p in value)

def _element_out(elem_type, value):
    if elem_type == 'StructProperty':
        return _struct_out(value)
    if elem_type in _string_elements:
        return _str_out(value)
    if elem_type == 'SoftObjectProperty':
        return [_str_out(value[0]), _str_out(value[1])]
    if elem_type == 'Guid':
        return str(value)
    return value # numbers and bools

def _element_in(elem_type, value, struct_type=None):
    if elem_type == 'StructProperty':
        return _struct_in(struct_type, value)
    if elem_type in _string_elements:
        return _str_in(value)
    if elem_type == 'SoftObjectProperty':
        return _str_in(value[0]), _str_in(value[1])
    if elem_type == 'Guid':
        return Guid.from_hex(value)
    if elem_type == 'BoolProperty':
        return bool(value)
    if elem_type in _element_formats and elem_type not in (
            'FloatProperty', 'DoubleProperty'):
        return int(value)
    return value

#------------------------------------------------------------------------------
# Raw data
_field_out = {
    'guid': _guid_out,
    'guids': lambda guids: [str(g) for g in guids],
    'str': _str_out,
    'int': int,
    'datetime': int,
    'bytes': _b64,
    'handles': lambda handles: [[str(h.guid), str(h.instance_id)]
                                for h in handles],
    'players': lambda players: [
        {'player_uid': str(p.player_uid), 'last_online': int(p.last_online),
         'player_name': _str_out(p.player_name)} for p in players],
    'properties': lambda props: [_prop_out(p) for p in props],
}
_field_in = {
    'guid': _guid_in,
    'guids': lambda guids: [Guid.from_hex(g) for g in guids],
    'str': _str_in,
    'int': int,
    'datetime': DateTime,
    'bytes': _unb64,
    'handles': lambda handles: [CharacterHandle(Guid.from_hex(g),
        Guid.from_hex(i)) for g, i in handles],
    'players': lambda players: [GuildPlayer(Guid.from_hex(p['player_uid']),
        DateTime(p['last_online']), _str_in(p['player_name']))
                                for p in players],
    'properties': lambda props: PropertyList(_prop_in(p) for p in props),
}

def _raw_data_out(raw_data: ARawData):
    return {'raw_data': type(raw_data).__name__, 'fields': {
        f_name: _field_out[f_kind](getattr(raw_data, f_name))
        for f_name, f_kind in raw_data._fields.items()}}

def _raw_data_in(tree) -> ARawData:
    raw_cls = RAW_DATA_TYPES[tree['raw_data']]
    fields = tree['fields']
    return raw_cls.from_fields({f_name: _field_in[f_kind](fields[f_name])
        for f_name, f_kind in raw_cls._fields.items()})

#------------------------------------------------------------------------------
# Properties
def _prop_out(prop: AProperty) -> dict:
    tree = {'name': _str_out(prop.name), 'type': prop.prop_type,
            'size': prop.size, 'index': prop.array_index,
            'guid': _guid_out(prop.prop_guid)}
    if isinstance(prop, EnumProperty): # ByteProperty too
        tree['enum_type'] = _str_out(prop.enum_type)
    elif isinstance(prop, StructProperty):
        tree['struct_type'] = _str_out(prop.struct_type)
        tree['struct_guid'] = str(prop.struct_guid)
    elif isinstance(prop, ArrayProperty):
        tree['elem_type'] = prop.elem_type
        if (tag := prop.struct_tag) is not None:
            tree['struct_tag'] = {
                'name': _str_out(tag.name), 'type': tag.prop_type,
                'size': tag.size, 'index': tag.array_index,
                'struct_type': _str_out(tag.struct_type),
                'struct_guid': str(tag.struct_guid),
                'guid': _guid_out(tag.prop_guid)}
    elif isinstance(prop, MapProperty):
        tree.update(key_type=prop.key_type, value_type=prop.value_type,
                    key_struct_type=prop.key_struct_type,
                    value_struct_type=prop.value_struct_type)
    elif isinstance(prop, SetProperty):
        tree.update(elem_type=prop.elem_type,
                    elem_struct_type=prop.elem_struct_type)
    if isinstance(prop.value, RawPayload):
        tree['opaque'] = _b64(prop.value.data)
        return tree
    tree['value'] = _value_out(prop)
    return tree

def _value_out(prop: AProperty):
    value = prop.value
    match prop:
        case StructProperty():
            return _struct_out(value)
        case ArrayProperty(elem_type='ByteProperty'):
            if isinstance(value, ARawData):
                return _raw_data_out(value)
            return _b64(value)
        case ArrayProperty(elem_type='StructProperty'):
            return [_struct_out(v) for v in value]
        case ArrayProperty():
            return [_element_out(prop.elem_type, v) for v in value]
        case MapProperty():
            tree_removed = [_element_out(prop.key_type, k)
                            for k in prop.removed]
            return {'removed': tree_removed, 'entries': [
                [_element_out(prop.key_type, e.key),
                 _element_out(prop.value_type, e.value)] for e in value]}
        case SetProperty():
            return {'removed': [_element_out(prop.elem_type, v)
                                for v in prop.removed],
                    'elements': [_element_out(prop.elem_type, v)
                                 for v in value]}
        case TextProperty():
            return _b64(value)
        case SoftObjectProperty():
            return [_str_out(value[0]), _str_out(value[1])]
        case ByteProperty() if prop.enum_type == 'None':
            return value
        case EnumProperty() | BoolProperty():
            return _str_out(value) if isinstance(value, str) else value
    if isinstance(value, str):
        return _str_out(value)
    return value

def _prop_in(tree: dict) -> AProperty:
    prop_cls = PROPERTY_TYPES[tree['type']]
    prop = prop_cls(_str_in(tree['name']), array_index=tree['index'],
                    prop_guid=_guid_in(tree['guid']), size=tree['size'])
    if isinstance(prop, EnumProperty):
        prop.enum_type = _str_in(tree['enum_type'])
    elif isinstance(prop, StructProperty):
        prop.struct_type = _str_in(tree['struct_type'])
        prop.struct_guid = Guid.from_hex(tree['struct_guid'])
    elif isinstance(prop, ArrayProperty):
        prop.elem_type = tree['elem_type']
        if (tag := tree.get('struct_tag')) is not None:
            prop.struct_tag = ArrayStructTag(_str_in(tag['name']),
                _str_in(tag['struct_type']), prop_type=tag['type'],
                size=tag['size'], array_index=tag['index'],
                struct_guid=Guid.from_hex(tag['struct_guid']),
                prop_guid=_guid_in(tag['guid']))
    elif isinstance(prop, MapProperty):
        prop.key_type = tree['key_type']
        prop.value_type = tree['value_type']
        prop.key_struct_type = tree['key_struct_type']
        prop.value_struct_type = tree['value_struct_type']
    elif isinstance(prop, SetProperty):
        prop.elem_type = tree['elem_type']
        prop.elem_struct_type = tree['elem_struct_type']
    if 'opaque' in tree:
        prop.value = RawPayload(_unb64(tree['opaque']))
    else:
        prop.value = _value_in(prop, tree['value'])
    return prop

def _value_in(prop: AProperty, value):
    match prop:
        case StructProperty():
            return _struct_in(prop.struct_type, value)
        case ArrayProperty(elem_type='ByteProperty'):
            if isinstance(value, dict):
                return _raw_data_in(value)
            return _unb64(value)
        case ArrayProperty(elem_type='StructProperty'):
            struct_type = prop.struct_tag.struct_type
            return [_struct_in(struct_type, v) for v in value]
        case ArrayProperty():
            return [_element_in(prop.elem_type, v) for v in value]
        case MapProperty():
            k_type, k_struct = prop.key_type, prop.key_struct_type
            v_type, v_struct = prop.value_type, prop.value_struct_type
            prop.removed = [_element_in(k_type, k, k_struct)
                            for k in value['removed']]
            return [MapEntry(_element_in(k_type, k, k_struct),
                             _element_in(v_type, v, v_struct))
                    for k, v in value['entries']]
        case SetProperty():
            e_type, e_struct = prop.elem_type, prop.elem_struct_type
            prop.removed = [_element_in(e_type, v, e_struct)
                            for v in value['removed']]
            return [_element_in(e_type, v, e_struct)
                    for v in value['elements']]
        case TextProperty():
            return _unb64(value)
        case SoftObjectProperty():
            return _str_in(value[0]), _str_in(value[1])
        case BoolProperty():
            return bool(value)
    return _str_in(value)

#------------------------------------------------------------------------------
# Documents
def _header_out(header: GvasHeader) -> dict:
    return {
        'save_game_version': header.save_game_version,
        'package_version_ue4': header.package_version_ue4,
        'package_version_ue5': header.package_version_ue5,
        'engine_version': {
            'major': header.engine_major, 'minor': header.engine_minor,
            'patch': header.engine_patch,
            'changelist': header.engine_changelist,
            'branch': _str_out(header.engine_branch)},
        'custom_version_format': header.custom_version_format,
        'custom_versions': [[str(g), v] for g, v in header.custom_versions],
        'save_class_name': _str_out(header.save_class_name),
    }

def _header_in(tree: dict) -> GvasHeader:
    engine = tree['engine_version']
    return GvasHeader(save_game_version=tree['save_game_version'],
        package_version_ue4=tree['package_version_ue4'],
        package_version_ue5=tree['package_version_ue5'],
        engine_major=engine['major'], engine_minor=engine['minor'],
        engine_patch=engine['patch'], engine_changelist=engine['changelist'],
        engine_branch=_str_in(engine['branch']),
        custom_version_format=tree['custom_version_format'],
        custom_versions=[(Guid.from_hex(g), v)
                         for g, v in tree['custom_versions']],
        save_class_name=_str_in(tree['save_class_name']))

def to_intermediate(document: SaveDocument) -> dict:
    """Convert document into a tree of JSON compatible values."""
    return {'header': _header_out(document.header),
            'properties': [_prop_out(p) for p in document.properties],
            'trailer': _b64(document.trailer)}

def from_intermediate(tree: dict, in_name='') -> SaveDocument:
    """Rebuild a SaveDocument from a tree created by to_intermediate. Raises
    a SaveError if the tree is malformed."""
    try:
        return SaveDocument(_header_in(tree['header']),
                            PropertyList(_prop_in(p) for p in
                                         tree['properties']),
                            _unb64(tree['trailer']), in_name)
    except (KeyError, TypeError, ValueError, AttributeError,
            binascii.Error, ArgumentError) as e:
        raise SaveError(in_name, f'Malformed intermediate tree: {e!r}') \
            from e

def dumps(document: SaveDocument, indent=None) -> str:
    # ASCII only, lone surrogates from UTF-16 strings survive that way
    return json.dumps(to_intermediate(document), indent=indent)

def loads(json_text: str, in_name='') -> SaveDocument:
    try:
        tree = json.loads(json_text)
    except ValueError as e:
        raise SaveError(in_name, f'Invalid JSON: {e}') from e
    return from_intermediate(tree, in_name)
