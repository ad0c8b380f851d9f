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
import struct

import pytest

from .. import NONE, fstr, prop
from ...exception import SaveReadError, SaveSizeError, \
    UnsupportedPropertyType
from ...gvas.archive import Guid, GvasReader, GvasWriter, ZERO_GUID
from ...gvas.properties import ArrayProperty, ArrayStructTag, \
    BoolProperty, ByteProperty, EnumProperty, IntProperty, MapEntry, \
    MapProperty, PropertyList, RawPayload, SetProperty, StrProperty, \
    StructProperty, TextProperty, read_properties, walk_values, \
    write_properties
from ...gvas.struct_values import DateTime, Vector

_GUID_1 = Guid(bytes(range(16)))
_GUID_2 = Guid(bytes(range(16, 32)))
_NO_GUID = b'\x00' * 16

def _parse(*prop_bytes, **reader_kwargs) -> PropertyList:
    ins = GvasReader('test.sav', b''.join(prop_bytes) + NONE,
                     **reader_kwargs)
    props = read_properties(ins)
    assert ins.at_end()
    return props

def _dump(props) -> bytes:
    out = GvasWriter()
    write_properties(out, props)
    return out.getvalue()

def _check_round_trip(*prop_bytes, **reader_kwargs) -> PropertyList:
    """Parse the given properties and check that they dump back to the
    exact same bytes."""
    props = _parse(*prop_bytes, **reader_kwargs)
    assert _dump(props) == b''.join(prop_bytes) + NONE
    return props

def _struct_header(struct_type):
    return fstr(struct_type) + _NO_GUID

def _array_struct_payload(tag_name, struct_type, elements):
    elem_bytes = b''.join(elements)
    return (struct.pack('<I', len(elements)) + fstr(tag_name) +
            fstr('StructProperty') + struct.pack('<ii', len(elem_bytes), 0) +
            _struct_header(struct_type) + b'\x00' + elem_bytes)

class TestSimpleProperties(object):
    def test_int(self):
        props = _check_round_trip(prop('Version', 'IntProperty',
                                       struct.pack('<i', -100)))
        version = props.get('Version')
        assert isinstance(version, IntProperty)
        assert version.value == -100
        assert version.size == 4

    def test_numbers(self):
        props = _check_round_trip(
            prop('A', 'Int64Property', struct.pack('<q', -2 ** 40)),
            prop('B', 'UInt16Property', struct.pack('<H', 65535)),
            prop('C', 'UInt32Property', struct.pack('<I', 2 ** 32 - 1)),
            prop('D', 'UInt64Property', struct.pack('<Q', 2 ** 64 - 1)),
            prop('E', 'FloatProperty', struct.pack('<f', 1.5)),
            prop('F', 'DoubleProperty', struct.pack('<d', -0.1)),
            prop('G', 'FixedPoint64Property', struct.pack('<i', 7)))
        assert [p.value for p in props] == [
            -2 ** 40, 65535, 2 ** 32 - 1, 2 ** 64 - 1, 1.5, -0.1, 7]

    def test_bool(self):
        """The value sits in the header, the payload is empty."""
        props = _check_round_trip(
            prop('IsPlayer', 'BoolProperty', header=b'\x01'),
            prop('IsDead', 'BoolProperty', header=b'\x00'))
        assert props.value_of('IsPlayer') is True
        assert props.value_of('IsDead') is False
        assert props.get('IsPlayer').size == 0

    def test_strings(self):
        props = _check_round_trip(
            prop('NickName', 'StrProperty', fstr('Zoë')),
            prop('Empty', 'StrProperty', fstr('')),
            prop('Key', 'NameProperty', fstr('PinkCat')),
            prop('Owner', 'ObjectProperty', fstr('/Game/Pal/Player')))
        assert [p.value for p in props] == ['Zoë', '', 'PinkCat',
                                            '/Game/Pal/Player']

    def test_enum(self):
        props = _check_round_trip(prop(
            'GroupType', 'EnumProperty', fstr('EPalGroupType::Guild'),
            header=fstr('EPalGroupType')))
        group_type = props.get('GroupType')
        assert isinstance(group_type, EnumProperty)
        assert group_type.enum_type == 'EPalGroupType'
        assert group_type.value == 'EPalGroupType::Guild'

    def test_byte(self):
        props = _check_round_trip(
            prop('Level', 'ByteProperty', b'\x2a', header=fstr('None')),
            prop('Rank', 'ByteProperty', fstr('EPalRank::Gold'),
                 header=fstr('EPalRank')))
        assert props.value_of('Level') == 42
        assert props.value_of('Rank') == 'EPalRank::Gold'

    def test_text(self):
        text_payload = b'\x01\x00\x00\x00\xff' + fstr('Hello')
        props = _check_round_trip(prop('Label', 'TextProperty',
                                       text_payload))
        assert isinstance(props.get('Label'), TextProperty)
        assert props.value_of('Label') == text_payload

    def test_soft_object(self):
        props = _check_round_trip(prop(
            'Icon', 'SoftObjectProperty',
            fstr('/Game/Icons/Lamball.Lamball') + fstr('')))
        assert props.value_of('Icon') == ('/Game/Icons/Lamball.Lamball', '')

    def test_array_index_and_guid(self):
        """Duplicate names are told apart by their array index, the
        optional Guid survives."""
        props = _check_round_trip(
            prop('Slot', 'IntProperty', struct.pack('<i', 1)),
            prop('Slot', 'IntProperty', struct.pack('<i', 2), array_index=1,
                 prop_guid=_GUID_1.raw))
        assert [p.array_index for p in props] == [0, 1]
        assert props[0].prop_guid is None
        assert props[1].prop_guid == _GUID_1
        assert props.value_of('Slot') == 1

class TestStructProperties(object):
    def test_guid(self):
        props = _check_round_trip(prop('PlayerUId', 'StructProperty',
                                       _GUID_1.raw, _struct_header('Guid')))
        assert props.value_of('PlayerUId') == _GUID_1
        assert props.get('PlayerUId').struct_type == 'Guid'

    def test_fixed_layouts(self):
        props = _check_round_trip(
            prop('Timestamp', 'StructProperty',
                 struct.pack('<Q', 638712864000000000),
                 _struct_header('DateTime')),
            prop('Location', 'StructProperty',
                 struct.pack('<3d', 1.0, -2.5, 3.25),
                 _struct_header('Vector')))
        assert props.value_of('Timestamp') == DateTime(638712864000000000)
        assert isinstance(props.value_of('Timestamp'), DateTime)
        assert props.value_of('Location') == Vector(1.0, -2.5, 3.25)

    def test_generic(self):
        nested = prop('PlayerUId', 'StructProperty', _GUID_1.raw,
                      _struct_header('Guid')) + NONE
        props = _check_round_trip(prop('IndividualId', 'StructProperty',
                                       nested,
                                       _struct_header('PalInstanceID')))
        individual_id = props.value_of('IndividualId')
        assert isinstance(individual_id, PropertyList)
        assert individual_id.value_of('PlayerUId') == _GUID_1
        assert props.resolve('IndividualId', 'PlayerUId') == _GUID_1
        assert props.resolve('IndividualId', 'Missing') is None
        assert props.resolve('IndividualId', 'PlayerUId', 'Deeper',
                             default=0) == 0

    def test_struct_guid(self):
        props = _check_round_trip(prop(
            'Location', 'StructProperty', struct.pack('<3d', 0, 0, 0),
            fstr('Vector') + _GUID_2.raw))
        assert props.get('Location').struct_guid == _GUID_2

class TestArrayProperties(object):
    def test_ints(self):
        props = _check_round_trip(prop(
            'Exps', 'ArrayProperty', struct.pack('<I3i', 3, 1, -2, 3),
            header=fstr('IntProperty')))
        assert props.value_of('Exps') == [1, -2, 3]

    def test_bytes(self):
        props = _check_round_trip(prop(
            'RawData', 'ArrayProperty',
            struct.pack('<I', 4) + b'\x00\xff\x01\x02',
            header=fstr('ByteProperty')))
        assert props.value_of('RawData') == b'\x00\xff\x01\x02'

    def test_strings(self):
        props = _check_round_trip(prop(
            'Names', 'ArrayProperty',
            struct.pack('<I', 2) + fstr('Anubis') + fstr('警告'),
            header=fstr('NameProperty')))
        assert props.value_of('Names') == ['Anubis', '警告']

    def test_structs(self):
        payload = _array_struct_payload('OldOwnerPlayerUIds', 'Guid',
                                        [_GUID_1.raw, _GUID_2.raw])
        props = _check_round_trip(prop('OldOwnerPlayerUIds', 'ArrayProperty',
                                       payload,
                                       header=fstr('StructProperty')))
        owners = props.get('OldOwnerPlayerUIds')
        assert owners.value == [_GUID_1, _GUID_2]
        assert owners.struct_tag.struct_type == 'Guid'
        assert owners.struct_tag.size == 32

    def test_generic_structs(self):
        elements = [prop('Count', 'IntProperty', struct.pack('<i', i)) + NONE
                    for i in range(3)]
        payload = _array_struct_payload('Slots', 'PalItemSlotSaveData',
                                        elements)
        props = _check_round_trip(prop('Slots', 'ArrayProperty', payload,
                                       header=fstr('StructProperty')))
        assert [s.value_of('Count') for s in props.value_of('Slots')] == [
            0, 1, 2]

    def test_empty_structs(self):
        payload = _array_struct_payload('Slots', 'Guid', [])
        props = _check_round_trip(prop('Slots', 'ArrayProperty', payload,
                                       header=fstr('StructProperty')))
        assert props.value_of('Slots') == []

class TestMapProperties(object):
    def test_guid_keys(self):
        """Struct keys without a hint are read as Guids."""
        payload = struct.pack('<II', 0, 2) + _GUID_1.raw + \
            struct.pack('<i', 10) + _GUID_2.raw + struct.pack('<i', 20)
        props = _check_round_trip(prop(
            'Scores', 'MapProperty', payload,
            header=fstr('StructProperty') + fstr('IntProperty')))
        scores = props.get('Scores')
        assert [(e.key, e.value) for e in scores.value] == [
            (_GUID_1, 10), (_GUID_2, 20)]
        assert scores.key_struct_type == 'Guid'
        assert scores.removed == []

    def test_hinted(self):
        key = prop('PlayerUId', 'StructProperty', _GUID_1.raw,
                   _struct_header('Guid')) + NONE
        value = prop('Level', 'ByteProperty', b'\x05',
                     header=fstr('None')) + NONE
        payload = struct.pack('<II', 0, 1) + key + value
        props = _check_round_trip(prop(
            'Characters', 'MapProperty', payload,
            header=fstr('StructProperty') + fstr('StructProperty')),
            type_hints={'.Characters.Key': 'StructProperty'})
        entry = props.value_of('Characters')[0]
        assert entry.key.value_of('PlayerUId') == _GUID_1
        assert entry.value.value_of('Level') == 5

    def test_removed(self):
        payload = struct.pack('<I', 1) + fstr('Gone') + \
            struct.pack('<I', 1) + fstr('Here') + struct.pack('<i', 1)
        props = _check_round_trip(prop(
            'Flags', 'MapProperty', payload,
            header=fstr('NameProperty') + fstr('IntProperty')))
        flags = props.get('Flags')
        assert flags.removed == ['Gone']
        assert flags.value[0].key == 'Here'

class TestSetProperties(object):
    def test_names(self):
        payload = struct.pack('<II', 0, 2) + fstr('A') + fstr('B')
        props = _check_round_trip(prop('Unlocked', 'SetProperty', payload,
                                       header=fstr('NameProperty')))
        assert props.value_of('Unlocked') == ['A', 'B']

    def test_guid_hint(self):
        """Struct elements take the hint for the set's own path."""
        payload = struct.pack('<II', 0, 1) + _GUID_1.raw
        props = _check_round_trip(prop('Members', 'SetProperty', payload,
                                       header=fstr('StructProperty')),
                                  type_hints={'.Members': 'Guid'})
        members = props.get('Members')
        assert isinstance(members, SetProperty)
        assert members.value == [_GUID_1]

class TestErrors(object):
    def test_unsupported_type(self):
        with pytest.raises(UnsupportedPropertyType) as exc_info:
            _parse(prop('Weird', 'DelegateProperty', b'\x00' * 4))
        assert exc_info.value.type_name == 'DelegateProperty'
        assert '.Weird' in str(exc_info.value)

    def test_unsupported_element_type(self):
        with pytest.raises(UnsupportedPropertyType):
            _parse(prop('Weird', 'ArrayProperty', struct.pack('<Ii', 1, 0),
                        header=fstr('DelegateProperty')))

    def test_size_mismatch(self):
        """An int whose declared size is larger than four bytes."""
        with pytest.raises(SaveSizeError) as exc_info:
            _parse(prop('Version', 'IntProperty', b'\x00' * 8))
        assert exc_info.value.expected_size == 8
        assert exc_info.value.actual_size == 4

    def test_missing_terminator(self):
        ins = GvasReader('test.sav', prop('Version', 'IntProperty',
                                          struct.pack('<i', 1)))
        with pytest.raises(SaveReadError):
            read_properties(ins)

class TestOpaque(object):
    def test_opaque_path(self):
        payload = struct.pack('<II', 0, 1) + _GUID_1.raw + \
            struct.pack('<i', 10)
        map_bytes = prop('FoliageGridSaveDataMap', 'MapProperty', payload,
                         header=fstr('StructProperty') + fstr('IntProperty'))
        props = _check_round_trip(map_bytes,
                                  opaque_paths={'.FoliageGridSaveDataMap'})
        foliage = props.get('FoliageGridSaveDataMap')
        assert foliage.value == RawPayload(payload)
        # The header is still decoded
        assert foliage.value_type == 'IntProperty'

class TestBuiltProperties(object):
    def test_sizes_recomputed(self):
        """size is recomputed on every dump."""
        name = StrProperty('NickName', 'Zoë', size=999)
        _dump(PropertyList([name]))
        assert name.size == len(fstr('Zoë'))

    def test_built_round_trip(self):
        props = PropertyList([
            BoolProperty('IsPlayer', True),
            ByteProperty('Level', 3),
            StructProperty('Owner', _GUID_1, struct_type='Guid'),
            ArrayProperty('Owners', [_GUID_1, _GUID_2],
                          elem_type='StructProperty',
                          struct_tag=ArrayStructTag('Owners', 'Guid')),
            MapProperty('Scores', [MapEntry(_GUID_2, 4)],
                        value_type='IntProperty', key_struct_type='Guid'),
        ])
        reparsed = _parse(_dump(props)[:-len(NONE)])
        assert reparsed.value_of('Level') == 3
        assert reparsed.value_of('Owner') == _GUID_1
        assert reparsed.value_of('Owners') == [_GUID_1, _GUID_2]
        assert reparsed.value_of('Scores')[0].value == 4

class TestWalkValues(object):
    def test_replaces_guids_everywhere(self):
        props = PropertyList([
            StructProperty('Owner', _GUID_1, struct_type='Guid'),
            ArrayProperty('Owners', [_GUID_1, ZERO_GUID],
                          elem_type='StructProperty',
                          struct_tag=ArrayStructTag('Owners', 'Guid')),
            MapProperty('ByOwner', [MapEntry(_GUID_1, PropertyList([
                StructProperty('Inner', _GUID_1, struct_type='Guid')]))],
                        removed=[_GUID_1]),
        ])
        def _replace(leaf):
            return _GUID_2 if leaf == _GUID_1 else leaf
        walk_values(props, _replace)
        assert props.value_of('Owner') == _GUID_2
        assert props.value_of('Owners') == [_GUID_2, ZERO_GUID]
        by_owner = props.get('ByOwner')
        assert by_owner.value[0].key == _GUID_2
        assert by_owner.value[0].value.value_of('Inner') == _GUID_2
        assert by_owner.removed == [_GUID_2]

    def test_names_untouched(self):
        """Only values are visited, never names or tags."""
        props = PropertyList([StrProperty('Lamball', 'Lamball')])
        walk_values(props, lambda leaf: leaf.upper() if isinstance(
            leaf, str) else leaf)
        assert props[0].name == 'Lamball'
        assert props[0].value == 'LAMBALL'
