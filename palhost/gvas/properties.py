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
"""The property model. A GVAS document is a tree of property lists: every
property is a tag (name, type, size, array index, type specific header and
an optional Guid) followed by a payload of exactly `size` bytes. Each wire
type maps to one class in PROPERTY_TYPES, which knows how to load and dump
its header and payload.

Payload paths are built like this: the root list lives at '', a property
called Foo in it at '.Foo', fields of a struct at '.Foo.Field', the keys and
values of a map at '.Foo.Key' and '.Foo.Value' and the elements of an array
of structs at '.Foo.<inner tag name>'. Type hints, opaque paths and struct
hooks are all keyed by these paths."""
from __future__ import annotations

from ..exception import SaveSizeError, UnsupportedPropertyType
from .archive import Guid, GvasReader, GvasWriter
from .struct_values import is_fixed_struct, read_fixed_struct, \
    write_fixed_struct

# Struct type used for structs whose type the file does not record and that
# have no hint, i.e. nested property lists
GENERIC_STRUCT = 'StructProperty'
# Struct type of map keys without a hint
DEFAULT_KEY_STRUCT = 'Guid'

#------------------------------------------------------------------------------
# Containers and helpers
class AWalkable(object):
    """Base class for nodes walk_values descends into. _walk_attrs lists the
    attributes holding values, anything else (names, tags, struct Guids) is
    never visited."""
    __slots__ = ()
    _walk_attrs: tuple[str, ...] = ()

class PropertyList(list):
    """An ordered list of properties. Duplicate names are legal (see
    AProperty.array_index), lookups return the first match."""
    __slots__ = ()

    def get(self, prop_name, default=None):
        for prop in self:
            if prop.name == prop_name:
                return prop
        return default

    def value_of(self, prop_name, default=None):
        prop = self.get(prop_name)
        return default if prop is None else prop.value

    def resolve(self, *prop_names, default=None):
        """Follow prop_names through nested generic structs and return the
        value of the last one, or default if any link is missing."""
        node = self
        for prop_name in prop_names:
            if not isinstance(node, PropertyList):
                return default
            if (prop := node.get(prop_name)) is None:
                return default
            node = prop.value
        return node

class RawPayload(object):
    """The payload of a property kept as raw bytes, written back verbatim."""
    __slots__ = ('data',)

    def __init__(self, data: bytes):
        self.data = bytes(data)

    def __eq__(self, other):
        if isinstance(other, RawPayload):
            return self.data == other.data
        return NotImplemented

    def __hash__(self):
        return hash(self.data)

    def __repr__(self):
        return f'RawPayload(<{len(self.data)} bytes>)'

class ARawData(AWalkable):
    """Base class for the game's custom serializations that hide inside
    byte arrays. Subclasses decode themselves from a reader over the array
    contents and dump back to the same bytes."""
    # attribute -> kind of value it holds, for the intermediate representation
    _fields: dict[str, str] = {}
    __slots__ = ()

    @classmethod
    def from_fields(cls, field_values: dict):
        """Create an instance from a dict holding a value for every key of
        _fields."""
        raw_data = cls.__new__(cls)
        for field_name in cls._fields:
            setattr(raw_data, field_name, field_values[field_name])
        return raw_data

    @classmethod
    def load_raw(cls, ins: GvasReader, path):
        raise NotImplementedError

    def dump_raw(self, out: GvasWriter):
        raise NotImplementedError

    def to_bytes(self) -> bytes:
        out = GvasWriter()
        self.dump_raw(out)
        return out.getvalue()

def walk_values(node, visit):
    """Call visit on every leaf value below node and replace the leaf with
    whatever visit returns. Lists are walked in place, AWalkable nodes
    through their _walk_attrs, everything else (including tuples) is a
    leaf."""
    if isinstance(node, list):
        for i, child in enumerate(node):
            if isinstance(child, (list, AWalkable)):
                walk_values(child, visit)
            else:
                node[i] = visit(child)
    elif isinstance(node, AWalkable):
        for attr in node._walk_attrs:
            child = getattr(node, attr)
            if isinstance(child, (list, AWalkable)):
                walk_values(child, visit)
            else:
                setattr(node, attr, visit(child))

#------------------------------------------------------------------------------
# Struct values and container elements
def read_struct_value(ins: GvasReader, struct_type, path):
    """Read a struct of type struct_type. Unknown types are generic structs:
    a property list, after which the struct hooks for path run."""
    if is_fixed_struct(struct_type):
        return read_fixed_struct(ins, struct_type, path)
    props = read_properties(ins, path)
    ins.run_struct_hooks(path, props)
    return props

def write_struct_value(out: GvasWriter, value):
    if isinstance(value, PropertyList):
        write_properties(out, value)
    else:
        write_fixed_struct(out, value)

# Elements of arrays, maps and sets carry no tag of their own
_element_formats = {
    'IntProperty': '<i',
    'Int64Property': '<q',
    'UInt16Property': '<H',
    'UInt32Property': '<I',
    'UInt64Property': '<Q',
    'FixedPoint64Property': '<i',
    'FloatProperty': '<f',
    'DoubleProperty': '<d',
    'ByteProperty': '<B',
}
_string_elements = {'StrProperty', 'NameProperty', 'EnumProperty',
                    'ObjectProperty'}

def read_element(ins: GvasReader, elem_type, path, struct_type=None):
    """Read one untagged container element of wire type elem_type."""
    if elem_type == 'StructProperty':
        return read_struct_value(ins, struct_type, path)
    if elem_type in _string_elements:
        return ins.read_fstring(path)
    if (fmt := _element_formats.get(elem_type)) is not None:
        return ins.unpack_one(fmt, path)
    if elem_type == 'BoolProperty':
        return bool(ins.read_byte(path))
    if elem_type == 'SoftObjectProperty':
        return ins.read_fstring(path), ins.read_fstring(path)
    if elem_type == 'Guid':
        return ins.read_guid(path)
    raise UnsupportedPropertyType(ins.in_name, path, elem_type)

def write_element(out: GvasWriter, elem_type, value):
    if elem_type == 'StructProperty':
        write_struct_value(out, value)
    elif elem_type in _string_elements:
        out.write_fstring(value)
    elif (fmt := _element_formats.get(elem_type)) is not None:
        out.pack(fmt, value)
    elif elem_type == 'BoolProperty':
        out.write_byte(int(value))
    elif elem_type == 'SoftObjectProperty':
        out.write_fstring(value[0])
        out.write_fstring(value[1])
    elif elem_type == 'Guid':
        out.write_guid(value)
    else:
        raise UnsupportedPropertyType('<output>', '', elem_type)

#------------------------------------------------------------------------------
# Properties
class AProperty(AWalkable):
    """Base class for all properties. size is the length of the payload
    alone (never the tag, the type specific header or the optional Guid)
    and is recomputed whenever the property is dumped."""
    prop_type = ''
    # False for types whose whole value lives in the header
    _has_payload = True
    _walk_attrs = ('value',)
    __slots__ = ('name', 'value', 'array_index', 'prop_guid', 'size')

    def __init__(self, name, value=None, *, array_index=0, prop_guid=None,
                 size=0):
        self.name = name
        self.value = value
        self.array_index = array_index
        self.prop_guid = prop_guid
        self.size = size

    @classmethod
    def load_property(cls, ins: GvasReader, prop_name, size, array_index,
                      path):
        """Load the rest of a property whose name, type, size and array
        index have already been read."""
        prop = cls(prop_name, array_index=array_index, size=size)
        prop.load_header(ins, path)
        prop.prop_guid = ins.read_optional_guid(path)
        start_pos = ins.tell()
        if cls._has_payload and ins.is_opaque(path):
            prop.value = RawPayload(ins.read(size, path))
        else:
            prop.load_value(ins, size, path)
        if (consumed := ins.tell() - start_pos) != size:
            raise SaveSizeError(ins.in_name, path, size, consumed)
        return prop

    def load_header(self, ins: GvasReader, path):
        """Load the type specific header fields, if any."""

    def load_value(self, ins: GvasReader, size, path):
        raise NotImplementedError

    def dump_property(self, out: GvasWriter):
        out.write_fstring(self.name)
        out.write_fstring(self.prop_type)
        size_pos = out.tell()
        out.write_int32(0) # placeholder, patched below
        out.write_int32(self.array_index)
        self.dump_header(out)
        out.write_optional_guid(self.prop_guid)
        start_pos = out.tell()
        if isinstance(self.value, RawPayload):
            out.write(self.value.data)
        else:
            self.dump_value(out)
        self.size = out.tell() - start_pos
        out.patch_int32(size_pos, self.size)

    def dump_header(self, out: GvasWriter):
        pass

    def dump_value(self, out: GvasWriter):
        raise NotImplementedError

    def __repr__(self):
        return f'{type(self).__name__}({self.name!r}, {self.value!r})'

class _APackedProperty(AProperty):
    """A property whose payload is a single struct-packed number."""
    _fmt = ''
    __slots__ = ()

    def load_value(self, ins, size, path):
        self.value = ins.unpack_one(self._fmt, path)

    def dump_value(self, out):
        out.pack(self._fmt, self.value)

class IntProperty(_APackedProperty):
    prop_type = 'IntProperty'
    _fmt = '<i'
    __slots__ = ()

class Int64Property(_APackedProperty):
    prop_type = 'Int64Property'
    _fmt = '<q'
    __slots__ = ()

class UInt16Property(_APackedProperty):
    prop_type = 'UInt16Property'
    _fmt = '<H'
    __slots__ = ()

class UInt32Property(_APackedProperty):
    prop_type = 'UInt32Property'
    _fmt = '<I'
    __slots__ = ()

class UInt64Property(_APackedProperty):
    prop_type = 'UInt64Property'
    _fmt = '<Q'
    __slots__ = ()

class FixedPoint64Property(_APackedProperty):
    prop_type = 'FixedPoint64Property'
    _fmt = '<i'
    __slots__ = ()

class FloatProperty(_APackedProperty):
    prop_type = 'FloatProperty'
    _fmt = '<f'
    __slots__ = ()

class DoubleProperty(_APackedProperty):
    prop_type = 'DoubleProperty'
    _fmt = '<d'
    __slots__ = ()

class BoolProperty(AProperty):
    """The value byte sits in the header, before the optional Guid, and the
    payload is empty."""
    prop_type = 'BoolProperty'
    _has_payload = False
    __slots__ = ()

    def load_header(self, ins, path):
        self.value = bool(ins.read_byte(path))

    def load_value(self, ins, size, path):
        pass

    def dump_header(self, out):
        out.write_byte(int(self.value))

    def dump_value(self, out):
        pass

class _AStringProperty(AProperty):
    __slots__ = ()

    def load_value(self, ins, size, path):
        self.value = ins.read_fstring(path)

    def dump_value(self, out):
        out.write_fstring(self.value)

class StrProperty(_AStringProperty):
    prop_type = 'StrProperty'
    __slots__ = ()

class NameProperty(_AStringProperty):
    prop_type = 'NameProperty'
    __slots__ = ()

class ObjectProperty(_AStringProperty):
    prop_type = 'ObjectProperty'
    __slots__ = ()

class TextProperty(AProperty):
    """Localized text has too many variants to be worth decoding, we keep
    the payload bytes."""
    prop_type = 'TextProperty'
    __slots__ = ()

    def load_value(self, ins, size, path):
        self.value = ins.read(size, path)

    def dump_value(self, out):
        out.write(self.value)

class EnumProperty(AProperty):
    prop_type = 'EnumProperty'
    __slots__ = ('enum_type',)

    def __init__(self, name, value=None, *, enum_type='None', **kwargs):
        super().__init__(name, value, **kwargs)
        self.enum_type = enum_type

    def load_header(self, ins, path):
        self.enum_type = ins.read_fstring(path)

    def load_value(self, ins, size, path):
        self.value = ins.read_fstring(path)

    def dump_header(self, out):
        out.write_fstring(self.enum_type)

    def dump_value(self, out):
        out.write_fstring(self.value)

class ByteProperty(EnumProperty):
    """A plain uint8 if enum_type is 'None', else the name of an enum
    member."""
    prop_type = 'ByteProperty'
    __slots__ = ()

    def load_value(self, ins, size, path):
        if self.enum_type == 'None':
            self.value = ins.read_byte(path)
        else:
            self.value = ins.read_fstring(path)

    def dump_value(self, out):
        if self.enum_type == 'None':
            out.write_byte(self.value)
        else:
            out.write_fstring(self.value)

class SoftObjectProperty(AProperty):
    """Value is an (asset path, sub path) tuple."""
    prop_type = 'SoftObjectProperty'
    __slots__ = ()

    def load_value(self, ins, size, path):
        self.value = (ins.read_fstring(path), ins.read_fstring(path))

    def dump_value(self, out):
        out.write_fstring(self.value[0])
        out.write_fstring(self.value[1])

class StructProperty(AProperty):
    prop_type = 'StructProperty'
    __slots__ = ('struct_type', 'struct_guid')

    def __init__(self, name, value=None, *, struct_type=GENERIC_STRUCT,
                 struct_guid=None, **kwargs):
        super().__init__(name, value, **kwargs)
        self.struct_type = struct_type
        self.struct_guid = struct_guid or Guid(b'\x00' * 16)

    def load_header(self, ins, path):
        self.struct_type = ins.read_fstring(path)
        self.struct_guid = ins.read_guid(path)

    def load_value(self, ins, size, path):
        self.value = read_struct_value(ins, self.struct_type, path)

    def dump_header(self, out):
        out.write_fstring(self.struct_type)
        out.write_guid(self.struct_guid)

    def dump_value(self, out):
        write_struct_value(out, self.value)

class ArrayStructTag(object):
    """The property tag in front of the elements of an array of structs.
    Its size covers the elements only."""
    __slots__ = ('name', 'prop_type', 'size', 'array_index', 'struct_type',
                 'struct_guid', 'prop_guid')

    def __init__(self, name, struct_type, *, prop_type='StructProperty',
                 size=0, array_index=0, struct_guid=None, prop_guid=None):
        self.name = name
        self.prop_type = prop_type
        self.size = size
        self.array_index = array_index
        self.struct_type = struct_type
        self.struct_guid = struct_guid or Guid(b'\x00' * 16)
        self.prop_guid = prop_guid

    @classmethod
    def load_tag(cls, ins: GvasReader, path):
        tag_name = ins.read_fstring(path)
        prop_type = ins.read_fstring(path, tag_name)
        size = ins.read_int32(path, tag_name)
        array_index = ins.read_int32(path, tag_name)
        struct_type = ins.read_fstring(path, tag_name)
        struct_guid = ins.read_guid(path, tag_name)
        prop_guid = ins.read_optional_guid(path, tag_name)
        return cls(tag_name, struct_type, prop_type=prop_type, size=size,
                   array_index=array_index, struct_guid=struct_guid,
                   prop_guid=prop_guid)

    def dump_tag(self, out: GvasWriter, elements):
        """Dump this tag followed by elements, patching in their size."""
        out.write_fstring(self.name)
        out.write_fstring(self.prop_type)
        size_pos = out.tell()
        out.write_int32(0)
        out.write_int32(self.array_index)
        out.write_fstring(self.struct_type)
        out.write_guid(self.struct_guid)
        out.write_optional_guid(self.prop_guid)
        start_pos = out.tell()
        for element in elements:
            write_struct_value(out, element)
        self.size = out.tell() - start_pos
        out.patch_int32(size_pos, self.size)

    def __repr__(self):
        return f'ArrayStructTag({self.name!r}, {self.struct_type!r})'

class ArrayProperty(AProperty):
    """Value is a list of elements, except for arrays of bytes, which are a
    bytes object (or an ARawData a struct hook decoded them into). Arrays of
    structs also keep the tag preceding their elements."""
    prop_type = 'ArrayProperty'
    __slots__ = ('elem_type', 'struct_tag')

    def __init__(self, name, value=None, *, elem_type='IntProperty',
                 struct_tag=None, **kwargs):
        super().__init__(name, value, **kwargs)
        self.elem_type = elem_type
        self.struct_tag = struct_tag

    def load_header(self, ins, path):
        self.elem_type = ins.read_fstring(path)

    def load_value(self, ins, size, path):
        count = ins.read_uint32(path)
        if self.elem_type == 'ByteProperty':
            self.value = ins.read(count, path)
        elif self.elem_type == 'StructProperty':
            self.struct_tag = tag = ArrayStructTag.load_tag(ins, path)
            elem_path = f'{path}.{tag.name}'
            start_pos = ins.tell()
            self.value = [read_struct_value(ins, tag.struct_type, elem_path)
                          for _x in range(count)]
            if (consumed := ins.tell() - start_pos) != tag.size:
                raise SaveSizeError(ins.in_name, elem_path, tag.size,
                                    consumed)
        else:
            self.value = [read_element(ins, self.elem_type, path)
                          for _x in range(count)]

    def dump_header(self, out):
        out.write_fstring(self.elem_type)

    def dump_value(self, out):
        if self.elem_type == 'ByteProperty':
            data = self.value
            if isinstance(data, ARawData):
                data = data.to_bytes()
            out.write_uint32(len(data))
            out.write(data)
        elif self.elem_type == 'StructProperty':
            out.write_uint32(len(self.value))
            self.struct_tag.dump_tag(out, self.value)
        else:
            out.write_uint32(len(self.value))
            for element in self.value:
                write_element(out, self.elem_type, element)

class MapEntry(AWalkable):
    _walk_attrs = ('key', 'value')
    __slots__ = ('key', 'value')

    def __init__(self, key, value):
        self.key = key
        self.value = value

    def __repr__(self):
        return f'MapEntry({self.key!r}, {self.value!r})'

class MapProperty(AProperty):
    """Value is a list of MapEntry. The file does not record the struct
    types of struct keys and values, they come from the reader's type
    hints. removed holds the keys of the 'elements to remove' list."""
    prop_type = 'MapProperty'
    _walk_attrs = ('value', 'removed')
    __slots__ = ('key_type', 'value_type', 'key_struct_type',
                 'value_struct_type', 'removed')

    def __init__(self, name, value=None, *, key_type='StructProperty',
                 value_type='StructProperty', key_struct_type=None,
                 value_struct_type=None, removed=None, **kwargs):
        super().__init__(name, value, **kwargs)
        self.key_type = key_type
        self.value_type = value_type
        self.key_struct_type = key_struct_type
        self.value_struct_type = value_struct_type
        self.removed = removed if removed is not None else []

    def load_header(self, ins, path):
        self.key_type = ins.read_fstring(path)
        self.value_type = ins.read_fstring(path)

    def load_value(self, ins, size, path):
        key_path, value_path = f'{path}.Key', f'{path}.Value'
        if self.key_type == 'StructProperty':
            self.key_struct_type = ins.type_hint(key_path, DEFAULT_KEY_STRUCT)
        if self.value_type == 'StructProperty':
            self.value_struct_type = ins.type_hint(value_path, GENERIC_STRUCT)
        key_type, key_struct = self.key_type, self.key_struct_type
        value_type, value_struct = self.value_type, self.value_struct_type
        removed_count = ins.read_uint32(path)
        self.removed = [read_element(ins, key_type, key_path, key_struct)
                        for _x in range(removed_count)]
        count = ins.read_uint32(path)
        self.value = [MapEntry(
            read_element(ins, key_type, key_path, key_struct),
            read_element(ins, value_type, value_path, value_struct))
            for _x in range(count)]

    def dump_header(self, out):
        out.write_fstring(self.key_type)
        out.write_fstring(self.value_type)

    def dump_value(self, out):
        out.write_uint32(len(self.removed))
        for key in self.removed:
            write_element(out, self.key_type, key)
        out.write_uint32(len(self.value))
        for entry in self.value:
            write_element(out, self.key_type, entry.key)
            write_element(out, self.value_type, entry.value)

class SetProperty(AProperty):
    """Value is a list of elements. Struct elements take their type from
    the hint for the set's own path."""
    prop_type = 'SetProperty'
    _walk_attrs = ('value', 'removed')
    __slots__ = ('elem_type', 'elem_struct_type', 'removed')

    def __init__(self, name, value=None, *, elem_type='StructProperty',
                 elem_struct_type=None, removed=None, **kwargs):
        super().__init__(name, value, **kwargs)
        self.elem_type = elem_type
        self.elem_struct_type = elem_struct_type
        self.removed = removed if removed is not None else []

    def load_header(self, ins, path):
        self.elem_type = ins.read_fstring(path)

    def load_value(self, ins, size, path):
        if self.elem_type == 'StructProperty':
            self.elem_struct_type = ins.type_hint(path, GENERIC_STRUCT)
        elem_type, elem_struct = self.elem_type, self.elem_struct_type
        removed_count = ins.read_uint32(path)
        self.removed = [read_element(ins, elem_type, path, elem_struct)
                        for _x in range(removed_count)]
        count = ins.read_uint32(path)
        self.value = [read_element(ins, elem_type, path, elem_struct)
                      for _x in range(count)]

    def dump_header(self, out):
        out.write_fstring(self.elem_type)

    def dump_value(self, out):
        out.write_uint32(len(self.removed))
        for element in self.removed:
            write_element(out, self.elem_type, element)
        out.write_uint32(len(self.value))
        for element in self.value:
            write_element(out, self.elem_type, element)

# Every wire type we understand - anything else is UnsupportedPropertyType
PROPERTY_TYPES: dict[str, type[AProperty]] = {p_cls.prop_type: p_cls for p_cls
    in (BoolProperty, IntProperty, Int64Property, UInt16Property,
        UInt32Property, UInt64Property, FixedPoint64Property, FloatProperty,
        DoubleProperty, StrProperty, NameProperty, TextProperty,
        EnumProperty, ByteProperty, StructProperty, ArrayProperty,
        MapProperty, SetProperty, SoftObjectProperty, ObjectProperty)}

#------------------------------------------------------------------------------
# Property lists
def read_properties(ins: GvasReader, path='') -> PropertyList:
    """Read properties until the 'None' terminator."""
    props = PropertyList()
    while (prop_name := ins.read_fstring(path)) != 'None':
        prop_path = f'{path}.{prop_name}'
        prop_type = ins.read_fstring(prop_path)
        size = ins.read_int32(prop_path)
        array_index = ins.read_int32(prop_path)
        try:
            prop_cls = PROPERTY_TYPES[prop_type]
        except KeyError:
            raise UnsupportedPropertyType(ins.in_name, prop_path,
                                          prop_type) from None
        props.append(prop_cls.load_property(ins, prop_name, size,
                                            array_index, prop_path))
    return props

def write_properties(out: GvasWriter, props):
    for prop in props:
        prop.dump_property(out)
    out.write_fstring('None')
