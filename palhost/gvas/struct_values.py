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
"""Struct values with a fixed binary layout. Any struct type not listed here
is a generic struct, i.e. a nested property list (see properties.py)."""
from __future__ import annotations

import datetime
from typing import NamedTuple

from ..exception import StateError
from .archive import Guid

_EPOCH = datetime.datetime(1, 1, 1)
_ONE_MICROSECOND = datetime.timedelta(microseconds=1)

class DateTime(int):
    """FDateTime, in ticks of 100ns since 0001-01-01 00:00."""
    __slots__ = ()

    @classmethod
    def from_datetime(cls, dt: datetime.datetime):
        return cls((dt - _EPOCH) // _ONE_MICROSECOND * 10)

    def to_datetime(self) -> datetime.datetime:
        return _EPOCH + datetime.timedelta(microseconds=self // 10)

    def __repr__(self):
        return f'DateTime({int(self)})'

class Timespan(int):
    """FTimespan, a signed duration in ticks of 100ns."""
    __slots__ = ()

    @classmethod
    def from_timedelta(cls, td: datetime.timedelta):
        return cls(td // _ONE_MICROSECOND * 10)

    def to_timedelta(self) -> datetime.timedelta:
        return datetime.timedelta(microseconds=self // 10)

    def __repr__(self):
        return f'Timespan({int(self)})'

class Vector(NamedTuple):
    x: float
    y: float
    z: float

class Rotator(NamedTuple):
    x: float
    y: float
    z: float

class Quat(NamedTuple):
    x: float
    y: float
    z: float
    w: float

class LinearColor(NamedTuple):
    r: float
    g: float
    b: float
    a: float

class Vector2D(NamedTuple):
    x: float
    y: float

class Vector4(NamedTuple):
    x: float
    y: float
    z: float
    w: float

class Plane(NamedTuple):
    x: float
    y: float
    z: float
    w: float

class IntPoint(NamedTuple):
    x: int
    y: int

class IntVector(NamedTuple):
    x: int
    y: int
    z: int

class Color(NamedTuple):
    # Stored in BGRA order
    b: int
    g: int
    r: int
    a: int

class Box(NamedTuple):
    min: Vector
    max: Vector
    is_valid: bool

# struct type name -> (value class, struct format)
_fixed_structs = {
    'DateTime': (DateTime, '<Q'),
    'Timespan': (Timespan, '<q'),
    'Vector': (Vector, '<3d'),
    'Rotator': (Rotator, '<3d'),
    'Quat': (Quat, '<4d'),
    'LinearColor': (LinearColor, '<4f'),
    'Vector2D': (Vector2D, '<2d'),
    'Vector4': (Vector4, '<4d'),
    'Plane': (Plane, '<4d'),
    'IntPoint': (IntPoint, '<2i'),
    'IntVector': (IntVector, '<3i'),
    'Color': (Color, '<4B'),
}
_struct_names = {v_cls: s_name for s_name, (v_cls, _fmt) in
                 _fixed_structs.items()}
_struct_names[Guid] = 'Guid'
_struct_names[Box] = 'Box'
_box_fmt = '<6dB'

def is_fixed_struct(struct_type) -> bool:
    return struct_type in _fixed_structs or struct_type in ('Guid', 'Box')

def struct_type_of(value) -> str | None:
    """Return the struct type name of a fixed layout value, None for anything
    else."""
    return _struct_names.get(type(value))

def read_fixed_struct(ins, struct_type, *debug_strs):
    """Read a struct of the fixed layout struct_type."""
    if struct_type == 'Guid':
        return ins.read_guid(*debug_strs)
    if struct_type == 'Box':
        *coords, is_valid = ins.unpack(_box_fmt, *debug_strs)
        return Box(Vector(*coords[:3]), Vector(*coords[3:]), bool(is_valid))
    value_cls, fmt = _fixed_structs[struct_type]
    if value_cls in (DateTime, Timespan):
        return value_cls(ins.unpack_one(fmt, *debug_strs))
    return value_cls(*ins.unpack(fmt, *debug_strs))

def write_fixed_struct(out, value):
    """Write a value created by read_fixed_struct (or built by hand from one
    of the classes above)."""
    value_cls = type(value)
    if value_cls is Guid:
        out.write_guid(value)
    elif value_cls is Box:
        out.pack(_box_fmt, *value.min, *value.max, value.is_valid)
    elif value_cls in (DateTime, Timespan):
        out.pack(_fixed_structs[_struct_names[value_cls]][1], value)
    else:
        try:
            fmt = _fixed_structs[_struct_names[value_cls]][1]
        except KeyError:
            raise StateError(f'{value_cls.__name__} is not a fixed layout '
                             f'struct value') from None
        out.pack(fmt, *value)

def make_fixed_struct(struct_type, fields):
    """Build a fixed layout value from a plain sequence of fields, e.g. when
    loading one from JSON."""
    if struct_type == 'Guid':
        return Guid.from_hex(fields)
    if struct_type == 'Box':
        return Box(Vector(*fields[0]), Vector(*fields[1]), bool(fields[2]))
    value_cls = _fixed_structs[struct_type][0]
    if value_cls in (DateTime, Timespan):
        return value_cls(fields)
    return value_cls(*fields)
