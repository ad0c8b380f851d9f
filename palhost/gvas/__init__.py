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
"""This package houses the GVAS save codec: compression envelopes, the
property model and its reader/writer, Palworld's raw data blobs and the JSON
intermediate representation. Code outside the package should import from
here, so that classes may be moved around between its modules."""

from .archive import FString, Guid, GvasReader, GvasWriter, ZERO_GUID, \
    is_default_stored
from .compression import PLM_ENVELOPE, PLZ_ENVELOPE, UNCOMPRESSED, \
    SaveEnvelope, compress_sav, decompress_sav
from .properties import PROPERTY_TYPES, AProperty, ARawData, ArrayProperty, \
    ArrayStructTag, BoolProperty, ByteProperty, DoubleProperty, \
    EnumProperty, FixedPoint64Property, FloatProperty, Int64Property, \
    IntProperty, MapEntry, MapProperty, NameProperty, ObjectProperty, \
    PropertyList, RawPayload, SetProperty, SoftObjectProperty, \
    StrProperty, StructProperty, TextProperty, UInt16Property, \
    UInt32Property, UInt64Property, read_properties, walk_values, \
    write_properties
from .rawdata import CharacterHandle, CharacterRawData, GroupRawData, \
    GuildPlayer, GuildRawData, IndependentGuildRawData, OrganizationRawData
from .save_file import GvasHeader, SaveDocument, encode_sav, read_sav, \
    write_sav
from .struct_values import Box, Color, DateTime, IntPoint, IntVector, \
    LinearColor, Plane, Quat, Rotator, Timespan, Vector, Vector2D, Vector4
