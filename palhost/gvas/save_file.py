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
"""GVAS documents: the header, the root property list and the trailer, plus
reading and writing whole .sav files (envelope included)."""
from __future__ import annotations

import os

from .. import bolt
from ..bolt import struct_error
from ..exception import CorruptSave, IoFailure, SaveError
from ..initialization import get_list_setting
from .archive import Guid, GvasReader, GvasWriter
from .compression import GVAS_MAGIC, SaveEnvelope, compress_sav, \
    decompress_sav
from .properties import PropertyList, read_properties, walk_values, \
    write_properties
from .rawdata import STRUCT_HOOKS
from .type_hints import get_type_hints

# What the game writes after the root property list
DEFAULT_TRAILER = b'\x00' * 4

class GvasHeader(object):
    """The GVAS file header. None of it is interpreted, it is only kept so
    that it can be written back unchanged. package_version_ue5 is None for
    save game versions below 3, which do not store it."""
    __slots__ = ('save_game_version', 'package_version_ue4',
                 'package_version_ue5', 'engine_major', 'engine_minor',
                 'engine_patch', 'engine_changelist', 'engine_branch',
                 'custom_version_format', 'custom_versions',
                 'save_class_name')

    def __init__(self, *, save_game_version=3, package_version_ue4=522,
                 package_version_ue5=1008, engine_major=5, engine_minor=1,
                 engine_patch=1, engine_changelist=0,
                 engine_branch='++UE5+Release-5.1', custom_version_format=3,
                 custom_versions=None, save_class_name=''):
        self.save_game_version = save_game_version
        self.package_version_ue4 = package_version_ue4
        self.package_version_ue5 = package_version_ue5
        self.engine_major = engine_major
        self.engine_minor = engine_minor
        self.engine_patch = engine_patch
        self.engine_changelist = engine_changelist
        self.engine_branch = engine_branch
        self.custom_version_format = custom_version_format
        # list of (Guid, version) tuples
        self.custom_versions = custom_versions or []
        self.save_class_name = save_class_name

    @classmethod
    def load_header(cls, ins: GvasReader):
        magic = ins.read(4, 'header')
        if magic != GVAS_MAGIC:
            raise CorruptSave(ins.in_name, f'Bad GVAS magic {magic!r}')
        save_game_version, package_version_ue4 = ins.unpack('<2i', 'header')
        package_version_ue5 = ins.read_int32('header') if \
            save_game_version >= 3 else None
        engine_major, engine_minor, engine_patch, engine_changelist = \
            ins.unpack('<3HI', 'header')
        engine_branch = ins.read_fstring('header')
        custom_version_format = ins.read_int32('header')
        custom_versions = [
            (ins.read_guid('header'), ins.read_int32('header'))
            for _x in range(ins.read_uint32('header'))]
        save_class_name = ins.read_fstring('header')
        return cls(save_game_version=save_game_version,
            package_version_ue4=package_version_ue4,
            package_version_ue5=package_version_ue5,
            engine_major=engine_major, engine_minor=engine_minor,
            engine_patch=engine_patch, engine_changelist=engine_changelist,
            engine_branch=engine_branch,
            custom_version_format=custom_version_format,
            custom_versions=custom_versions, save_class_name=save_class_name)

    def dump_header(self, out: GvasWriter):
        out.write(GVAS_MAGIC)
        out.pack('<2i', self.save_game_version, self.package_version_ue4)
        if self.save_game_version >= 3:
            out.write_int32(self.package_version_ue5)
        out.pack('<3HI', self.engine_major, self.engine_minor,
                 self.engine_patch, self.engine_changelist)
        out.write_fstring(self.engine_branch)
        out.write_int32(self.custom_version_format)
        out.write_uint32(len(self.custom_versions))
        for cv_guid, cv_version in self.custom_versions:
            out.write_guid(cv_guid)
            out.write_int32(cv_version)
        out.write_fstring(self.save_class_name)

    def __repr__(self):
        return f'GvasHeader({self.save_class_name!r}, ' \
               f'v{self.save_game_version})'

class SaveDocument(object):
    """A parsed GVAS file. properties is the root property list, trailer
    the bytes following its terminator."""
    __slots__ = ('header', 'properties', 'trailer', 'in_name')

    def __init__(self, header: GvasHeader, properties: PropertyList,
                 trailer=DEFAULT_TRAILER, in_name=''):
        self.header = header
        self.properties = properties
        self.trailer = trailer
        self.in_name = in_name

    @classmethod
    def parse(cls, data: bytes, in_name='', *, type_hints=None,
              opaque_paths=None, decode_raw_data=True):
        """Parse raw (decompressed) GVAS bytes. type_hints and opaque_paths
        default to the configured ones. Raises a SaveError subclass if data
        can't be parsed in full."""
        if type_hints is None:
            type_hints = get_type_hints()
        if opaque_paths is None:
            opaque_paths = get_list_setting('OpaquePaths')
        ins = GvasReader(in_name, data, type_hints=type_hints,
                         opaque_paths=opaque_paths,
                         struct_hooks=(STRUCT_HOOKS if decode_raw_data
                                       else None))
        header = GvasHeader.load_header(ins)
        properties = read_properties(ins)
        return cls(header, properties, ins.read_rest(), in_name)

    def serialize(self) -> bytes:
        """Dump this document back to raw GVAS bytes."""
        out = GvasWriter()
        try:
            self.header.dump_header(out)
            write_properties(out, self.properties)
        except (struct_error, UnicodeError) as e:
            raise SaveError(self.in_name, f'Could not serialize: {e}') from e
        out.write(self.trailer)
        return out.getvalue()

    def iter_guids(self):
        """Yield every Guid value in the document, in file order."""
        found = []
        def _collect(leaf):
            if isinstance(leaf, Guid):
                found.append(leaf)
            return leaf
        walk_values(self.properties, _collect)
        yield from found

    def __repr__(self):
        return f'SaveDocument({self.in_name!r}, {len(self.properties)} ' \
               f'properties)'

#------------------------------------------------------------------------------
# Files
def read_sav_bytes(sav_path) -> bytes:
    try:
        with open(sav_path, 'rb') as ins:
            return ins.read()
    except OSError as e:
        raise IoFailure(sav_path, f'Could not read save: {e}') from e

def read_sav(sav_path, **parse_kwargs) -> tuple[SaveDocument, SaveEnvelope]:
    """Read, decompress and parse the .sav file at sav_path. Returns the
    document and the envelope to pass to write_sav."""
    in_name = os.fspath(sav_path)
    raw, envelope = decompress_sav(read_sav_bytes(sav_path), in_name)
    return SaveDocument.parse(raw, in_name, **parse_kwargs), envelope

def encode_sav(document: SaveDocument, envelope: SaveEnvelope) -> bytes:
    """Serialize and compress document, i.e. produce the bytes write_sav
    would write."""
    return compress_sav(document.serialize(), envelope, document.in_name)

def write_sav_bytes(sav_path, data: bytes):
    """Atomically replace sav_path with data: it is written to a temporary
    file next to sav_path first, which then replaces it."""
    try:
        bolt.write_file_atomic(sav_path, data)
    except OSError as e:
        raise IoFailure(sav_path, f'Could not write save: {e}') from e

def write_sav(sav_path, document: SaveDocument, envelope: SaveEnvelope):
    write_sav_bytes(sav_path, encode_sav(document, envelope))
