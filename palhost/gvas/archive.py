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
"""Low level reading and writing of GVAS data: the bounds-checked reader and
the writer every property codec goes through, plus the two primitive value
types that need more than a struct format to survive a round trip, Guid and
FString."""
from __future__ import annotations

import io
import re

from ..bolt import decoder, encode, structs_cache
from ..exception import ArgumentError, CorruptSave, SaveReadError

#------------------------------------------------------------------------------
# Primitive values
_guid_words = structs_cache['<4I']
_hex_guid_re = re.compile(r'^[0-9a-f]{32}$')

class Guid(object):
    """An Unreal FGuid: 16 raw bytes, stored as four little endian uint32
    words. The hex form prints those words big endian, which is what the
    game uses for player file names."""
    __slots__ = ('raw',)

    def __init__(self, raw: bytes):
        if len(raw) != 16:
            raise ArgumentError(f'A Guid needs 16 bytes, got {len(raw)}')
        self.raw = bytes(raw)

    @classmethod
    def from_hex(cls, hex_str: str):
        """Parse a Guid from its hex form, with or without dashes and in
        any case."""
        plain = hex_str.replace('-', '').strip().lower()
        if not _hex_guid_re.match(plain):
            raise ArgumentError(f'Not a valid Guid: {hex_str!r}')
        return cls(_guid_words.pack(*(int(plain[i:i + 8], 16)
                                      for i in range(0, 32, 8))))

    @property
    def hex(self) -> str:
        return '%08x%08x%08x%08x' % _guid_words.unpack(self.raw)

    def is_zero(self):
        return self.raw == ZERO_GUID.raw

    def __str__(self):
        h = self.hex
        return f'{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:]}'

    def __repr__(self):
        return f'Guid({self})'

    def __eq__(self, other):
        if isinstance(other, Guid):
            return self.raw == other.raw
        return NotImplemented

    def __hash__(self):
        return hash(self.raw)

ZERO_GUID = Guid(b'\x00' * 16)

class FString(str):
    """A str that remembers how it was stored in the file. Only created by
    the reader for strings that the default rule (see GvasWriter.write_fstring)
    would not write back byte for byte, e.g. narrow non-ASCII strings, ASCII
    strings stored wide or strings without a terminator."""

    def __new__(cls, text='', *, wide=False, encoding=None, terminated=True):
        inst = super().__new__(cls, text)
        inst.wide = wide
        inst.encoding = encoding
        inst.terminated = terminated
        return inst

    def encoded(self) -> bytes:
        """The stored bytes of this string, terminator included."""
        if self.wide:
            data = self.encode('utf-16-le', 'surrogatepass')
            return data + b'\x00\x00' if self.terminated else data
        data = encode(str(self), firstEncoding=self.encoding)
        return data + b'\x00' if self.terminated else data

    def __repr__(self):
        return (f'FString({str.__repr__(self)}, wide={self.wide}, '
                f'encoding={self.encoding!r}, terminated={self.terminated})')

    def __reduce__(self):
        return (_make_fstring,
                (str(self), self.wide, self.encoding, self.terminated))

def _make_fstring(text, wide, encoding, terminated):
    return FString(text, wide=wide, encoding=encoding, terminated=terminated)

def is_default_stored(text: str) -> bool:
    """Return True if text would be written back exactly as stored by the
    default rule, i.e. it does not need to be kept as an FString."""
    if not isinstance(text, FString):
        return True
    if not text:
        return not text.terminated
    return text.terminated and text.wide != text.isascii()

#------------------------------------------------------------------------------
# Reader
class GvasReader(object):
    """Wrapper around a decompressed GVAS buffer in read mode. Every read is
    bounds-checked and raises a SaveReadError naming the attempted and
    maximum position instead of returning short data.

    The reader also carries the settings that decide how properties are
    decoded, so that nested readers (see sub_reader) share them:
      - type_hints: path -> struct type for map keys/values and set
        elements, which the file does not record.
      - opaque_paths: paths of properties kept as raw payload bytes.
      - struct_hooks: path -> callable(reader, path, property_list), run
        after a generic struct at that path has been read."""

    def __init__(self, in_name, data: bytes, *, type_hints=None,
                 opaque_paths=frozenset(), struct_hooks=None):
        self.in_name = in_name
        self.ins = io.BytesIO(data)
        self.size = len(data)
        self.type_hints = type_hints or {}
        self.opaque_paths = frozenset(opaque_paths)
        self.struct_hooks = struct_hooks or {}

    def sub_reader(self, data: bytes):
        """Create a reader over a nested blob, sharing our settings."""
        return GvasReader(self.in_name, data, type_hints=self.type_hints,
            opaque_paths=self.opaque_paths, struct_hooks=self.struct_hooks)

    #--I/O Stream -----------------------------------------
    def tell(self):
        return self.ins.tell()

    def remaining(self):
        return self.size - self.ins.tell()

    def at_end(self):
        return self.ins.tell() == self.size

    def read(self, size, *debug_strs) -> bytes:
        """Read exactly size bytes."""
        end_pos = self.ins.tell() + size
        if size < 0 or end_pos > self.size:
            raise SaveReadError(self.in_name, self._debug(debug_strs),
                                end_pos, self.size)
        return self.ins.read(size)

    def read_rest(self) -> bytes:
        return self.ins.read()

    def unpack(self, fmt, *debug_strs) -> tuple:
        """Read and unpack according to the struct format fmt."""
        fmt_struct = structs_cache[fmt]
        return fmt_struct.unpack(self.read(fmt_struct.size, *debug_strs))

    def unpack_one(self, fmt, *debug_strs):
        return self.unpack(fmt, *debug_strs)[0]

    def read_int32(self, *debug_strs) -> int:
        return self.unpack_one('<i', *debug_strs)

    def read_uint32(self, *debug_strs) -> int:
        return self.unpack_one('<I', *debug_strs)

    def read_byte(self, *debug_strs) -> int:
        return self.unpack_one('<B', *debug_strs)

    def read_guid(self, *debug_strs) -> Guid:
        return Guid(self.read(16, *debug_strs))

    def read_optional_guid(self, *debug_strs) -> Guid | None:
        """Read the flag byte preceding every property payload and the Guid
        it announces, if any."""
        flag = self.read_byte(*debug_strs)
        if flag == 0:
            return None
        if flag != 1:
            raise CorruptSave(self.in_name, f'{self._debug(debug_strs)}: '
                                            f'Invalid property Guid flag '
                                            f'{flag}')
        return self.read_guid(*debug_strs)

    def read_fstring(self, *debug_strs) -> str:
        """Read a length-prefixed string. Returns a plain str when the
        default rule reproduces the stored bytes, an FString otherwise."""
        str_len = self.read_int32(*debug_strs)
        if str_len == 0:
            return ''
        if str_len < 0:
            data = self.read(-2 * str_len, *debug_strs)
            terminated = data[-2:] == b'\x00\x00'
            if terminated: data = data[:-2]
            text = data.decode('utf-16-le', 'surrogatepass')
            if terminated and text and not text.isascii():
                return text
            return FString(text, wide=True, terminated=terminated)
        data = self.read(str_len, *debug_strs)
        terminated = data[-1:] == b'\x00'
        if terminated: data = data[:-1]
        if data.isascii():
            text = data.decode('ascii')
            if terminated and text:
                return text
            return FString(text, encoding='ascii', terminated=terminated)
        # The engine writes these with the system codepage, guess it
        text, encoding = decoder(data, returnEncoding=True)
        if text.encode(encoding) != data:
            text, encoding = data.decode('latin-1'), 'latin-1'
        return FString(text, encoding=encoding, terminated=terminated)

    #--Settings -------------------------------------------
    def type_hint(self, path, default):
        return self.type_hints.get(path, default)

    def is_opaque(self, path):
        return path in self.opaque_paths

    def run_struct_hooks(self, path, props):
        if (hook := self.struct_hooks.get(path)) is not None:
            hook(self, path, props)

    def _debug(self, debug_strs):
        return '.'.join(map(str, debug_strs)) or f'offset {self.tell()}'

    def __repr__(self):
        return f'{type(self).__name__}({self.in_name})'

#------------------------------------------------------------------------------
# Writer
class GvasWriter(object):
    """Wrapper around an in-memory output buffer. Sizes that precede the data
    they measure are written as placeholders and patched in afterwards."""

    def __init__(self):
        self.out = io.BytesIO()

    def tell(self):
        return self.out.tell()

    def getvalue(self) -> bytes:
        return self.out.getvalue()

    def write(self, data: bytes):
        self.out.write(data)

    def pack(self, fmt, *values):
        self.out.write(structs_cache[fmt].pack(*values))

    def write_int32(self, value: int):
        self.pack('<i', value)

    def write_uint32(self, value: int):
        self.pack('<I', value)

    def write_byte(self, value: int):
        self.pack('<B', value)

    def patch_int32(self, pos, value: int):
        """Overwrite the int32 at pos, e.g. a size placeholder."""
        with self.out.getbuffer() as buf:
            buf[pos:pos + 4] = structs_cache['<i'].pack(value)

    def write_guid(self, guid: Guid):
        self.out.write(guid.raw)

    def write_optional_guid(self, guid: Guid | None):
        if guid is None:
            self.write_byte(0)
        else:
            self.write_byte(1)
            self.write_guid(guid)

    def write_fstring(self, text: str):
        """Write a length-prefixed string. FStrings are written the way they
        were read. Plain strings follow the default rule: empty strings get a
        zero length, ASCII strings are narrow and anything else is UTF-16LE,
        both NUL-terminated."""
        if isinstance(text, FString):
            data, wide = text.encoded(), text.wide
        elif not text:
            data, wide = b'', False
        elif text.isascii():
            data, wide = text.encode('ascii') + b'\x00', False
        else:
            data, wide = text.encode('utf-16-le', 'surrogatepass') + \
                b'\x00\x00', True
        if not data:
            self.write_int32(0)
        else:
            self.write_int32(-(len(data) // 2) if wide else len(data))
            self.out.write(data)
