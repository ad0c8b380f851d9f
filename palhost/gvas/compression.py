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
"""The compression envelopes wrapped around the GVAS data of a .sav file.
An envelope is a 12 byte header (uncompressed length, compressed length,
three byte magic and a save type byte) followed by the payload:
  - PlZ 0x32: zlib, compressed a second time with zlib
  - PlZ 0x31 and 0x30: zlib, single pass (older saves)
  - PlM 0x31: Oodle (see oodle.py)
  - CNK: a wrapper whose payload starts with one of the envelopes above
A buffer starting with GVAS has no envelope at all."""
from __future__ import annotations

import zlib
from dataclasses import dataclass

from .. import bass
from ..bolt import deprint, structs_cache
from ..exception import CorruptSave, SaveError, UnsupportedEnvelope
from .oodle import get_native_codec

_envelope_header = structs_cache['<II3sB']
_ENVELOPE_SIZE = _envelope_header.size

GVAS_MAGIC = b'GVAS'
PLZ_MAGIC = b'PlZ'
PLM_MAGIC = b'PlM'
CNK_MAGIC = b'CNK'
SAVE_TYPE_PLZ_DOUBLE = 0x32
SAVE_TYPE_PLZ_SINGLE = 0x31
SAVE_TYPE_PLZ_LEGACY = 0x30
SAVE_TYPE_PLM = 0x31

@dataclass(frozen=True, slots=True)
class SaveEnvelope:
    """How a save was wrapped. magic is GVAS_MAGIC for uncompressed saves.
    chunked records a CNK wrapper, which is not written back."""
    magic: bytes
    save_type: int = 0
    chunked: bool = False

    @property
    def compressed(self):
        return self.magic != GVAS_MAGIC

    def describe(self):
        if not self.compressed:
            return 'uncompressed'
        chunk_str = 'CNK/' if self.chunked else ''
        return f'{chunk_str}{self.magic.decode("ascii")} ' \
               f'0x{self.save_type:02X}'

UNCOMPRESSED = SaveEnvelope(GVAS_MAGIC)
PLZ_ENVELOPE = SaveEnvelope(PLZ_MAGIC, SAVE_TYPE_PLZ_DOUBLE)
PLM_ENVELOPE = SaveEnvelope(PLM_MAGIC, SAVE_TYPE_PLM)

def _inflate(in_name, data: bytes, expected_len, pass_desc) -> bytes:
    try:
        inflated = zlib.decompress(data)
    except zlib.error as e:
        raise CorruptSave(in_name, f'zlib {pass_desc} failed: {e!r}') from e
    if len(inflated) != expected_len:
        raise CorruptSave(in_name, f'zlib {pass_desc}: expected '
                                   f'{expected_len} bytes, but got '
                                   f'{len(inflated)}')
    return inflated

def decompress_sav(data: bytes, in_name=None) -> tuple[bytes, SaveEnvelope]:
    """Unwrap the envelope of a .sav file. Returns the raw GVAS bytes and the
    envelope needed to wrap them up again with compress_sav."""
    if data[:4] == GVAS_MAGIC:
        return bytes(data), UNCOMPRESSED
    if len(data) < _ENVELOPE_SIZE:
        raise CorruptSave(in_name, f'File is too short ({len(data)} bytes) '
                                   f'for a save')
    uncompressed_len, compressed_len, magic, save_type = \
        _envelope_header.unpack_from(data)
    payload_start = _ENVELOPE_SIZE
    chunked = magic == CNK_MAGIC
    if chunked:
        if len(data) < 2 * _ENVELOPE_SIZE:
            raise CorruptSave(in_name, 'CNK file is too short for its inner '
                                       'header')
        uncompressed_len, compressed_len, magic, save_type = \
            _envelope_header.unpack_from(data, _ENVELOPE_SIZE)
        payload_start += _ENVELOPE_SIZE
    payload = data[payload_start:]
    if magic == PLZ_MAGIC and save_type == SAVE_TYPE_PLZ_DOUBLE:
        first_pass = _inflate(in_name, payload, compressed_len, 'pass 1')
        raw = _inflate(in_name, first_pass, uncompressed_len, 'pass 2')
    elif magic == PLZ_MAGIC and save_type in (SAVE_TYPE_PLZ_SINGLE,
                                              SAVE_TYPE_PLZ_LEGACY):
        raw = _inflate(in_name, payload, uncompressed_len, 'decompression')
    elif magic == PLM_MAGIC and save_type == SAVE_TYPE_PLM:
        if compressed_len > len(payload):
            raise CorruptSave(in_name, f'Oodle payload is truncated: '
                                       f'expected {compressed_len} bytes, '
                                       f'but got {len(payload)}')
        raw = get_native_codec().decompress(payload[:compressed_len],
                                            uncompressed_len)
        if len(raw) != uncompressed_len:
            raise CorruptSave(in_name, f'Oodle decompression: expected '
                                       f'{uncompressed_len} bytes, but got '
                                       f'{len(raw)}')
    else:
        raise UnsupportedEnvelope(in_name, magic, save_type)
    return raw, SaveEnvelope(magic, save_type, chunked)

def compress_sav(raw: bytes, envelope: SaveEnvelope, in_name=None) -> bytes:
    """Wrap raw GVAS bytes in envelope. A CNK wrapper is dropped. If Oodle
    cannot compress on this system, the save is written as double zlib
    instead, which the game reads just as well."""
    if not envelope.compressed:
        return bytes(raw)
    if envelope.magic == PLM_MAGIC:
        codec = get_native_codec()
        if codec.can_compress():
            compressed = codec.compress(raw)
            return _envelope_header.pack(len(raw), len(compressed),
                                         PLM_MAGIC, SAVE_TYPE_PLM) + compressed
        deprint(f'{in_name}: Oodle compression is not available, writing a '
                f'double zlib (PlZ) save instead')
        envelope = PLZ_ENVELOPE
    if envelope.magic != PLZ_MAGIC or envelope.save_type not in (
            SAVE_TYPE_PLZ_DOUBLE, SAVE_TYPE_PLZ_SINGLE, SAVE_TYPE_PLZ_LEGACY):
        raise UnsupportedEnvelope(in_name, envelope.magic, envelope.save_type)
    zlib_level = bass.inisettings['ZlibLevel']
    try:
        compressed = zlib.compress(raw, zlib_level)
        inner_len = len(compressed)
        if envelope.save_type == SAVE_TYPE_PLZ_DOUBLE:
            compressed = zlib.compress(compressed, zlib_level)
    except zlib.error as e:
        raise SaveError(in_name, f'zlib compression failed: {e!r}') from e
    return _envelope_header.pack(len(raw), inner_len, PLZ_MAGIC,
                                 envelope.save_type) + compressed
