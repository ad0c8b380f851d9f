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
"""Binding to the Oodle compression library that ships with the game (and
with many other Unreal Engine games). Oodle is proprietary, so it is never
bundled: we look for it in the places configured in palhost.ini and fail
with NativeCodecFailure if it can't be found or loaded.

The rest of Palhost only talks to the process-wide codec returned by
get_native_codec. Anything with the same decompress/compress/can_compress
methods can be swapped in via set_native_codec, e.g. by tests."""
from __future__ import annotations

import ctypes
import os
import threading

from .. import bass
from ..bolt import deprint
from ..exception import NativeCodecFailure
from ..initialization import get_list_setting

# Newest first
OODLE_LIBRARY_NAMES = (
    'oo2core_9_win64.dll',
    'oo2core_8_win64.dll',
    'oo2core_7_win64.dll',
    'oo2core_6_win64.dll',
    'oo2core_5_win64.dll',
    'oo2core_win64.dll',
    'liboo2corelinux64.so.9',
)
# OodleLZ_Compressor / OodleLZ_CompressionLevel values used by the game
_COMPRESSOR_MERMAID = 9
_LEVEL_NORMAL = 4

def find_oodle_library() -> str | None:
    """Return the path of the Oodle library to use: sOodleLibrary if set,
    else the first well known library name found in sOodleSearchDirs, the
    app directory or the working directory."""
    if lib_path := bass.get_path_from_ini('OodleLibrary'):
        return lib_path
    search_dirs = get_list_setting('OodleSearchDirs')
    if app_dir := bass.dirs.get('app'):
        search_dirs.append(app_dir)
    search_dirs.append(os.getcwd())
    for search_dir in search_dirs:
        for lib_name in OODLE_LIBRARY_NAMES:
            candidate = os.path.join(search_dir, lib_name)
            if os.path.isfile(candidate):
                return candidate
    return None

class OodleCodec(object):
    """Lazily loaded Oodle library. Loading happens on first use (or an
    explicit call to load) and can be undone with unload."""

    def __init__(self, library_path=None):
        self.library_path = library_path
        self._lib = None
        self._decompress = None
        self._compress = None
        self._compressed_size_needed = None
        self._load_lock = threading.Lock()

    @property
    def loaded(self):
        return self._lib is not None

    def load(self):
        """Load the library and look up its entry points. Raises
        NativeCodecFailure if that is not possible."""
        with self._load_lock:
            if self._lib is not None:
                return
            lib_path = self.library_path or find_oodle_library()
            if not lib_path:
                raise NativeCodecFailure(
                    f'Oodle library not found. Copy one of '
                    f'{", ".join(OODLE_LIBRARY_NAMES)} from the game folder '
                    f'or set sOodleLibrary in palhost.ini.')
            try:
                lib = ctypes.CDLL(lib_path)
            except OSError as e:
                raise NativeCodecFailure(
                    f'Could not load Oodle library {lib_path}: {e}') from e
            try:
                decompress = lib.OodleLZ_Decompress
            except AttributeError as e:
                raise NativeCodecFailure(
                    f'{lib_path} is not an Oodle library: {e}') from e
            decompress.restype = ctypes.c_int64
            decompress.argtypes = [
                ctypes.c_void_p, ctypes.c_size_t, # compressed buf, size
                ctypes.c_void_p, ctypes.c_size_t, # output buf, size
                # fuzz safe, crc, verbosity
                ctypes.c_int, ctypes.c_int, ctypes.c_int,
                ctypes.c_void_p, ctypes.c_size_t, # decoder buf base, size
                ctypes.c_void_p, ctypes.c_void_p, # callbacks
                ctypes.c_void_p, ctypes.c_size_t, # decoder memory
                ctypes.c_int, # thread phase
            ]
            # Some redistributed builds are decode-only
            compress = getattr(lib, 'OodleLZ_Compress', None)
            size_needed = getattr(lib, 'OodleLZ_GetCompressedBufferSizeNeeded',
                                  None)
            if compress is not None and size_needed is not None:
                compress.restype = ctypes.c_ssize_t
                compress.argtypes = [
                    ctypes.c_int, # compressor
                    ctypes.c_void_p, ctypes.c_ssize_t, # raw buf, size
                    ctypes.c_void_p, # output buf
                    ctypes.c_int, # level
                    # options, dictionary, lrm
                    ctypes.c_void_p, ctypes.c_void_p, ctypes.c_void_p,
                    ctypes.c_void_p, ctypes.c_ssize_t, # scratch memory
                ]
                size_needed.restype = ctypes.c_ssize_t
                size_needed.argtypes = [ctypes.c_int, ctypes.c_ssize_t]
            else:
                compress = size_needed = None
            self._lib = lib
            self.library_path = lib_path
            self._decompress = decompress
            self._compress = compress
            self._compressed_size_needed = size_needed
            deprint(f'Loaded Oodle library {lib_path}')

    def unload(self):
        """Drop our references to the library."""
        with self._load_lock:
            self._lib = self._decompress = self._compress = None
            self._compressed_size_needed = None

    def can_compress(self) -> bool:
        """Return True if the library is available and able to compress."""
        try:
            self.load()
        except NativeCodecFailure as e:
            deprint(f'Oodle compression unavailable: {e}')
            return False
        return self._compress is not None

    def decompress(self, data: bytes, expected_len: int) -> bytes:
        self.load()
        out_buf = ctypes.create_string_buffer(expected_len)
        result = self._decompress(data, len(data), out_buf, expected_len,
                                  1, 0, 0, None, 0, None, None, None, 0, 0)
        if result <= 0:
            raise NativeCodecFailure(f'OodleLZ_Decompress failed (returned '
                                     f'{result})')
        return out_buf.raw[:result]

    def compress(self, data: bytes) -> bytes:
        self.load()
        if self._compress is None:
            raise NativeCodecFailure(f'{self.library_path} cannot compress')
        out_len = self._compressed_size_needed(_COMPRESSOR_MERMAID, len(data))
        out_buf = ctypes.create_string_buffer(out_len)
        result = self._compress(_COMPRESSOR_MERMAID, data, len(data), out_buf,
                                _LEVEL_NORMAL, None, None, None, None, 0)
        if result <= 0:
            raise NativeCodecFailure(f'OodleLZ_Compress failed (returned '
                                     f'{result})')
        return out_buf.raw[:result]

    def __repr__(self):
        return f'OodleCodec({self.library_path!r})'

#------------------------------------------------------------------------------
# Process-wide codec
_native_codec = None
_codec_lock = threading.Lock()

def get_native_codec():
    """Return the process-wide codec, creating a default OodleCodec on first
    use."""
    global _native_codec
    with _codec_lock:
        if _native_codec is None:
            _native_codec = OodleCodec()
        return _native_codec

def set_native_codec(codec):
    """Replace the process-wide codec. Pass None to go back to a default
    OodleCodec. Returns the previous codec."""
    global _native_codec
    with _codec_lock:
        previous, _native_codec = _native_codec, codec
    return previous
