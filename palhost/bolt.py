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
"""Low level helpers shared by all of Palhost: guessing the encoding of narrow
strings, JSON-backed dataclasses, atomic file writes, cached structs, debug
printing and progress reporting."""
from __future__ import annotations

import errno
import os
import shutil
import stat
import struct
import sys
import traceback as _traceback
from typing import Self

import chardet

from . import exception
from .temp_files import TempFile

struct_error = struct.error

# Unicode ---------------------------------------------------------------------
# Narrow FStrings do not record their code page, so decoder has to guess.
# Wide FStrings are always UTF-16LE and never go through here.
encodingOrder = (
    'ascii',
    'utf8',
    'cp1252',   # Western European
    'gbk',      # Simplified Chinese
    'cp932',    # Japanese
    'cp949',    # Korean
    'latin-1',  # decodes anything
)

# chardet names some encodings after a subset of the codec we want to use
_encodingSwap = {
    'GB2312': 'gbk',
    'SHIFT_JIS': 'cp932',
    'windows-1252': 'cp1252',
    'windows-1251': 'cp1251',
    'utf-8': 'utf8',
    'ascii': 'ascii',
}

# Reported by chardet, but unknown to Python's codecs
_blocked_encodings = {'EUC-TW'}

def getbestencoding(bitstream):
    """Ask chardet for the encoding of bitstream. Returns an (encoding,
    confidence) tuple, with our preferred name for the encoding."""
    if not bitstream:
        # chardet gives None for empty input
        return 'utf8', 1.0
    guess = chardet.detect(bitstream)
    return _encodingSwap.get(guess['encoding'], guess['encoding']), \
        guess['confidence']

def decoder(byte_str, encoding=None, returnEncoding=False):
    """Decode byte_str, trying encoding first, then chardet's guess, then
    every encoding in encodingOrder. With returnEncoding, a (text, encoding)
    tuple is returned. Strings and None are passed through unchanged."""
    if isinstance(byte_str, str) or byte_str is None:
        return (byte_str, None) if returnEncoding else byte_str
    candidates = [encoding] if encoding else []
    guessed, confidence = getbestencoding(byte_str)
    if guessed and confidence >= 0.55 and guessed not in _blocked_encodings:
        candidates.append(guessed)
    candidates.extend(encodingOrder)
    for candidate in candidates:
        try:
            text = str(byte_str, candidate)
        except (UnicodeDecodeError, LookupError):
            continue
        return (text, candidate) if returnEncoding else text
    raise UnicodeDecodeError('unknown', bytes(byte_str), 0, len(byte_str),
                             'No known encoding could decode this text')

def encode(text_str, encodings=encodingOrder, firstEncoding=None,
           returnEncoding=False):
    """Encode text_str with the first of firstEncoding and encodings that can
    represent it. With returnEncoding, a (bytes, encoding) tuple is
    returned. Bytes and None are passed through unchanged."""
    if isinstance(text_str, bytes) or text_str is None:
        return (text_str, None) if returnEncoding else text_str
    candidates = ((firstEncoding,) if firstEncoding else ()) + tuple(
        encodings)
    for candidate in candidates:
        try:
            encoded = text_str.encode(candidate)
        except UnicodeEncodeError:
            continue
        return (encoded, candidate) if returnEncoding else encoded
    raise UnicodeEncodeError('unknown', text_str, 0, len(text_str),
        f'None of {candidates} can encode this text')

# JSON parsing ----------------------------------------------------------------
class JsonParsable:
    """Mixin for dataclasses stored as JSON objects: one key per annotated
    attribute, skipping private ones. Keys missing from the JSON keep the
    dataclass default."""
    __slots__ = ()

    @classmethod
    def _json_attrs(cls):
        return [a for a in cls.__annotations__ if not a.startswith('_')]

    @classmethod
    def parse_single(cls, json_dict: dict | None) -> Self | None:
        if json_dict is None:
            return None
        return cls(**{a: json_dict[a] for a in cls._json_attrs()
                      if a in json_dict})

    def dump_single(self) -> dict:
        return {a: getattr(self, a) for a in self._json_attrs()}

# Files -----------------------------------------------------------------------
def clear_read_only(file_path):
    """Make file_path writable for its owner. Missing files are ignored."""
    try:
        os.chmod(file_path, stat.S_IWUSR | stat.S_IRUSR | os.stat(
            file_path).st_mode)
    except FileNotFoundError:
        pass

def replace_with_temp(target_path, temp_path):
    """Move temp_path (made via temp_files) over target_path. The temp file
    stays registered, TempFile's cleanup copes with it being gone."""
    try:
        os.replace(temp_path, target_path)
    except PermissionError:
        clear_read_only(target_path)
        os.replace(temp_path, target_path)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        # Different filesystems, fall back to a copying move
        shutil.move(temp_path, target_path)

def write_synced(file_path, data: bytes):
    """Write data to file_path and fsync it."""
    with open(file_path, 'wb') as out:
        out.write(data)
        out.flush()
        os.fsync(out.fileno())

def write_file_atomic(target_path, data: bytes):
    """Write data to a temp file next to target_path, then replace
    target_path with it. target_path is untouched if anything fails."""
    target_dir = os.path.dirname(os.path.abspath(target_path))
    with TempFile(temp_prefix=os.path.basename(target_path),
                  base_dir=target_dir) as tmp_path:
        write_synced(tmp_path, data)
        replace_with_temp(target_path, tmp_path)

# Structure wrappers ----------------------------------------------------------
class _StructsCache(dict):
    """Format string -> compiled struct.Struct, filled on first use."""
    __slots__ = ()
    def __missing__(self, key):
        return self.setdefault(key, struct.Struct(key))

structs_cache = _StructsCache()

# Logging ---------------------------------------------------------------------
_USER_DIR = os.path.expanduser('~')
_CENSORED_DIR = os.path.join(os.path.split(_USER_DIR)[0], '*****')

def deprint(*args, traceback=False, trace=True, frame=1):
    """Debug print. args are joined by spaces.

    trace: prefix the message with the calling file, line and function.
    traceback: print to stderr and append the traceback of the exception
      being handled.
    frame: how many frames up the caller named by trace sits."""
    if trace:
        # Warning: This may be CPython-only due to _getframe usage
        caller = sys._getframe(frame)
        caller_code = caller.f_code
        msg = f'{os.path.basename(caller_code.co_filename)} ' \
              f'{caller.f_lineno:4d} {caller_code.co_name}: '
    else:
        msg = ''
    msg += ' '.join(map(str, args))
    target_stream = sys.stdout
    if traceback:
        target_stream = sys.stderr
        msg += f'\n{_traceback.format_exc()}'
    # Save paths live under the home directory
    msg = msg.replace(_USER_DIR, _CENSORED_DIR)
    print(msg, flush=True, file=target_stream)

# Progress --------------------------------------------------------------------
class Progress(object):
    """Progress callable: call it with a state between 0 and full and an
    optional message. The last message sticks until a new one is given."""
    def __init__(self, full=1.0):
        self.full = 1.0
        self.setFull(full)
        self.message = ''
        self.state = 0

    def setFull(self, full):
        """Set the state that counts as done. Returns self."""
        if not full: raise exception.ArgumentError('Full must be non-zero!')
        self.full = 1.0 * full
        return self

    def __call__(self, state, message=''):
        if message: self.message = message
        self._do_progress(state / self.full, self.message)
        self.state = state

    def _do_progress(self, state, message):
        """Report state (a fraction of 1) and message. Does nothing here."""

class SubProgress(Progress):
    """Maps its own 0 to full range onto baseFrom to baseTo of parent."""
    def __init__(self, parent, baseFrom, baseTo, full=1.0):
        super().__init__(full)
        if baseFrom < 0 or baseFrom >= baseTo:
            raise exception.ArgumentError(
                'BaseFrom must be >= 0 and BaseTo must be > BaseFrom')
        self.parent = parent
        self.baseFrom = baseFrom
        self.scale = 1.0 * (baseTo - baseFrom)

    def __call__(self, state, message=''):
        self.parent(self.baseFrom + self.scale * state / self.full, message)
        self.state = state

class CallbackProgress(Progress):
    """Progress that forwards every (fraction, message) update to a plain
    callable, e.g. a UI event emitter. Errors raised by the callback are
    logged and dropped, progress reporting is fire-and-forget."""
    def __init__(self, callback, full=1.0):
        super().__init__(full)
        self._callback = callback

    def _do_progress(self, state, message):
        try:
            self._callback(state, message)
        except Exception:
            deprint(f'Progress callback failed at {state:.0%} ({message})',
                    traceback=True)

class LogProgress(Progress):
    """Progress that deprints each update."""
    def _do_progress(self, state, message):
        deprint(f'{state:4.0%} {message}', frame=3)
