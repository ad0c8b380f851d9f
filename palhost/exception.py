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
"""This module contains all custom exceptions for Palhost."""

# NO LOCAL IMPORTS! This has to be importable from any module/package.

class BoltError(Exception):
    """Generic error with a string message."""
    def __init__(self, message):
        super().__init__(message)
        self.message = message
    def __str__(self):
        return self.message

# Code errors -----------------------------------------------------------------
class ArgumentError(BoltError):
    """Coding Error: Argument out of allowed range of values."""
    def __init__(self, message='Argument is out of allowed ranged of values.'):
        super().__init__(message)

class StateError(BoltError):
    """Error: Object is corrupted."""
    def __init__(self, message='Object is in a bad state.'):
        super().__init__(message)

# File exceptions -------------------------------------------------------------
class FileError(BoltError):
    """An error that occurred while handling a file."""
    def __init__(self, in_name, message):
        super().__init__(message)
        self._in_name = (in_name and '%s' % in_name) or 'Unknown File'

    def __str__(self):
        return f'{self._in_name}: {self.message}'

    @property
    def in_name(self) -> str:
        return self._in_name

class IoFailure(FileError):
    """A save file or one of its companions is missing, unreadable or
    unwritable."""

# Save errors -----------------------------------------------------------------
class SaveError(FileError):
    """Save Error: the save file contents could not be handled."""

class UnsupportedEnvelope(SaveError):
    """The compression envelope of a save file has an unknown signature."""
    def __init__(self, in_name, magic: bytes, save_type: int):
        super().__init__(in_name, f'Unsupported compression envelope '
                                  f'{magic!r} (save type 0x{save_type:02X})')
        self.magic = magic
        self.save_type = save_type

class CorruptSave(SaveError):
    """Save Error: bad magic, truncated data or inconsistent sizes."""

class SaveReadError(CorruptSave):
    """Save Error: Attempt to read outside of buffer."""
    def __init__(self, in_name, debug_str, try_pos, max_pos):
        if try_pos < 0:
            message = f'{debug_str}: Attempted to read before ({try_pos}) ' \
                      f'beginning of file/buffer.'
        else:
            message = f'{debug_str}: Attempted to read past ({try_pos}) end ' \
                      f'({max_pos}) of file/buffer.'
        super().__init__(in_name, message)
        self.try_pos = try_pos
        self.max_pos = max_pos

class SaveSizeError(CorruptSave):
    """Save Error: a value did not consume exactly its declared size."""
    def __init__(self, in_name, debug_str, expected_size, actual_size):
        super().__init__(in_name, f'{debug_str}: Expected size '
                                  f'{expected_size}, but got {actual_size}')
        self.expected_size = expected_size
        self.actual_size = actual_size

class UnsupportedPropertyType(SaveError):
    """A property carried a type tag we do not know how to decode."""
    def __init__(self, in_name, debug_str, type_name):
        super().__init__(in_name, f'{debug_str}: Unsupported property type '
                                  f'{type_name!r}')
        self.type_name = type_name

# Identity exceptions ---------------------------------------------------------
class IdentifierNotFound(BoltError):
    """A swap, patch or rename target does not occur where it should."""
    def __init__(self, identifier, where='document'):
        super().__init__(f'Identifier {identifier} not found in {where}.')
        self.identifier = identifier

class InvalidPermutation(BoltError):
    """The desired player order is not a permutation of the current one."""

# Native library exceptions ---------------------------------------------------
class NativeCodecFailure(BoltError):
    """The native compression library is unavailable or reported an
    error."""
