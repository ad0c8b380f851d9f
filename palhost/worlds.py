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
"""Operations on a world's save files: listing its players, making one of them
the host, swapping two players and reordering all of them.

A world is a directory holding Level.sav and a Players directory with one
<player id>.sav per player. Every read-modify-write cycle on a world holds that
world's lock for its whole duration, so two requests can never interleave
their writes. All new file contents are built in memory before the first file
is touched, and each file is replaced atomically via a temporary file next to
it. The submit_* variants run on a shared worker thread and return a
Future."""
from __future__ import annotations

import json
import os
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field

from . import bass
from .bolt import CallbackProgress, JsonParsable, Progress, SubProgress, \
    deprint, write_file_atomic
from .exception import ArgumentError, FileError, IdentifierNotFound, \
    IoFailure, NativeCodecFailure, StateError
from .gvas import Guid, SaveDocument, compress_sav, decompress_sav, read_sav
from .gvas.save_file import read_sav_bytes, write_sav_bytes
from .identity import patch_player_identity, swap_identifiers
from .players import HOST_ID, PlayerRecord, current_ticks, extract_players
from .swap_plan import plan_swaps

LEVEL_SAV = 'Level.sav'
PLAYERS_DIR = 'Players'
WORLD_CONFIG_FILE = 'host_switcher.json'
# The game names player saves after the undashed hex form of their id
_player_sav_re = re.compile(r'^([0-9a-f]{32})\.sav$', re.I)

def normalize_id(player_id: str) -> str:
    """Return the 32 digit lowercase hex form of player_id, which may be
    dashed or in any case. Raises ArgumentError if it is no player id."""
    return Guid.from_hex(player_id).hex

#------------------------------------------------------------------------------
# Per world configuration
@dataclass
class WorldConfig(JsonParsable):
    """Stored as Players/host_switcher.json, so it travels with the world.
    display_names maps player ids to names chosen by the user,
    original_ids maps player ids to the id the data in that slot was
    created under. Swaps exchange the entries of both, so that they follow
    the data."""
    display_names: dict[str, str] = field(default_factory=dict)
    original_ids: dict[str, str] = field(default_factory=dict)

    def original_id(self, player_id):
        return self.original_ids.get(player_id, player_id)

    def swap_slots(self, id_a, id_b):
        orig_a, orig_b = self.original_id(id_a), self.original_id(id_b)
        self.original_ids[id_a], self.original_ids[id_b] = orig_b, orig_a
        # Drop entries that point back at their own slot
        for p_id in (id_a, id_b):
            if self.original_ids[p_id] == p_id:
                del self.original_ids[p_id]
        name_a = self.display_names.pop(id_a, None)
        name_b = self.display_names.pop(id_b, None)
        if name_b is not None: self.display_names[id_a] = name_b
        if name_a is not None: self.display_names[id_b] = name_a

def load_world_config(players_dir) -> WorldConfig:
    """Load the config of the world whose Players directory is players_dir.
    A missing or unreadable config gives an empty one."""
    config_path = os.path.join(players_dir, WORLD_CONFIG_FILE)
    try:
        with open(config_path, 'r', encoding='utf-8') as ins:
            return WorldConfig.parse_single(json.load(ins))
    except FileNotFoundError:
        return WorldConfig()
    except (OSError, ValueError, TypeError, AttributeError):
        deprint(f'Could not load {config_path}, ignoring it', traceback=True)
        return WorldConfig()

def save_world_config(players_dir, config: WorldConfig):
    config_path = os.path.join(players_dir, WORLD_CONFIG_FILE)
    config_json = json.dumps(config.dump_single(), indent=2, sort_keys=True)
    try:
        write_file_atomic(config_path, config_json.encode('utf-8'))
    except OSError as e:
        raise IoFailure(config_path, f'Could not save world config: {e}') \
            from e

#------------------------------------------------------------------------------
# Locks and the worker
_world_locks: dict[str, threading.Lock] = {}
_world_locks_guard = threading.Lock()

def world_lock(world_dir) -> threading.Lock:
    """Return the lock of the world at world_dir, the same one for every
    spelling of its path."""
    lock_key = os.path.normcase(os.path.realpath(world_dir))
    with _world_locks_guard:
        try:
            return _world_locks[lock_key]
        except KeyError:
            return _world_locks.setdefault(lock_key, threading.Lock())

_executor: ThreadPoolExecutor | None = None
_executor_guard = threading.Lock()

def get_executor() -> ThreadPoolExecutor:
    """The worker all submit_* methods run on, sized by iWorkerThreads."""
    global _executor
    with _executor_guard:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=max(1, bass.inisettings['WorkerThreads']),
                thread_name_prefix='palhost-worker')
        return _executor

def shutdown_executor(wait=True):
    global _executor
    with _executor_guard:
        if _executor is not None:
            _executor.shutdown(wait=wait)
            _executor = None

#------------------------------------------------------------------------------
# Swap stages, as (start of the stage, message)
_STAGE_READ = (0.0, 'Reading saves...')
_STAGE_DECOMPRESS = (0.1, 'Decompressing saves...')
_STAGE_PARSE = (0.2, 'Parsing saves...')
_STAGE_SWAP = (0.4, 'Swapping identifiers...')
_STAGE_SERIALIZE = (0.5, 'Serializing saves...')
_STAGE_COMPRESS = (0.6, 'Compressing saves...')
_STAGE_WRITE_LEVEL = (0.75, f'Writing {LEVEL_SAV}...')
_STAGE_PATCH_PLAYERS = (0.85, 'Writing player saves...')
# The data of each player ends up in the file named after its new id
_STAGE_RENAME = (0.95, 'Moving player data to its new file...')

def _as_progress(progress) -> Progress:
    if progress is None:
        return Progress()
    if isinstance(progress, Progress):
        return progress
    return CallbackProgress(progress)

class _LoadedSave(object):
    """A save going through a swap: its path, bytes and document. original
    keeps the bytes read from disk for rolling back."""
    __slots__ = ('path', 'original', 'data', 'envelope', 'document')

    def __init__(self, path):
        self.path = path
        self.original = self.data = read_sav_bytes(path)
        self.envelope = None
        self.document: SaveDocument | None = None

    def decompress(self):
        self.data, self.envelope = decompress_sav(self.data, self.path)

    def parse(self):
        self.document = SaveDocument.parse(self.data, self.path)

    def serialize(self):
        self.data = self.document.serialize()

    def compress(self):
        self.data = compress_sav(self.data, self.envelope, self.path)

class WorldSaves(object):
    """The saves of the world at world_dir. Methods return fresh
    PlayerRecord lists. The progress argument of the mutating methods takes
    a bolt.Progress or a plain callable, which gets (fraction, message)."""

    def __init__(self, world_dir):
        self.world_dir = os.fspath(world_dir)
        self.level_path = os.path.join(self.world_dir, LEVEL_SAV)
        self.players_dir = os.path.join(self.world_dir, PLAYERS_DIR)
        self._lock = world_lock(self.world_dir)
        # The world clock as of the last records we built, see
        # PlayerRecord.last_seen
        self.now_ticks = 0

    def _sav_names(self) -> dict[str, str]:
        """Map the ids of all player saves of this world to their file
        names, which the game writes in upper case."""
        try:
            sav_names = os.listdir(self.players_dir)
        except OSError as e:
            raise IoFailure(self.players_dir, f'Could not list player '
                                              f'saves: {e}') from e
        return {m.group(1).lower(): sav_name for sav_name in sav_names if (
            m := _player_sav_re.match(sav_name)) and os.path.isfile(
            os.path.join(self.players_dir, sav_name))}

    def player_ids(self) -> list[str]:
        """The ids of all player saves of this world, sorted."""
        return sorted(self._sav_names())

    def player_path(self, player_id):
        sav_name = self._sav_names().get(player_id, f'{player_id}.sav')
        return os.path.join(self.players_dir, sav_name)

    def load_config(self) -> WorldConfig:
        return load_world_config(self.players_dir)

    #--Reading --------------------------------------------
    def list_players(self) -> list[PlayerRecord]:
        with self._lock:
            return self._records()

    def _records(self) -> list[PlayerRecord]:
        """Build a record for every player save, filled in from Level.sav
        if that can be parsed."""
        player_ids = self.player_ids()
        config = self.load_config()
        level_info = {}
        try:
            level_document, _envelope = read_sav(self.level_path)
            level_info = {r.id: r for r in extract_players(level_document)}
            self.now_ticks = current_ticks(level_document)
        except (FileError, NativeCodecFailure) as e:
            deprint(f'Could not read players from {LEVEL_SAV}: {e}')
        records = []
        for player_id in player_ids:
            info = level_info.get(player_id)
            name = config.display_names.get(player_id) or (
                info.name if info else player_id)
            records.append(PlayerRecord(player_id, name,
                config.original_id(player_id), player_id == HOST_ID,
                level=info.level if info else 0,
                pal_count=info.pal_count if info else 0,
                last_online=info.last_online if info else 0,
                guild_name=info.guild_name if info else ''))
        return records

    #--Writing --------------------------------------------
    def set_host(self, player_id, progress=None) -> list[PlayerRecord]:
        """Make player_id the host by swapping them with the current host.
        Does nothing if they already are the host."""
        player_id = normalize_id(player_id)
        with self._lock:
            if HOST_ID not in self.player_ids():
                raise StateError(f'{self.players_dir} has no host save '
                                 f'({HOST_ID}.sav)')
            if player_id != HOST_ID:
                self._swap(HOST_ID, player_id, _as_progress(progress))
            return self._records()

    def swap_players(self, id_a, id_b, progress=None) -> list[PlayerRecord]:
        """Exchange the data of two players, identities included."""
        id_a, id_b = normalize_id(id_a), normalize_id(id_b)
        with self._lock:
            self._swap(id_a, id_b, _as_progress(progress))
            return self._records()

    def rename_player(self, player_id, name) -> list[PlayerRecord]:
        """Set the display name of player_id. An empty name removes it."""
        player_id = normalize_id(player_id)
        with self._lock:
            if player_id not in self.player_ids():
                raise IdentifierNotFound(player_id, self.players_dir)
            config = self.load_config()
            if name := name.strip():
                config.display_names[player_id] = name
            else:
                config.display_names.pop(player_id, None)
            save_world_config(self.players_dir, config)
            return self._records()

    def apply_order(self, desired, progress=None) -> list[PlayerRecord]:
        """Rearrange the data of all players. desired lists original ids
        (see PlayerRecord.original_id), in the order of the player slots
        returned by list_players. Takes the fewest swaps possible, all under
        one lock."""
        desired = [normalize_id(d) for d in desired]
        progress = _as_progress(progress)
        with self._lock:
            records = self._records()
            plan = plan_swaps([r.original_id for r in records], desired)
            slot_of = {r.original_id: r.id for r in records}
            if plan:
                progress.setFull(len(plan))
            for i, swap in enumerate(plan):
                slot_a, slot_b = slot_of[swap.from_id], slot_of[swap.to_id]
                self._swap(slot_a, slot_b, SubProgress(progress, i, i + 1))
                slot_of[swap.from_id], slot_of[swap.to_id] = slot_b, slot_a
            return self._records()

    def _swap(self, id_a, id_b, progress: Progress):
        """Swap the data of id_a and id_b. Must be called with the world
        lock held."""
        if id_a == id_b:
            raise ArgumentError(f'Cannot swap {id_a} with itself')
        progress(*_STAGE_READ)
        level = _LoadedSave(self.level_path)
        save_a = _LoadedSave(self.player_path(id_a))
        save_b = _LoadedSave(self.player_path(id_b))
        all_saves = (level, save_a, save_b)
        progress(*_STAGE_DECOMPRESS)
        for sav in all_saves: sav.decompress()
        progress(*_STAGE_PARSE)
        for sav in all_saves: sav.parse()
        progress(*_STAGE_SWAP)
        swap_count = swap_identifiers(level.document, id_a, id_b)
        patch_player_identity(save_a.document, id_b)
        patch_player_identity(save_b.document, id_a)
        progress(*_STAGE_SERIALIZE)
        for sav in all_saves: sav.serialize()
        progress(*_STAGE_COMPRESS)
        for sav in all_saves: sav.compress()
        # Everything is ready, start touching files. The data of save_a now
        # belongs to id_b and goes to id_b's file, and vice versa
        self._write_all([
            (_STAGE_WRITE_LEVEL, level, level.path),
            (_STAGE_PATCH_PLAYERS, save_b, save_a.path),
            (_STAGE_RENAME, save_a, save_b.path),
        ], progress)
        config = self.load_config()
        config.swap_slots(id_a, id_b)
        save_world_config(self.players_dir, config)
        progress(1.0, 'Done.')
        deprint(f'Swapped {id_a} and {id_b} ({swap_count} references in '
                f'{LEVEL_SAV})')

    @staticmethod
    def _write_all(writes, progress):
        """Write each (stage, save, target path) in order. If a write fails,
        the files written so far get their original bytes back and the
        IoFailure propagates."""
        written = []
        try:
            for stage, sav, target_path in writes:
                progress(*stage)
                write_sav_bytes(target_path, sav.data)
                written.append(target_path)
        except IoFailure:
            originals = {sav.path: sav.original for _stage, sav, _t in writes}
            for target_path in reversed(written):
                try:
                    write_sav_bytes(target_path, originals[target_path])
                except IoFailure:
                    deprint(f'Could not restore {target_path}',
                            traceback=True)
            raise

    #--Worker variants ------------------------------------
    def submit_list_players(self) -> Future:
        return get_executor().submit(self.list_players)

    def submit_set_host(self, player_id, progress=None) -> Future:
        return get_executor().submit(self.set_host, player_id, progress)

    def submit_swap_players(self, id_a, id_b, progress=None) -> Future:
        return get_executor().submit(self.swap_players, id_a, id_b,
                                     progress)

    def submit_rename_player(self, player_id, name) -> Future:
        return get_executor().submit(self.rename_player, player_id, name)

    def submit_apply_order(self, desired, progress=None) -> Future:
        return get_executor().submit(self.apply_order, desired, progress)

    def __repr__(self):
        return f'WorldSaves({self.world_dir!r})'
