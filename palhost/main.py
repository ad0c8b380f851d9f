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
"""This module runs Palhost from the command line. Call main(), or run the
package with python -m palhost."""
import atexit
import dataclasses
import json
import sys

from . import barg, initialization, temp_files
from .bolt import LogProgress, deprint
from .exception import BoltError
from .gvas import intermediate, read_sav
from .swap_plan import plan_swaps
from .worlds import WorldSaves, shutdown_executor

def _print_records(world: WorldSaves, records, as_json=False):
    if as_json:
        print(json.dumps([dataclasses.asdict(r) for r in records], indent=2))
        return
    for record in records:
        host_mark = '*' if record.is_host else ' '
        moved_str = '' if record.original_id == record.id else \
            f' (data of {record.original_id})'
        guild_str = f' [{record.guild_name}]' if record.guild_name else ''
        print(f'{host_mark} {record.id}  {record.name}{guild_str}  '
              f'Lv {record.level}, {record.pal_count} pals, '
              f'{record.last_seen(world.now_ticks)}{moved_str}')

def _run_command(opts):
    match opts.command:
        case 'players':
            world = WorldSaves(opts.world_dir)
            _print_records(world, world.list_players(), opts.as_json)
        case 'set-host':
            world = WorldSaves(opts.world_dir)
            _print_records(world, world.set_host(opts.player_id,
                                                 LogProgress()))
        case 'swap':
            world = WorldSaves(opts.world_dir)
            _print_records(world, world.swap_players(opts.id_a, opts.id_b,
                                                     LogProgress()))
        case 'rename':
            world = WorldSaves(opts.world_dir)
            _print_records(world, world.rename_player(opts.player_id,
                                                      opts.name))
        case 'order':
            world = WorldSaves(opts.world_dir)
            _print_records(world, world.apply_order(opts.desired,
                                                    LogProgress()))
        case 'dump':
            document, envelope = read_sav(opts.sav_path)
            json_text = intermediate.dumps(document, indent=opts.indent)
            if opts.output:
                try:
                    with open(opts.output, 'w', encoding='utf-8') as out:
                        out.write(json_text)
                except OSError as e:
                    raise BoltError(f'Could not write {opts.output}: {e}') \
                        from e
                deprint(f'Dumped {opts.sav_path} ({envelope.describe()}) to '
                        f'{opts.output}')
            else:
                print(json_text)
        case 'plan':
            current = [c.strip() for c in opts.current.split(',')]
            desired = [d.strip() for d in opts.desired.split(',')]
            swaps = plan_swaps(current, desired)
            for swap in swaps:
                print(f'{swap.from_id} <-> {swap.to_id}')
            print(f'{len(swaps)} swap(s)')

def main(sys_argv=None) -> int:
    """Parse the command line, initialize and run the requested command.
    Returns the exit code."""
    opts = barg.parse(sys_argv)
    atexit.register(temp_files.cleanup_temp)
    atexit.register(shutdown_executor)
    initialization.init_dirs(user_dir=opts.user_path)
    try:
        initialization.init_settings(opts.ini_path)
        _run_command(opts)
    except BoltError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    return 0
