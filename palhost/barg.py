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
"""This module parses the command line that was used to start Palhost."""

import argparse

def parse(sys_argv=None):
    """Helper function to define commandline arguments"""
    parser = argparse.ArgumentParser(prog='palhost',
        description='Inspect Palworld saves and move player data between '
                    'player slots.')

    #### Individual Arguments ####
    parser.add_argument('--ini', dest='ini_path', default=None,
                        help='Read settings from this ini instead of '
                             'palhost.ini in the user or app directory.')
    parser.add_argument('-u', '--userPath', dest='user_path', default=None,
                        help='Specify the user directory (default: '
                             '~/.palhost).')

    #### Commands ####
    commands = parser.add_subparsers(dest='command', metavar='COMMAND')
    commands.required = True
    def world_command(cmd_name, h):
        cmd = commands.add_parser(cmd_name, help=h, description=h)
        cmd.add_argument('world_dir', metavar='WORLD_DIR',
                         help='The world directory, the one holding '
                              'Level.sav and Players.')
        return cmd
    # players #
    h = 'List the players of a world.'
    cmd = world_command('players', h)
    cmd.add_argument('--json', action='store_true', dest='as_json',
                     help='Print the records as JSON.')
    # set-host #
    h = 'Make a player the host of a world.'
    cmd = world_command('set-host', h)
    cmd.add_argument('player_id', metavar='PLAYER_ID')
    # swap #
    h = 'Exchange the data of two players.'
    cmd = world_command('swap', h)
    cmd.add_argument('id_a', metavar='PLAYER_ID')
    cmd.add_argument('id_b', metavar='OTHER_ID')
    # rename #
    h = ('Set the display name of a player. An empty name removes the '
         'display name.')
    cmd = world_command('rename', h)
    cmd.add_argument('player_id', metavar='PLAYER_ID')
    cmd.add_argument('name', metavar='NAME')
    # order #
    h = ('Rearrange the data of all players. List their original ids in the '
         'order of the slots shown by the players command.')
    cmd = world_command('order', h)
    cmd.add_argument('desired', metavar='ORIGINAL_ID', nargs='+')
    # dump #
    h = 'Print a save as JSON.'
    cmd = commands.add_parser('dump', help=h, description=h)
    cmd.add_argument('sav_path', metavar='SAV_FILE')
    cmd.add_argument('-o', '--output', dest='output', default=None,
                     help='Write the JSON to this file instead.')
    cmd.add_argument('--indent', type=int, default=2,
                     help='Indentation of the JSON (default: 2).')
    # plan #
    h = ('Show the swaps that turn one order of ids into another. Both '
         'orders are comma separated.')
    cmd = commands.add_parser('plan', help=h, description=h)
    cmd.add_argument('current', metavar='CURRENT')
    cmd.add_argument('desired', metavar='DESIRED')
    return parser.parse_args(sys_argv)
