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
"""Turning a desired order of players into the fewest pairwise swaps."""
from __future__ import annotations

from collections import Counter
from typing import NamedTuple

from .exception import InvalidPermutation

class SwapOperation(NamedTuple):
    """Exchange the positions of from_id and to_id."""
    from_id: str
    to_id: str

def plan_swaps(current, desired) -> list[SwapOperation]:
    """Return the swaps that turn the sequence current into desired.

    The arrangement is split into cycles, visited in order of their lowest
    position. Within a cycle, the occupant of that position is repeatedly
    swapped with whatever sits where the occupant belongs, until the right
    element arrives. A cycle of length L thus takes L - 1 swaps, which is
    the minimum.

    Raises InvalidPermutation if desired is not a permutation of current or
    if current contains duplicates."""
    current, desired = list(current), list(desired)
    if len(set(current)) != len(current):
        dupes = sorted(k for k, v in Counter(current).items() if v > 1)
        dupes_str = ', '.join(map(str, dupes))
        raise InvalidPermutation(f'Duplicate ids: {dupes_str}')
    if Counter(current) != Counter(desired):
        raise InvalidPermutation(f'{desired} is not a permutation of '
                                 f'{current}')
    target_pos = {p_id: i for i, p_id in enumerate(desired)}
    arrangement = current
    swaps = []
    for start in range(len(arrangement)):
        while (occupant := arrangement[start]) != desired[start]:
            dest = target_pos[occupant]
            swaps.append(SwapOperation(occupant, arrangement[dest]))
            arrangement[start], arrangement[dest] = arrangement[dest], \
                occupant
    return swaps

def apply_plan(arrangement, plan) -> list:
    """Return a copy of arrangement with the swaps in plan applied."""
    result = list(arrangement)
    positions = {p_id: i for i, p_id in enumerate(result)}
    for swap in plan:
        try:
            pos_a, pos_b = positions[swap.from_id], positions[swap.to_id]
        except KeyError as e:
            raise InvalidPermutation(f'{e.args[0]} is not part of the '
                                     f'arrangement') from None
        result[pos_a], result[pos_b] = swap.to_id, swap.from_id
        positions[swap.from_id], positions[swap.to_id] = pos_b, pos_a
    return result
