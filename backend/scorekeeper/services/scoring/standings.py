import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from scorekeeper.errors import ValidationError

HIGHEST = 'highest'
LOWEST = 'lowest'
WIN_CONDITIONS = (HIGHEST, LOWEST)


@dataclass(frozen=True)
class Standing:
    player_id: str
    total: int
    points_to_target: Optional[int] = None

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'total': self.total,
            'points_to_target': self.points_to_target,
        }


def sort_key(win_condition: str):
    """Key that puts the leading total first under a win condition."""
    if win_condition == LOWEST:
        return lambda total: total
    return lambda total: -total


def compute_standings(
    totals: Mapping[str, int],
    player_order: Sequence[str],
    win_condition: str = HIGHEST,
    score_to_win: Optional[int] = None,
) -> List[Standing]:
    """Rank players by total.

    Equal totals keep registration order. ``points_to_target`` is the
    distance to ``score_to_win`` for both win conditions; with lowest-wins
    the target is an upper bound rather than a goal.
    """
    if win_condition not in WIN_CONDITIONS:
        raise ValidationError(f'Unknown win condition: {win_condition}', field='win_condition')
    key = sort_key(win_condition)
    standings = []
    for player_id in player_order:
        total = totals.get(player_id, 0)
        to_target = max(0, score_to_win - total) if score_to_win is not None else None
        standings.append(Standing(player_id, total, to_target))
    # sorted() is stable, so ties stay in registration order
    return sorted(standings, key=lambda s: key(s.total))


def leader(standings: Sequence[Standing]) -> Optional[str]:
    return standings[0].player_id if standings else None


def round_half_up(value: float, digits: int = 0):
    """Round .5 upward, matching how the stats have always been displayed."""
    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5)
    return int(rounded) if digits == 0 else rounded / factor


def is_close_game(standings: Sequence[Standing], margin: int = 5) -> bool:
    return len(standings) > 1 and abs(standings[0].total - standings[1].total) <= margin
