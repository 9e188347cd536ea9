from typing import Dict, List, Mapping, Optional, Sequence

from scorekeeper.errors import ValidationError
from .finalize import PlayerScoreEntry
from .standings import HIGHEST, Standing, compute_standings, is_close_game, round_half_up
from .templates import ScoreSheet, check_int_range, get_template


class ScoreAggregator:
    """Final scores for templates that are entered once, without rounds.

    Holds only the template and the player order; every call works from
    the field values it is given.
    """

    win_condition = HIGHEST

    def __init__(self, template_id: str, player_ids: Sequence[str]):
        if not player_ids:
            raise ValidationError('At least one player is required', field='player_ids')
        self.template = get_template(template_id)
        self.player_ids: List[str] = list(player_ids)

    def sheets(self, fields_by_player: Mapping) -> Dict[str, ScoreSheet]:
        if not isinstance(fields_by_player, Mapping):
            raise ValidationError('Score fields must be an object keyed by player id', field='fields')
        unknown = set(fields_by_player) - set(self.player_ids)
        if unknown:
            raise ValidationError(f'Unknown player(s): {", ".join(sorted(unknown))}', field='fields')
        sheets = {}
        for player_id in self.player_ids:
            if player_id not in fields_by_player:
                raise ValidationError(f'Missing scores for player {player_id}', field=f'fields.{player_id}')
            try:
                sheets[player_id] = self.template.from_fields(fields_by_player[player_id])
            except ValidationError as exc:
                field = f'fields.{player_id}.{exc.field}' if exc.field else f'fields.{player_id}'
                raise ValidationError(exc.message, field=field) from exc
            check_int_range(sheets[player_id].compute_score(), f'fields.{player_id}')
        return sheets

    def scores(self, fields_by_player: Mapping) -> Dict[str, int]:
        return {player_id: sheet.compute_score() for player_id, sheet in self.sheets(fields_by_player).items()}

    def standings(self, fields_by_player: Mapping) -> List[Standing]:
        return compute_standings(self.scores(fields_by_player), self.player_ids, self.win_condition)

    def preview(self, fields_by_player: Mapping, close_margin: int = 5) -> dict:
        standings = self.standings(fields_by_player)
        total = sum(s.total for s in standings)
        tied = len(standings) > 1 and standings[0].total == standings[1].total
        leader: Optional[str] = None if tied else standings[0].player_id
        return {
            'scores': {s.player_id: s.total for s in standings},
            'standings': [s.to_dict() for s in standings],
            'stats': {
                'leader': leader,
                'highest_score': standings[0].total,
                'total_score': total,
                'average_score': round_half_up(total / len(standings), 1),
                'is_close_game': is_close_game(standings, close_margin) and not tied,
            },
        }

    def player_entries(self, fields_by_player: Mapping, names: Mapping[str, str]) -> List[PlayerScoreEntry]:
        sheets = self.sheets(fields_by_player)
        return [
            PlayerScoreEntry(
                player_id=player_id,
                player_name=names[player_id],
                score=sheets[player_id].compute_score(),
                details=sheets[player_id].to_dict(),
            )
            for player_id in self.player_ids
        ]
