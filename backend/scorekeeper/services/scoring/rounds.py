"""Round-by-round scoring for games on the generic template.

A ``RoundEngine`` moves through ``configuring -> playing -> finished``.
Settings can change until the first round is recorded; after every round
the win conditions are checked and the engine finishes itself when one
fires. Nothing here touches the database.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from scorekeeper.errors import InvalidState, ValidationError
from .finalize import PlayerScoreEntry
from .standings import (
    HIGHEST, LOWEST, WIN_CONDITIONS, Standing, compute_standings, is_close_game, leader, round_half_up,
)
from .templates import ROUND_SCORE_FIELD, check_int_range, coerce_flag, coerce_int

logger = logging.getLogger(__name__)

CONFIGURING = 'configuring'
PLAYING = 'playing'
FINISHED = 'finished'

END_MAX_ROUNDS = 'max_rounds'
END_TARGET_SCORE = 'target_score'
END_MANUAL = 'manual'


def _optional_count(data: Mapping, name: str, default: Optional[int], required: bool) -> Optional[int]:
    value = data.get(name, default)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f'{name} is required when enabled', field=name)
        return None
    return coerce_int(value, name, 1)


@dataclass(frozen=True)
class GameSettings:
    has_target_score: bool = True
    score_to_win: Optional[int] = 100
    win_condition: str = HIGHEST
    has_max_rounds: bool = False
    max_rounds: Optional[int] = 10

    def __post_init__(self):
        if self.win_condition not in WIN_CONDITIONS:
            raise ValidationError(f'Unknown win condition: {self.win_condition}', field='win_condition')
        if self.has_target_score and self.score_to_win is None:
            raise ValidationError('score_to_win is required when enabled', field='score_to_win')
        if self.has_max_rounds and self.max_rounds is None:
            raise ValidationError('max_rounds is required when enabled', field='max_rounds')
        for name in ('score_to_win', 'max_rounds'):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValidationError(f'{name} must be at least 1', field=name)

    @classmethod
    def from_dict(cls, data: Mapping) -> 'GameSettings':
        """Build settings from request JSON; missing keys keep their defaults."""
        if not isinstance(data, Mapping):
            raise ValidationError('Settings must be an object')
        defaults = cls()
        has_target = coerce_flag(data.get('has_target_score', defaults.has_target_score), 'has_target_score')
        has_max = coerce_flag(data.get('has_max_rounds', defaults.has_max_rounds), 'has_max_rounds')
        return cls(
            has_target_score=has_target,
            score_to_win=_optional_count(data, 'score_to_win', defaults.score_to_win, has_target),
            win_condition=data.get('win_condition', defaults.win_condition),
            has_max_rounds=has_max,
            max_rounds=_optional_count(data, 'max_rounds', defaults.max_rounds, has_max),
        )

    @property
    def target(self) -> Optional[int]:
        return self.score_to_win if self.has_target_score else None

    def to_dict(self):
        return {
            'has_target_score': self.has_target_score,
            'score_to_win': self.score_to_win,
            'win_condition': self.win_condition,
            'has_max_rounds': self.has_max_rounds,
            'max_rounds': self.max_rounds,
        }


@dataclass(frozen=True)
class Outcome:
    winner_id: str
    reason: str

    def to_dict(self):
        return {'winner_id': self.winner_id, 'reason': self.reason}


# ---- Win-condition decision table ----

def _first_to_reach_target(player_order, totals, target) -> Optional[Outcome]:
    for player_id in player_order:
        if totals[player_id] >= target:
            return Outcome(player_id, END_TARGET_SCORE)
    return None


def _lowest_once_bound_crossed(player_order, totals, target) -> Optional[Outcome]:
    # The target is an upper bound: crossing it ends the game, and the
    # lowest total wins even when that player is not the one who crossed.
    if any(totals[player_id] >= target for player_id in player_order):
        standings = compute_standings(totals, player_order, LOWEST)
        return Outcome(leader(standings), END_TARGET_SCORE)
    return None


TARGET_RULES = {
    HIGHEST: _first_to_reach_target,
    LOWEST: _lowest_once_bound_crossed,
}


def evaluate(settings: GameSettings, player_order: Sequence[str], totals: Mapping[str, int],
             rounds_played: int) -> Optional[Outcome]:
    """Decide whether the game is over after ``rounds_played`` rounds.

    The round cap is checked before the target score.
    """
    if settings.has_max_rounds and rounds_played >= settings.max_rounds:
        standings = compute_standings(totals, player_order, settings.win_condition)
        return Outcome(leader(standings), END_MAX_ROUNDS)
    if settings.has_target_score:
        return TARGET_RULES[settings.win_condition](player_order, totals, settings.score_to_win)
    return None


class RoundEngine:
    def __init__(self, player_ids: Sequence[str], settings: GameSettings = None):
        if not player_ids:
            raise ValidationError('At least one player is required', field='player_ids')
        if len(set(player_ids)) != len(player_ids):
            raise ValidationError('Players must be unique', field='player_ids')
        self.player_ids: List[str] = list(player_ids)
        self.settings = settings or GameSettings()
        self.state = CONFIGURING
        self.rounds: List[Dict[str, int]] = []
        self.outcome: Optional[Outcome] = None

    @property
    def is_finished(self) -> bool:
        return self.state == FINISHED

    def update_settings(self, settings: GameSettings) -> None:
        if self.state == FINISHED:
            raise InvalidState('Game is already finished')
        if self.rounds:
            raise InvalidState('Settings are locked once a round has been completed')
        self.settings = settings

    def start(self) -> None:
        if self.state == FINISHED:
            raise InvalidState('Game is already finished')
        self.state = PLAYING

    def complete_round(self, scores: Mapping) -> Optional[Outcome]:
        if self.state != PLAYING:
            raise InvalidState(f'Cannot record a round while {self.state}')
        if not isinstance(scores, Mapping):
            raise ValidationError('Round scores must be an object keyed by player id', field='scores')
        unknown = set(scores) - set(self.player_ids)
        if unknown:
            raise ValidationError(f'Unknown player(s): {", ".join(sorted(unknown))}', field='scores')
        round_scores = {}
        for player_id in self.player_ids:
            value = scores.get(player_id)
            # Accept either a bare number or {"score": n} per player
            if isinstance(value, Mapping):
                value = value.get(ROUND_SCORE_FIELD.name)
            round_scores[player_id] = coerce_int(value, f'scores.{player_id}', ROUND_SCORE_FIELD.min)
        totals = self.totals()
        for player_id, score in round_scores.items():
            check_int_range(totals[player_id] + score, f'scores.{player_id}')
        self.rounds.append(round_scores)
        logger.debug(f"[round] number={len(self.rounds)} scores={round_scores}")

        outcome = evaluate(self.settings, self.player_ids, self.totals(), len(self.rounds))
        if outcome:
            self._finish(outcome)
        return outcome

    def end_game_manually(self) -> Outcome:
        if self.state != PLAYING:
            raise InvalidState(f'Cannot end the game while {self.state}')
        if self.settings.has_target_score:
            raise InvalidState('Games with a target score end automatically')
        if not self.rounds:
            raise InvalidState('Complete at least one round before ending the game')
        outcome = Outcome(leader(self.standings()), END_MANUAL)
        self._finish(outcome)
        return outcome

    def finish(self) -> None:
        """Close the play for good; used when the result is saved."""
        if self.state != FINISHED:
            if not self.rounds:
                raise InvalidState('Complete at least one round before saving')
            self.state = FINISHED

    def _finish(self, outcome: Outcome) -> None:
        self.outcome = outcome
        self.state = FINISHED
        logger.info(f"[game-over] winner={outcome.winner_id} reason={outcome.reason} rounds={len(self.rounds)}")

    def totals(self) -> Dict[str, int]:
        return {
            player_id: sum(round_scores[player_id] for round_scores in self.rounds)
            for player_id in self.player_ids
        }

    def standings(self) -> List[Standing]:
        return compute_standings(self.totals(), self.player_ids, self.settings.win_condition, self.settings.target)

    def stats(self, close_margin: int = 5) -> dict:
        standings = self.standings()
        played = len(self.rounds)
        capped = self.settings.has_max_rounds
        return {
            'leader': leader(standings),
            'best_score': standings[0].total,
            'average_score': round_half_up(sum(s.total for s in standings) / len(standings)),
            'rounds_played': played,
            'max_rounds_reached': capped and played >= self.settings.max_rounds,
            'remaining_rounds': self.settings.max_rounds - played if capped else None,
            'is_close_game': is_close_game(standings, close_margin),
        }

    def player_entries(self, names: Mapping[str, str]) -> List[PlayerScoreEntry]:
        totals = self.totals()
        return [
            PlayerScoreEntry(
                player_id=player_id,
                player_name=names[player_id],
                score=totals[player_id],
                details={
                    'rounds': [round_scores[player_id] for round_scores in self.rounds],
                    'total_rounds': len(self.rounds),
                    'game_settings': self.settings.to_dict(),
                },
            )
            for player_id in self.player_ids
        ]

    def to_dict(self, close_margin: int = 5):
        return {
            'state': self.state,
            'settings': self.settings.to_dict(),
            'rounds': [dict(round_scores) for round_scores in self.rounds],
            'totals': self.totals(),
            'standings': [s.to_dict() for s in self.standings()],
            'stats': self.stats(close_margin),
            'outcome': self.outcome.to_dict() if self.outcome else None,
        }
