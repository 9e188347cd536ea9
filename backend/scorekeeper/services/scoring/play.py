import uuid
from typing import Mapping, Optional, Sequence, Tuple

from scorekeeper.errors import InvalidState, ValidationError
from .aggregate import ScoreAggregator
from .finalize import SessionFinalizer
from .rounds import FINISHED, PLAYING, GameSettings, RoundEngine
from .templates import GENERIC, get_template


class Play:
    """One game being played, from player selection until it is saved.

    Generic games are driven by a ``RoundEngine``; every other template is
    scored once through a ``ScoreAggregator``. ``finalize`` is terminal:
    the ranked payload is built once and kept, so a failed save can be
    retried without recomputing anything.
    """

    def __init__(self, game_id: str, game_name: str, template_id: str,
                 players: Sequence[Tuple[str, str]], play_id: str = None):
        self.id = play_id or str(uuid.uuid4())
        self.game_id = game_id
        self.game_name = game_name
        self.template = get_template(template_id)
        self.players = list(players)
        self.names = dict(self.players)
        player_ids = [player_id for player_id, _ in self.players]
        if len(set(player_ids)) != len(player_ids):
            raise ValidationError('Players must be unique', field='player_ids')
        if self.uses_rounds:
            self.engine: Optional[RoundEngine] = RoundEngine(player_ids)
            self.aggregator: Optional[ScoreAggregator] = None
        else:
            self.engine = None
            self.aggregator = ScoreAggregator(self.template.template_id, player_ids)
        self.payload: Optional[dict] = None
        self.session_id: Optional[str] = None

    @property
    def uses_rounds(self) -> bool:
        return self.template.template_id == GENERIC

    @property
    def state(self) -> str:
        if self.engine:
            return self.engine.state
        return FINISHED if self.payload else PLAYING

    def _require_rounds(self) -> RoundEngine:
        if not self.engine:
            raise InvalidState(f'{self.template.label} games are scored once, not by rounds')
        return self.engine

    def update_settings(self, data: Mapping) -> None:
        engine = self._require_rounds()
        engine.update_settings(GameSettings.from_dict(data))

    def start(self) -> None:
        self._require_rounds().start()

    def complete_round(self, scores: Mapping):
        return self._require_rounds().complete_round(scores)

    def end_game(self):
        return self._require_rounds().end_game_manually()

    def preview(self, fields_by_player: Mapping, close_margin: int = 5) -> dict:
        if not self.aggregator:
            raise InvalidState('Generic games are scored round by round')
        return self.aggregator.preview(fields_by_player, close_margin)

    def finalize(self, finalizer: SessionFinalizer, fields_by_player: Mapping = None) -> str:
        if self.session_id:
            return self.session_id
        if self.payload is None:
            if self.engine:
                self.engine.finish()
                entries = self.engine.player_entries(self.names)
                win_condition = self.engine.settings.win_condition
            else:
                if fields_by_player is None:
                    raise ValidationError('Score fields are required to finish this game', field='fields')
                entries = self.aggregator.player_entries(fields_by_player, self.names)
                win_condition = self.aggregator.win_condition
            self.payload = finalizer.build_payload(self.game_id, self.game_name, entries, win_condition)
        self.session_id = finalizer.submit(self.payload)
        return self.session_id

    def to_dict(self, close_margin: int = 5):
        data = {
            'id': self.id,
            'game': {'id': self.game_id, 'name': self.game_name, 'template': self.template.template_id},
            'uses_rounds': self.uses_rounds,
            'state': self.state,
            'players': [{'id': player_id, 'name': name} for player_id, name in self.players],
            'fields': [field_def.to_dict() for field_def in self.template.FIELDS],
            'result': self.payload['players'] if self.payload else None,
            'session_id': self.session_id,
        }
        if self.engine:
            data.update(self.engine.to_dict(close_margin))
        return data
