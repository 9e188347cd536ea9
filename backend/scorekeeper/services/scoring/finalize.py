import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from scorekeeper.errors import ValidationError
from .standings import HIGHEST, sort_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerScoreEntry:
    player_id: str
    player_name: str
    score: int
    details: dict = field(default_factory=dict)
    rank: Optional[int] = None

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'player_name': self.player_name,
            'score': self.score,
            'rank': self.rank,
            'details': self.details,
        }


def assign_ranks(entries: Sequence[PlayerScoreEntry], win_condition: str = HIGHEST) -> List[PlayerScoreEntry]:
    """Sort entries best-first and give equal scores the same rank.

    The rank only moves (to index + 1) when a score differs from the one
    before it, so 100, 100, 80 ranks as 1, 1, 3.
    """
    key = sort_key(win_condition)
    ordered = sorted(entries, key=lambda e: key(e.score))
    ranked = []
    rank = 1
    previous = None
    for index, entry in enumerate(ordered):
        if previous is not None and entry.score != previous:
            rank = index + 1
        previous = entry.score
        ranked.append(replace(entry, rank=rank))
    return ranked


def utc_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class SessionFinalizer:
    """Turn scored players into a session payload and hand it to storage.

    ``save_session`` takes the payload dict and returns the new session id.
    Building and submitting are separate so a failed save can be retried
    with the exact payload that was ranked the first time.
    """

    def __init__(self, save_session: Callable[[dict], str]):
        self.save_session = save_session

    def build_payload(self, game_id: str, game_name: str, entries: Sequence[PlayerScoreEntry],
                      win_condition: str = HIGHEST, now: Optional[datetime] = None) -> dict:
        if not entries:
            raise ValidationError('A session needs at least one player', field='players')
        ranked = assign_ranks(entries, win_condition)
        return {
            'game_id': game_id,
            'game_name': game_name,
            'date': utc_timestamp(now),
            'players': [entry.to_dict() for entry in ranked],
        }

    def submit(self, payload: dict) -> str:
        session_id = self.save_session(payload)
        logger.info(f"[finalize] game={payload['game_id']} session={session_id} players={len(payload['players'])}")
        return session_id

    def finalize(self, game_id: str, game_name: str, entries: Sequence[PlayerScoreEntry],
                 win_condition: str = HIGHEST) -> str:
        return self.submit(self.build_payload(game_id, game_name, entries, win_condition))
