"""Data access for players, games and saved sessions.

Every write goes through ``_commit`` so a storage failure is rolled back,
logged and raised as ``PersistenceError``; callers can simply retry.
"""

from datetime import datetime, timezone
from typing import List, Mapping, Optional, Sequence

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from scorekeeper import db
from scorekeeper.errors import PersistenceError, ValidationError
from scorekeeper.models import Game, GameSession, Player, PlayerScore
from scorekeeper.services.scoring.finalize import utc_timestamp
from scorekeeper.services.scoring.standings import round_half_up
from scorekeeper.services.scoring.templates import TEMPLATE_IDS, coerce_int

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 64


def _commit(*objects) -> None:
    try:
        db.session.add_all(objects)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[db] commit failed: {exc}")
        raise PersistenceError('Failed to save changes') from exc


def _clean_name(name, label: str) -> str:
    if not isinstance(name, str) or len(name.strip()) < MIN_NAME_LENGTH:
        raise ValidationError(f'{label} name must be at least {MIN_NAME_LENGTH} characters', field='name')
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f'{label} name must be at most {MAX_NAME_LENGTH} characters', field='name')
    return name


# ---- Players ----

def create_player(name) -> Player:
    player = Player(name=_clean_name(name, 'Player'))
    _commit(player)
    current_app.logger.info(f"[player-create] id={player.id} name={player.name}")
    return player


def list_players() -> List[Player]:
    return Player.query.order_by(Player.name).all()


def get_player(player_id: str) -> Optional[Player]:
    return db.session.get(Player, player_id)


def get_players_by_ids(ids: Sequence[str]) -> List[Player]:
    """Players for the given ids, in the order the ids were given."""
    if not isinstance(ids, (list, tuple)) or not all(isinstance(i, str) for i in ids):
        raise ValidationError('ids must be a list of player ids', field='ids')
    if not ids:
        return []
    by_id = {p.id: p for p in Player.query.filter(Player.id.in_(ids)).all()}
    return [by_id[i] for i in ids if i in by_id]


# ---- Games ----

def create_game(name, template) -> Game:
    name = _clean_name(name, 'Game')
    if template not in TEMPLATE_IDS:
        raise ValidationError(f'Template must be one of: {", ".join(TEMPLATE_IDS)}', field='template')
    game = Game(name=name, template=template)
    _commit(game)
    current_app.logger.info(f"[game-create] id={game.id} name={game.name} template={game.template}")
    return game


def list_games() -> List[Game]:
    return Game.query.order_by(Game.name).all()


def get_game(game_id: str) -> Optional[Game]:
    return db.session.get(Game, game_id)


# ---- Sessions ----

def _clean_date(value) -> str:
    if value is None:
        return utc_timestamp()
    if not isinstance(value, str):
        raise ValidationError('date must be an ISO-8601 string', field='date')
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError('date must be an ISO-8601 string', field='date')
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    # Stored in one UTC form so the text column sorts by time
    return utc_timestamp(parsed)


def _clean_entry(entry, index: int) -> dict:
    prefix = f'players.{index}'
    if not isinstance(entry, Mapping):
        raise ValidationError('Each player entry must be an object', field=prefix)
    player_id = entry.get('player_id')
    if not isinstance(player_id, str) or get_player(player_id) is None:
        raise ValidationError(f'Unknown player: {player_id}', field=f'{prefix}.player_id')
    player_name = entry.get('player_name')
    if not isinstance(player_name, str) or not player_name.strip():
        raise ValidationError('player_name is required', field=f'{prefix}.player_name')
    details = entry.get('details') or {}
    if not isinstance(details, Mapping):
        raise ValidationError('details must be an object', field=f'{prefix}.details')
    return {
        'player_id': player_id,
        'player_name': player_name,
        'score': coerce_int(entry.get('score'), f'{prefix}.score'),
        'rank': coerce_int(entry.get('rank'), f'{prefix}.rank', 1),
        'details': dict(details),
    }


def save_session(payload: Mapping) -> str:
    """Store a finished session and its ranked player scores.

    ``payload`` is ``{game_id, game_name, date, players: [...]}`` with each
    player ``{player_id, player_name, score, rank, details}``.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError('Session must be an object')
    game = get_game(payload.get('game_id')) if isinstance(payload.get('game_id'), str) else None
    if game is None:
        raise ValidationError(f"Unknown game: {payload.get('game_id')}", field='game_id')
    players = payload.get('players')
    if not isinstance(players, list) or not players:
        raise ValidationError('A session needs at least one player', field='players')
    entries = [_clean_entry(entry, index) for index, entry in enumerate(players)]
    player_ids = [entry['player_id'] for entry in entries]
    if len(set(player_ids)) != len(player_ids):
        raise ValidationError('Each player may appear only once', field='players')
    if min(entry['rank'] for entry in entries) != 1:
        raise ValidationError('One player must hold rank 1', field='players')

    session = GameSession(
        game_id=game.id,
        game_name=payload.get('game_name') or game.name,
        date=_clean_date(payload.get('date')),
    )
    session.scores = [PlayerScore(position=index, **entry) for index, entry in enumerate(entries)]
    _commit(session)
    current_app.logger.info(f"[session-save] id={session.id} game={game.id} players={len(entries)}")
    return session.id


def get_session(session_id: str) -> Optional[GameSession]:
    return db.session.get(GameSession, session_id)


def list_sessions() -> List[GameSession]:
    return GameSession.query.order_by(GameSession.date.desc()).all()


# ---- Stats ----

def _counts_by_player(*criteria) -> dict:
    rows = (db.session.query(PlayerScore.player_id, func.count(PlayerScore.id))
            .filter(*criteria)
            .group_by(PlayerScore.player_id)
            .all())
    return dict(rows)


def _win_rate(wins: int, games_played: int) -> int:
    return round_half_up(wins / games_played * 100) if games_played else 0


def _player_stats(player: Player, played: dict, wins: dict) -> dict:
    games_played = played.get(player.id, 0)
    won = wins.get(player.id, 0)
    return {
        'games_played': games_played,
        'wins': won,
        'win_rate': _win_rate(won, games_played),
    }


def get_player_stats() -> List[dict]:
    played = _counts_by_player()
    wins = _counts_by_player(PlayerScore.rank == 1)
    stats = [
        dict(id=player.id, name=player.name, **_player_stats(player, played, wins))
        for player in list_players()
    ]
    return sorted(stats, key=lambda s: -s['win_rate'])


def _high_score(game_id: str) -> Optional[dict]:
    top = (PlayerScore.query
           .join(GameSession, PlayerScore.session_id == GameSession.id)
           .filter(GameSession.game_id == game_id)
           .order_by(PlayerScore.score.desc())
           .first())
    if top is None:
        return None
    return {'value': top.score, 'player': top.player_name}


def _play_counts() -> dict:
    rows = (db.session.query(GameSession.game_id, func.count(GameSession.id))
            .group_by(GameSession.game_id)
            .all())
    return dict(rows)


def get_popular_games() -> List[dict]:
    counts = _play_counts()
    stats = [
        {
            'id': game.id,
            'name': game.name,
            'play_count': counts.get(game.id, 0),
            'high_score': _high_score(game.id),
        }
        for game in list_games()
    ]
    return sorted(stats, key=lambda s: -s['play_count'])


def _winner_summary(session: GameSession, with_score: bool = False) -> Optional[dict]:
    winner = session.winner()
    if winner is None:
        return None
    summary = {'id': winner.player_id, 'name': winner.player_name}
    if with_score:
        summary['score'] = winner.score
    return summary


def get_recent_sessions(limit: int = 5) -> List[dict]:
    sessions = GameSession.query.order_by(GameSession.date.desc()).limit(limit).all()
    return [
        {
            'id': session.id,
            'game': {'id': session.game_id, 'name': session.game_name},
            'date': session.date,
            'winner': _winner_summary(session),
            'player_count': session.player_count(),
        }
        for session in sessions
    ]


def get_game_details(game_id: str) -> Optional[dict]:
    game = get_game(game_id)
    if game is None:
        return None
    data = game.to_dict()
    data['stats'] = {
        'play_count': game.sessions.count(),
        'high_score': _high_score(game.id),
    }
    return data


def get_game_sessions(game_id: str) -> List[dict]:
    sessions = (GameSession.query
                .filter_by(game_id=game_id)
                .order_by(GameSession.date.desc())
                .all())
    return [
        {
            'id': session.id,
            'date': session.date,
            'winner': _winner_summary(session, with_score=True),
            'player_count': session.player_count(),
        }
        for session in sessions
    ]


def get_player_details(player_id: str) -> Optional[dict]:
    player = get_player(player_id)
    if player is None:
        return None
    played = _counts_by_player(PlayerScore.player_id == player.id)
    wins = _counts_by_player(PlayerScore.player_id == player.id, PlayerScore.rank == 1)
    data = player.to_dict()
    data['stats'] = _player_stats(player, played, wins)
    return data


def get_player_sessions(player_id: str) -> List[dict]:
    rows = (db.session.query(PlayerScore, GameSession)
            .join(GameSession, PlayerScore.session_id == GameSession.id)
            .filter(PlayerScore.player_id == player_id)
            .order_by(GameSession.date.desc())
            .all())
    return [
        {
            'id': session.id,
            'date': session.date,
            'game_name': session.game_name,
            'score': score.score,
            'rank': score.rank,
            'player_count': session.player_count(),
        }
        for score, session in rows
    ]
