from scorekeeper import db
from scorekeeper.services.scoring.finalize import utc_timestamp
import uuid


def generate_id():
    return str(uuid.uuid4())


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    name = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.String(32), default=utc_timestamp)
    scores = db.relationship('PlayerScore', back_populates='player', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'created_at': self.created_at,
        }


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    name = db.Column(db.String(64), nullable=False, index=True)
    template = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.String(32), default=utc_timestamp)
    sessions = db.relationship('GameSession', back_populates='game', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'template': self.template,
            'created_at': self.created_at,
        }


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    game_id = db.Column(db.String(36), db.ForeignKey('game.id'), nullable=False, index=True)
    # Name is copied so the session still reads correctly if the game is renamed
    game_name = db.Column(db.String(64), nullable=False)
    date = db.Column(db.String(32), nullable=False, index=True)
    game = db.relationship('Game', back_populates='sessions')
    scores = db.relationship('PlayerScore', back_populates='session', cascade='all, delete-orphan')

    def ranked_scores(self):
        return (PlayerScore.query
                .filter_by(session_id=self.id)
                .order_by(PlayerScore.rank, PlayerScore.position)
                .all())

    def winner(self):
        return (PlayerScore.query
                .filter_by(session_id=self.id, rank=1)
                .order_by(PlayerScore.position)
                .first())

    def player_count(self):
        return PlayerScore.query.filter_by(session_id=self.id).count()

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'game_name': self.game_name,
            'date': self.date,
            'players': [score.to_dict() for score in self.ranked_scores()],
        }


class PlayerScore(db.Model):
    __tablename__ = 'player_score'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    session_id = db.Column(db.String(36), db.ForeignKey('game_session.id', ondelete='CASCADE'), nullable=False, index=True)
    player_id = db.Column(db.String(36), db.ForeignKey('player.id'), nullable=False, index=True)
    player_name = db.Column(db.String(64), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    rank = db.Column(db.Integer, nullable=False)
    details = db.Column(db.JSON, nullable=True)
    # Order the entry was submitted in; breaks ties between equal ranks
    position = db.Column(db.Integer, nullable=False, default=0)
    session = db.relationship('GameSession', back_populates='scores')
    player = db.relationship('Player', back_populates='scores')

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'player_name': self.player_name,
            'score': self.score,
            'rank': self.rank,
            'details': self.details if self.details is not None else {},
        }
