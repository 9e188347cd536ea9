from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
import click
from config import Config

db = SQLAlchemy()
cors = CORS()

SAMPLE_PLAYERS = ['You', 'Sarah', 'David']
SAMPLE_GAMES = [
    ('Catan', 'catan'),
    ('Ticket to Ride', 'ticket-to-ride'),
    ('Wingspan', 'wingspan'),
    ('7 Wonders', 'seven-wonders'),
]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    cors.init_app(flask_app, origins=flask_app.config.get('CORS_ORIGINS', []))

    from scorekeeper.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Import and register blueprints here
    from scorekeeper.main import main
    flask_app.register_blueprint(main)

    from scorekeeper.api.players import players
    flask_app.register_blueprint(players, url_prefix='/api/players')

    from scorekeeper.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from scorekeeper.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from scorekeeper.api.plays import plays
    flask_app.register_blueprint(plays, url_prefix='/api/plays')

    # Ensure models are registered with the metadata
    from scorekeeper import models  # noqa: F401

    if flask_app.config.get('AUTO_CREATE_TABLES'):
        with flask_app.app_context():
            db.create_all()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from scorekeeper.models import Game, Player
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed players and games
            for name in SAMPLE_PLAYERS:
                db.session.add(Player(name=name))
            for name, template in SAMPLE_GAMES:
                db.session.add(Game(name=name, template=template))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
