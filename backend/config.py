import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///scorekeeper.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Create missing tables on startup (there are no migrations)
    AUTO_CREATE_TABLES = os.environ.get('AUTO_CREATE_TABLES', '1') == '1'
    # Comma-separated front-end origins allowed by CORS
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',') if o.strip()]
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Default number of sessions on the recent-sessions feed
    RECENT_SESSIONS_LIMIT = int(os.environ.get('RECENT_SESSIONS_LIMIT', '5'))
    # Top two within this many points counts as a close game
    CLOSE_GAME_MARGIN = int(os.environ.get('CLOSE_GAME_MARGIN', '5'))
