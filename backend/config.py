import os


def _flag(name, default):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///checkers.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
        ).split(',') if o.strip()
    ]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Turn clock (seconds)
    TURN_DURATION_SEC = int(os.environ.get('TURN_DURATION_SEC', '30'))
    CLOCK_TICK_SEC = float(os.environ.get('CLOCK_TICK_SEC', '1'))
    # Move-log entries included in each state snapshot
    HISTORY_LIMIT = int(os.environ.get('HISTORY_LIMIT', '10'))
    # Identity provider
    DISCORD_CLIENT_ID = os.environ.get('VITE_DISCORD_CLIENT_ID') or os.environ.get('DISCORD_CLIENT_ID')
    DISCORD_CLIENT_SECRET = os.environ.get('DISCORD_CLIENT_SECRET')
    DISCORD_API_BASE = os.environ.get('DISCORD_API_BASE', 'https://discord.com/api')
    IDENTITY_TIMEOUT_SEC = float(os.environ.get('IDENTITY_TIMEOUT_SEC', '10'))
    # Joins must carry an access token the identity provider accepts
    REQUIRE_VERIFIED_IDENTITY = _flag('REQUIRE_VERIFIED_IDENTITY', 'true')
