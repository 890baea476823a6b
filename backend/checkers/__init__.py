from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Live rooms belong to this app instance, not to the module
    from checkers.services.match.scheduler import make_clock_scheduler
    from checkers.services.match.sessions import SessionRegistry
    flask_app.extensions['checkers_sessions'] = SessionRegistry(
        turn_seconds=int(flask_app.config.get('TURN_DURATION_SEC', 30)),
        history_limit=int(flask_app.config.get('HISTORY_LIMIT', 10)),
        scheduler=make_clock_scheduler(flask_app),
    )

    from checkers.main import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    # Importing here ensures the handlers bind to the initialized socketio instance
    from checkers.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    # Ensure the user-record table is known to Flask-Migrate
    import checkers.models  # noqa: F401

    @click.command('records-reset')
    def records_reset_command():
        """Drops and recreates the user-record table."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('User records have been reset!')

    flask_app.cli.add_command(records_reset_command)

    return flask_app
