from concurrent.futures import ThreadPoolExecutor

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def _emit_state_update(session):
    socketio.emit('state_update', {'session_code': session.code}, to=f"session:{session.code}", namespace='/ws')


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Page fetches and votes run inline in tests, on worker threads otherwise
    from smashpass.services.game import InlineExecutor, SessionRegistry
    if flask_app.config.get('TESTING'):
        executor = InlineExecutor()
    else:
        executor = ThreadPoolExecutor(
            max_workers=int(flask_app.config.get('FEED_WORKERS', 4)),
            thread_name_prefix='smashpass-feed',
        )
    flask_app.extensions['game_sessions'] = SessionRegistry(
        executor,
        page_size=int(flask_app.config.get('PAGE_SIZE', 10)),
        margin=int(flask_app.config.get('PREFETCH_MARGIN', 2)),
        on_change=_emit_state_update,
    )

    # Import and register blueprints here
    from smashpass.main import main
    flask_app.register_blueprint(main)

    from smashpass.api.posts import posts
    flask_app.register_blueprint(posts, url_prefix='/api/posts')

    from smashpass.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from smashpass.socketio_events import register_socketio_handlers, start_idle_sweeper
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))
    # Tests call sweep_idle_sessions directly
    if not flask_app.config.get('TESTING'):
        start_idle_sweeper(flask_app)

    @click.command('db-reset')
    @click.option('--count', default=25, show_default=True, help='Number of sample posts to seed.')
    def db_reset_command(count):
        """Drops, recreates, and seeds the database."""
        from smashpass.services.posts import seed_posts
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_posts(count)
            print(f'Database has been reset and seeded with {count} posts!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
