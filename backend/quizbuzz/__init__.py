from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import json
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def get_engine(flask_app=None):
    """Return the GameEngine bound to the given (or current) app."""
    if flask_app is None:
        from flask import current_app
        flask_app = current_app
    return flask_app.extensions['quizbuzz']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Models must be imported before the engine touches the stores
    from quizbuzz import models  # noqa: F401
    from quizbuzz.services.game.engine import GameEngine
    flask_app.extensions['quizbuzz'] = GameEngine.from_config(flask_app.config)

    from quizbuzz.main import main
    flask_app.register_blueprint(main)

    from quizbuzz.api.stats import stats
    flask_app.register_blueprint(stats, url_prefix='/api')

    from quizbuzz.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from quizbuzz.services.stores import PlayerStore
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            store = PlayerStore()
            for name in ['player1', 'player2', 'player3']:
                store.upsert(name, password='password')
            print('Database has been reset and seeded!')

    @click.command('add-player')
    @click.argument('name')
    @click.argument('password')
    def add_player_command(name, password):
        """Creates a player or replaces its password."""
        from quizbuzz.services.stores import PlayerStore
        with flask_app.app_context():
            if name == flask_app.config.get('HOST_NAME'):
                raise click.BadParameter('name is reserved for the host', param_hint='NAME')
            PlayerStore().upsert(name, password=password)
            print(f'Player {name} saved.')

    @click.command('import-quiz')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def import_quiz_command(path):
        """Replaces all questions with a JSON list of {question, answer}."""
        from quizbuzz.services.stores import Question, QuestionStore
        with open(path, encoding='utf-8') as fh:
            raw = json.load(fh)
        if not isinstance(raw, list) or not all(isinstance(i, dict) and 'question' in i for i in raw):
            raise click.ClickException('quiz file must contain a JSON list of {question, answer}')
        questions = [Question(str(item['question']), str(item.get('answer', ''))) for item in raw]
        with flask_app.app_context():
            QuestionStore().replace_all(questions)
        print(f'Imported {len(questions)} questions.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(add_player_command)
    flask_app.cli.add_command(import_quiz_command)

    return flask_app
