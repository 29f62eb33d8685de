from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    if flask_app.config['HEARTBEAT_STALE_SEC'] <= flask_app.config['HEARTBEAT_INTERVAL_SEC']:
        raise ValueError('HEARTBEAT_STALE_SEC must be greater than HEARTBEAT_INTERVAL_SEC')

    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])
    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from volleyqueue.main import main
    flask_app.register_blueprint(main)

    from volleyqueue.api.queue import queue
    flask_app.register_blueprint(queue, url_prefix='/api/queue')

    from volleyqueue.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    from volleyqueue.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from volleyqueue.services.rotation.errors import RotationError

    @flask_app.errorhandler(RotationError)
    def handle_rotation_error(exc):
        return jsonify({'error': exc.message, 'kind': exc.kind}), exc.status_code

    from volleyqueue.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required', 'kind': 'unauthenticated'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from volleyqueue.models import User
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users; registration order is the rotation order
            users = ['admin', 'ana', 'joao', 'maria', 'pedro']
            for u in users:
                user = User(username=u, display_name=u.capitalize())
                user.set_password('password')
                user.is_admin = u in flask_app.config['ADMIN_USERNAMES']
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('advance-rotation')
    def advance_rotation_command():
        """Runs a single advance-if-due tick (for cron)."""
        from volleyqueue.services.rotation import engine
        from volleyqueue.services.rotation.notify import broadcast_transition
        with flask_app.app_context():
            result = engine.advance_if_due()
            if result.was_advanced:
                broadcast_transition(result.reason, result.state)
            active = result.state.active_display_name or 'none'
            print(f'active={active} remaining={result.state.remaining_seconds}s '
                  f'advanced={result.was_advanced} reason={result.reason}')

    @click.command('reset-rotation')
    def reset_rotation_command():
        """Clears the turn order and re-seeds it from registered users."""
        from volleyqueue.services.rotation import engine
        with flask_app.app_context():
            state = engine.reset_rotation()
            print(f'Rotation reset with {len(state.members)} members')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(advance_rotation_command)
    flask_app.cli.add_command(reset_rotation_command)

    @flask_app.route('/api/health')
    def health():
        return jsonify({'status': 'ok'})

    return flask_app
