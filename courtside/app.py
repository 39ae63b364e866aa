import logging

from flask import Flask, request, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from flask_cors import CORS
from sqlalchemy import inspect, text
from courtside.config import config
from courtside.errors import CourtsideError

db = SQLAlchemy()
socketio = SocketIO()

logger = logging.getLogger(__name__)


def _parse_allowed_origins(raw_origins):
    if not raw_origins:
        return '*'

    if isinstance(raw_origins, (list, tuple, set)):
        cleaned = [origin for origin in raw_origins if origin]
        return cleaned or '*'

    raw_text = str(raw_origins).strip()
    if not raw_text or raw_text == '*':
        return '*'

    origins = [origin.strip() for origin in raw_text.split(',') if origin.strip()]
    return origins or '*'


def _configure_logging(app):
    level = logging.getLevelName(str(app.config.get('LOG_LEVEL', 'INFO')).upper())
    if not isinstance(level, int):
        level = logging.INFO
    package_logger = logging.getLogger('courtside')
    package_logger.setLevel(level)
    if not logging.getLogger().handlers and not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s: %(message)s'
        ))
        package_logger.addHandler(handler)


def _ensure_query_indexes():
    """Composite indexes for the hot park, check-in and game queries."""
    table_names = inspect(db.engine).get_table_names()
    if 'park' not in table_names:
        return

    with db.engine.begin() as connection:
        connection.execute(text(
            'CREATE INDEX IF NOT EXISTS ix_park_review_status ON park (review_status, approved)'
        ))
        if 'check_in' in table_names:
            connection.execute(text(
                'CREATE INDEX IF NOT EXISTS ix_check_in_user_time '
                'ON check_in (user_id, check_in_time)'
            ))
        if 'game' in table_names:
            connection.execute(text(
                'CREATE INDEX IF NOT EXISTS ix_game_park_status_time '
                'ON game (park_id, status, scheduled_time)'
            ))


def broadcast_park_update(park_id, action, **payload):
    """Tell park watchers to re-fetch."""
    from flask import current_app
    if not current_app.config.get('BROADCAST_PARK_UPDATES', True):
        return
    socketio.emit('park_update', {'park_id': park_id, 'action': action, **payload})


def create_app(config_name='development'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    _configure_logging(app)

    allowed_origins = _parse_allowed_origins(app.config.get('CORS_ALLOWED_ORIGINS', '*'))
    if str(config_name).strip().lower() == 'production':
        secret_key = str(app.config.get('SECRET_KEY') or '').strip()
        if not secret_key or secret_key == 'dev-secret-key-change-in-prod':
            raise RuntimeError('SECRET_KEY must be set to a non-default value in production')
        if allowed_origins == '*':
            raise RuntimeError('CORS_ALLOWED_ORIGINS must be explicitly set in production')

    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
    )
    CORS(app, resources={r'/api/*': {'origins': allowed_origins}})

    @app.before_request
    def _enforce_origin_for_mutating_api_requests():
        if request.method in {'GET', 'HEAD', 'OPTIONS'}:
            return None
        if not request.path.startswith('/api/'):
            return None

        origin = str(request.headers.get('Origin') or '').strip()
        if not origin:
            return None

        configured_origins = _parse_allowed_origins(
            app.config.get('CORS_ALLOWED_ORIGINS', '*')
        )
        if configured_origins != '*' and origin not in configured_origins:
            return jsonify({'error': 'Invalid request origin'}), 403

        auth_header = str(request.headers.get('Authorization') or '').strip()
        if not auth_header:
            return None

        csrf_header = request.headers.get('X-CSRF-Token')
        from courtside.auth_utils import csrf_token_matches
        if not csrf_token_matches(auth_header, csrf_header):
            return jsonify({'error': 'Invalid CSRF token'}), 403
        return None

    @app.errorhandler(CourtsideError)
    def _handle_courtside_error(exc):
        # Drop any half-applied change from the failed unit of work.
        db.session.rollback()
        logger.debug('Request to %s rejected: %s', request.path, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    from courtside.routes.auth import auth_bp
    from courtside.routes.users import users_bp
    from courtside.routes.parks import parks_bp
    from courtside.routes.checkins import checkins_bp
    from courtside.routes.games import games_bp
    from courtside.routes.groups import groups_bp
    from courtside.routes.reviews import reviews_bp
    from courtside.routes.reports import reports_bp
    from courtside.routes.invites import invites_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(parks_bp, url_prefix='/api/parks')
    app.register_blueprint(checkins_bp, url_prefix='/api/checkins')
    app.register_blueprint(games_bp, url_prefix='/api/games')
    app.register_blueprint(groups_bp, url_prefix='/api/groups')
    app.register_blueprint(reviews_bp, url_prefix='/api/reviews')
    app.register_blueprint(reports_bp, url_prefix='/api/reports')
    app.register_blueprint(invites_bp, url_prefix='/api/invites')

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok'})

    from courtside.services import build_services
    app.extensions['courtside'] = build_services(app.config)

    with app.app_context():
        from courtside import models  # noqa: F401
        db.create_all()
        _ensure_query_indexes()

    logger.info('Courtside app created with %s config', config_name)
    return app
