import logging
import os

import matplotlib
matplotlib.use('Agg')  # Use non-GUI backend for server
from flask import Flask, current_app, g, jsonify
from flask_login import LoginManager, current_user

from .db import db, UserDB, ensure_admin_user
from .session import SessionContext, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

login_manager = LoginManager()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(UserDB, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'error': 'Auth required'}), 401


def _env_config():
    return {
        'SECRET_KEY': os.environ.get('SECRET_KEY', 'dev-insecure-change-me'),
        'SQLALCHEMY_DATABASE_URI': os.environ.get('EVVIEWER_DATABASE_URL') or 'sqlite:///ev_viewer.db',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': os.environ.get('EVVIEWER_LOG_LEVEL', 'INFO'),
        'TIMEZONE': os.environ.get('EVVIEWER_TIMEZONE', 'UTC'),
        'AUTH_TIMEOUT': float(os.environ.get('EVVIEWER_AUTH_TIMEOUT', DEFAULT_TIMEOUT)),
        'ADMIN_EMAIL': os.environ.get('EVVIEWER_ADMIN_EMAIL'),
        'ADMIN_PASSWORD': os.environ.get('EVVIEWER_ADMIN_PASSWORD'),
    }


def configure_logging(level):
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger('ev_viewer').setLevel(level)


def create_app(config=None, testing=False):
    app = Flask(__name__)
    app.config.update(_env_config())
    if testing:
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
    if config:
        app.config.update(config)
    configure_logging(app.config['LOG_LEVEL'])

    db.init_app(app)
    login_manager.init_app(app)

    from .auth import auth_bp
    from .projects import projects_bp
    from .records import records_bp
    from .cli import register_commands
    app.register_blueprint(auth_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(records_bp)
    register_commands(app)
    _register_session_hooks(app)
    _register_error_handlers(app)

    with app.app_context():
        db.create_all()
        ensure_admin_user(db.session, app.config.get('ADMIN_EMAIL'), app.config.get('ADMIN_PASSWORD'))

    @app.get('/')
    def index():
        return jsonify({'status': 'ok'})  # simple health indicator

    logger.info('EV project viewer ready (db=%s)', app.config['SQLALCHEMY_DATABASE_URI'])
    return app


def _register_session_hooks(app):
    @app.before_request
    def open_session_context():
        ctx = SessionContext(timeout=current_app.config['AUTH_TIMEOUT'])
        ctx.initialize().subscribe(current_app._get_current_object())
        g.auth = ctx
        try:
            ctx.resolve(current_user._get_current_object())
        except Exception as e:
            ctx.fail(e)

    @app.teardown_request
    def close_session_context(exc):
        ctx = g.pop('auth', None)
        if ctx is not None:
            ctx.teardown()

    @app.context_processor
    def inject_auth():
        return {'auth': g.get('auth')}


def _register_error_handlers(app):
    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({'success': False, 'error': 'Not authorized'}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'error': 'Not found'}), 404
