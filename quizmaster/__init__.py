"""
Application Factory
Creates and configures the Flask application
"""
import logging

from flask import Flask

from quizmaster.config import get_config
from quizmaster.extensions import db, socketio
from quizmaster.utils.helpers import to_local_time
from quizmaster.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """
    Application factory pattern
    Creates and configures Flask app
    """
    app = Flask(__name__, template_folder='../templates')

    # Load configuration
    if config_name:
        from quizmaster.config import config
        app.config.from_object(config[config_name])
    else:
        app.config.from_object(get_config())

    configure_logging(app.config['LOG_LEVEL'])

    # Initialize extensions
    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=app.config['SOCKETIO_CORS_ALLOWED_ORIGINS'],
        async_mode=app.config['SOCKETIO_ASYNC_MODE']
    )

    app.jinja_env.filters['localtime'] = to_local_time

    # Register blueprints
    from quizmaster.routes import auth_bp, public_bp, student_bp, teacher_bp

    app.register_blueprint(public_bp)
    app.register_blueprint(student_bp, url_prefix='/quiz')
    app.register_blueprint(auth_bp, url_prefix='/teacher')
    app.register_blueprint(teacher_bp, url_prefix='/teacher')

    # Register Socket.IO events
    from quizmaster.sockets import register_socket_events
    register_socket_events()

    # Create database tables
    with app.app_context():
        db.create_all()
        logger.info('Database tables created/verified')

    return app
