import logging
import os

from flask import Flask, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_bcrypt import Bcrypt
from flask_marshmallow import Marshmallow
from marshmallow import ValidationError


db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
bcrypt = Bcrypt()
ma = Marshmallow()

logger = logging.getLogger(__name__)


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    logging.getLogger('petgroom').setLevel(level)


def create_app(config_name=None):
    from petgroom.config import config_by_name

    app = Flask(__name__)

    config_name = config_name or os.getenv('FLASK_ENV', 'default')
    app.config.from_object(config_by_name.get(config_name, config_by_name['default']))

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    CORS(app)
    bcrypt.init_app(app)
    ma.init_app(app)

    from petgroom import models  # noqa: F401  (registers tables on db.metadata)
    from petgroom.database_setup import initialize_database, register_db_commands

    register_db_commands(app)

    if app.config.get('AUTO_INIT_DB'):
        with app.app_context():
            initialize_database()

    # Register blueprints
    from petgroom.routes.auth import auth_bp
    from petgroom.routes.clients import clients_bp
    from petgroom.routes.packages import packages_bp, package_prices_bp
    from petgroom.routes.subscriptions import subscriptions_bp
    from petgroom.routes.schedulings import schedulings_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(clients_bp, url_prefix='/api/clients')
    app.register_blueprint(packages_bp, url_prefix='/api/packages')
    app.register_blueprint(package_prices_bp, url_prefix='/api/package-prices')
    app.register_blueprint(subscriptions_bp, url_prefix='/api/subscriptions')
    app.register_blueprint(schedulings_bp, url_prefix='/api/schedulings')

    @app.route('/api/health')
    def health_check():
        return {
            'status': 'healthy',
            'message': 'Pet grooming API is running!',
            'version': '1.0.0'
        }, 200

    register_error_handlers(app)

    logger.info("Application created with %s config", config_name)
    return app


def register_error_handlers(app):
    from petgroom.errors import ServiceError

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        return error.to_dict(), error.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return {'message': 'Validation failed', 'errors': error.messages}, 400

    @app.errorhandler(404)
    def not_found(error):
        """Custom 404 handler"""
        return {
            'error': 'API endpoint not found',
            'message': f'The endpoint {request.path} does not exist.'
        }, 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return {
            'error': 'Method not allowed',
            'message': f'{request.method} is not supported on {request.path}.'
        }, 405

    @app.errorhandler(500)
    def internal_error(error):
        """Custom 500 handler"""
        original = getattr(error, 'original_exception', None) or error
        logger.error("Unhandled error on %s %s", request.method, request.path,
                     exc_info=(type(original), original, original.__traceback__))
        db.session.rollback()
        return {
            'error': 'Internal server error',
            'message': 'Something went wrong on the server.',
            'suggestion': 'Check server logs for details.'
        }, 500
