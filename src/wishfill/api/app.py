"""
Flask application factory for Wishfill.
"""
from typing import Optional

from flask import Flask
from flask_cors import CORS

from .. import __version__
from ..config import Config
from ..logger import get_logger
from ..services.runner import ExtractionService, build_service
from .routes import api_bp

logger = get_logger(__name__)


def create_app(service: Optional[ExtractionService] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        service: Extraction service to serve; the process-wide one is
            started when omitted (tests pass a fake)

    Returns:
        Configured Flask app instance
    """
    app = Flask(__name__)

    # Configure app
    app.config['SECRET_KEY'] = Config.SECRET_KEY
    app.config['ENV'] = Config.FLASK_ENV
    app.json.sort_keys = False

    # Enable CORS with configured origins
    cors_origins = Config.get_cors_origins()
    if cors_origins == ["*"]:
        CORS(app)
    else:
        CORS(app, origins=cors_origins)

    app.extensions['wishfill'] = service if service is not None else build_service()

    # Register blueprints
    app.register_blueprint(api_bp)

    # Health check
    @app.route('/health')
    def health():
        """Health check endpoint."""
        return {'status': 'healthy', 'version': __version__}

    # Log configuration
    logger.info("Flask app created")
    logger.info(f"Configuration: {Config.get_summary()}")

    # Validate configuration
    errors = Config.validate()
    if errors:
        logger.warning(f"Configuration warnings: {errors}")

    return app
