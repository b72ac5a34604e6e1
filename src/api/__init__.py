"""
OpenShelf API Package.

This package contains the Flask blueprints for the OpenShelf API.

Blueprints:
- catalog: Catalog state, entries and access credentials
- governance: Roles, pause, super admin transfer and emergency recovery
- monitoring: Health checks and metrics
"""

import logging

from dotenv import load_dotenv
from flask import Flask, jsonify

from api import state
from api.catalog import catalog_bp
from api.governance import governance_bp
from api.monitoring import monitoring_bp
from api.utils import error_response
from errors import CatalogError
from monitoring.middleware import setup_request_logging
from storage import StorageError

logger = logging.getLogger(__name__)

# List of all blueprints for registration
# Tuple format: (blueprint, url_prefix); None keeps the blueprint's own prefix
ALL_BLUEPRINTS = [
    (catalog_bp, None),      # /catalog/...
    (governance_bp, None),   # /governance/...
    (monitoring_bp, ''),     # /health, /metrics at root
]


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    for blueprint, url_prefix in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=url_prefix)


def register_error_handlers(app):
    """Map catalog and storage failures to JSON responses."""

    @app.errorhandler(CatalogError)
    def catalog_error(error: CatalogError):
        return error_response(error)

    @app.errorhandler(StorageError)
    def storage_error(error: StorageError):
        logger.error(f"Storage error: {error}")
        return jsonify({"error": "Storage unavailable", "code": "StorageError"}), 503

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        return jsonify({"error": "Internal server error"}), 500


def create_app(service=None) -> Flask:
    """
    Build the Flask application.

    Args:
        service: CatalogService to serve; created from the environment
            (after loading .env) when omitted
    """
    load_dotenv()

    app = Flask(__name__)
    app.json.sort_keys = False

    if service is not None:
        state.set_service(service)
    else:
        service = state.get_service()

    setup_request_logging(app, service.metrics)
    register_blueprints(app)
    register_error_handlers(app)
    return app
