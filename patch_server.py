#!/usr/bin/env python3
"""
Patch Server - HTTP tool surface for the DMX patch engine

Serves channel maps, auto-assignment, manual validation and batch
planning for lighting projects. Fixture records live in the
lighting-control service; this server only reads them.

Configuration (environment):
- PATCH_API_PORT: Port to listen on (default 8895)
- PATCH_CORS_ORIGINS: Extra allowed origins, comma-separated
- PATCH_LOG_LEVEL: Root log level (default INFO)
- LACYLIGHTS_GRAPHQL_ENDPOINT / LACYLIGHTS_REQUEST_TIMEOUT: see
  services.lighting_service
"""

import os
import logging

from flask import Flask, jsonify
from flask_cors import CORS

from blueprints.patch_bp import patch_bp, init_app as patch_init
from core.patch import PatchEngine, __version__
from services.lighting_service import get_inventory_client

API_PORT = int(os.environ.get('PATCH_API_PORT', 8895))
LOG_LEVEL = os.environ.get('PATCH_LOG_LEVEL', 'INFO').upper()

# Default allowed origins for local deployment
# Add custom origins via PATCH_CORS_ORIGINS environment variable (comma-separated)
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8895",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8895",
]


def get_allowed_origins():
    """Get list of allowed CORS origins from defaults + environment"""
    origins = DEFAULT_CORS_ORIGINS.copy()
    env_origins = os.environ.get('PATCH_CORS_ORIGINS', '')
    if env_origins:
        for origin in env_origins.split(','):
            origin = origin.strip()
            if origin and origin not in origins:
                origins.append(origin)
    return origins


def create_app(engine=None):
    """
    Build the Flask app.

    Args:
        engine: PatchEngine to serve; defaults to one backed by the
            shared lighting inventory client
    """
    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": get_allowed_origins()}})

    patch_init(engine or PatchEngine(get_inventory_client()))
    app.register_blueprint(patch_bp)

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok", "version": __version__})

    return app


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    app = create_app()
    logging.getLogger(__name__).info(f"Patch server listening on port {API_PORT}")
    app.run(host='0.0.0.0', port=API_PORT)


if __name__ == '__main__':
    main()
