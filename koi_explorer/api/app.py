from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from ..config import Settings, load_settings
from ..logging_config import configure_logging
from ..ui.views import ui_bp
from .proxy import proxy_bp

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> Flask:
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config['KOI_SETTINGS'] = settings
    app.secret_key = settings.secret_key

    # Fully open: any origin, GET only; flask-cors answers OPTIONS preflight
    CORS(app, send_wildcard=True, methods=['GET', 'OPTIONS'])

    app.register_blueprint(proxy_bp)
    app.register_blueprint(ui_bp)

    @app.errorhandler(405)
    def method_not_allowed(_exc):
        return jsonify({'error': 'Method not allowed'}), 405

    return app


if __name__ == '__main__':  # pragma: no cover - manual launch helper
    settings = load_settings()
    configure_logging(force_format=settings.log_format)
    app = create_app(settings)
    logger.info('Proxy server running on http://localhost:%s', settings.port)
    app.run(host='0.0.0.0', port=settings.port)
