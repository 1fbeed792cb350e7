# app.py
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix
from dotenv import load_dotenv
import os
import logging
import sys

load_dotenv()

from config import Config

from routes.logs_routes import logs_bp
from services.hub import BroadcastHub
from services.realtime import ASYNC_MODE, init_app as init_socketio, socketio
# Los handlers deben registrarse antes de init_app para que cada app los reciba.
import routes.socket_routes  # noqa: F401,E402
from services.throttle import EventThrottle


def _configure_logging(app):
    if app.debug or app.config.get("TESTING"):
        return
    log_format = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    logging.basicConfig(
        level=logging.INFO,
        format=log_format,
        handlers=[
            logging.FileHandler(app.config["LOG_FILE"]),
            logging.StreamHandler(sys.stdout)
        ]
    )


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Honra los encabezados de Nginx cuando estamos detrás de un proxy TLS.
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1, x_port=1)

    _configure_logging(app)

    # El hub vive en memoria: cada proceso (y cada app creada) empieza vacío.
    app.extensions["activity_hub"] = BroadcastHub(capacity=app.config["MAX_LOGS"])
    app.extensions["event_throttle"] = EventThrottle(
        {
            "click": app.config["CLICK_THROTTLE_SECONDS"],
            "scroll": app.config["SCROLL_THROTTLE_SECONDS"],
        }
    )

    app.register_blueprint(logs_bp)
    init_socketio(app)

    logging.getLogger(__name__).info(
        "Activity relay ready (MAX_LOGS=%s, async_mode=%s)",
        app.config["MAX_LOGS"],
        ASYNC_MODE,
    )
    return app


# Objeto WSGI para Gunicorn
running_tests = "PYTEST_CURRENT_TEST" in os.environ or "pytest" in sys.modules
app = None if running_tests else create_app()

if __name__ == '__main__':
    port = int(os.getenv('PORT', Config.PORT))
    logging.getLogger(__name__).info("Traffic monitor running on http://localhost:%s", port)
    socketio.run(app or create_app(), host='0.0.0.0', port=port, allow_unsafe_werkzeug=True)
