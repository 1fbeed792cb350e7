import os


def _float_env(name, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-activity-relay')
    PORT = int(os.getenv('PORT', 3000))

    # Solo se conservan en memoria los últimos MAX_LOGS eventos; el buffer se
    # reinicia con cada arranque del proceso.
    MAX_LOGS = int(os.getenv('MAX_LOGS', 500))

    CLICK_THROTTLE_SECONDS = _float_env('CLICK_THROTTLE_SECONDS', 0.5)
    SCROLL_THROTTLE_SECONDS = _float_env('SCROLL_THROTTLE_SECONDS', 2.0)

    STREAM_QUEUE_SIZE = int(os.getenv('STREAM_QUEUE_SIZE', 64))
    STREAM_KEEPALIVE_SECONDS = _float_env('STREAM_KEEPALIVE_SECONDS', 15.0)

    BASEDIR = os.path.dirname(os.path.abspath(__file__))
    LOG_FILE = os.getenv('LOG_FILE', os.path.join(BASEDIR, 'app.log'))
