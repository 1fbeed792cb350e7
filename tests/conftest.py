import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "MAX_LOGS": 3, "STREAM_KEEPALIVE_SECONDS": 0.05})
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def hub(app):
    return app.extensions["activity_hub"]
