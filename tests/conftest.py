import pytest

from app import create_app
from config import Config


@pytest.fixture()
def app():
    return create_app(Config(log_level="DEBUG", max_tasks=20))


@pytest.fixture()
def client(app):
    return app.test_client()
