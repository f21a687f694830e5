import pytest

from app import create_app
from models import db


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SIMULATION_ITERATIONS': 300,
        'SIMULATION_TIMEOUT_MS': 2000,
        'FALLBACK_ATTEMPTS': 20,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
