"""Shared fixtures for PhotoDater tests."""
import os

import pytest

# Set testing environment before imports
os.environ['FLASK_ENV'] = 'testing'


@pytest.fixture
def app(tmp_path):
    """Create application backed by a temporary SQLite database."""
    from photodater import create_app, db

    app = create_app('testing', overrides={
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'UPLOAD_FOLDER': tmp_path / 'uploads',
    })

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Test client for HTTP requests."""
    return app.test_client()
