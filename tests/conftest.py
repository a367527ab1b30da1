from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from src.shortlink.core.config import Settings
from src.shortlink.db.session import open_db
from src.shortlink.main import create_app


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / 'urls.sqlite'


@pytest.fixture
def settings(db_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        db_url=str(db_path),
        password=None,
        public_mode=False,
        redirect_method='PERMANENT',
        site_url=None,
        short_code_length=8,
        max_generation_attempts=10,
    )


@pytest.fixture
def session_factory(db_path: Path) -> sessionmaker:
    factory = open_db(str(db_path))
    yield factory
    factory.kw['bind'].dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_client():
    """Build a TestClient for the given settings."""
    clients = []

    def _make(settings: Settings) -> TestClient:
        client = TestClient(create_app(settings))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def client(make_client, settings: Settings) -> TestClient:
    return make_client(settings)


@pytest.fixture
def logged_in_client(client: TestClient) -> TestClient:
    response = client.post('/api/login', json={'password': ''})
    assert response.status_code == 200
    return client
