"""Shared test fixtures."""
import sys
import textwrap

import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.base import Base


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created, shared across threads."""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import app.models.event
    import app.models.scout_run
    import app.models.scout_target
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite."""
    Session = sessionmaker(bind=db_engine, expire_on_commit=False)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def make_scout(tmp_path):
    """Factory fixture — writes a fake scraper script and returns a supervisor that runs it."""
    from app.services.scout_supervisor import ScoutSupervisor

    def _make(body, test_timeout=10.0):
        script = tmp_path / 'fake_scout.py'
        script.write_text(textwrap.dedent(body))
        return ScoutSupervisor(
            command=[sys.executable, str(script)],
            workdir=str(tmp_path),
            test_timeout=test_timeout,
        )
    return _make


@pytest.fixture
def mock_supervisor():
    """Supervisor stand-in for route tests."""
    from app.services.scout_supervisor import ScoutSupervisor
    mock = MagicMock(spec=ScoutSupervisor)
    mock.is_alive.return_value = False
    mock.live_run_ids.return_value = []
    return mock


@pytest.fixture
def client(db_session, mock_supervisor):
    """FastAPI test client with the DB session and supervisor overridden."""
    from fastapi.testclient import TestClient
    from app.main import app
    from app.models.base import get_sync_db
    from app.services.scout_supervisor import get_supervisor

    def _db():
        yield db_session

    app.dependency_overrides[get_sync_db] = _db
    app.dependency_overrides[get_supervisor] = lambda: mock_supervisor
    yield TestClient(app)
    app.dependency_overrides.clear()
