"""Shared test fixtures."""
from datetime import datetime, timezone

import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from leadcascade.database import Base

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

# Modules that do `from leadcascade.database import get_session` at import time
_SESSION_USERS = [
    'leadcascade.database',
    'leadcascade.services.config_store',
    'leadcascade.services.convergence',
    'leadcascade.services.escalation',
    'leadcascade.services.metrics',
    'leadcascade.services.orchestrator',
    'leadcascade.services.responsibility',
]


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import leadcascade.models.cascade_config
    import leadcascade.models.cascade_entry
    import leadcascade.models.responsibility_change
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def TestSession(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(TestSession):
    """Session for assertions. Rolls back after each test."""
    session = TestSession()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(TestSession):
    """
    Route every get_session() call to a new session on the in-memory engine.

    Each module binds get_session at import time, so each binding is patched.
    Fresh sessions per call let production code close() freely.
    """
    patches = [patch(f'{mod}.get_session', side_effect=lambda: TestSession()) for mod in _SESSION_USERS]
    for p in patches:
        p.start()
    yield TestSession
    for p in patches:
        p.stop()


@pytest.fixture(autouse=True)
def _reset_listeners():
    from leadcascade.services import responsibility
    responsibility.clear_listeners()
    yield
    responsibility.clear_listeners()


@pytest.fixture
def mock_redis():
    """Mock Redis client. Returns a MagicMock with common Redis methods."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.set.return_value = True
    with patch('leadcascade.extensions.redis_client', mock):
        yield mock


@pytest.fixture
def app():
    """Flask test app (scheduler thread off)."""
    from leadcascade import create_app
    app = create_app(start_scheduler=False)
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def make_config():
    """Factory fixture — stores an active CascadeConfig and returns its dict."""
    from leadcascade.services import config_store

    def _make(**overrides):
        data = dict(queue=[1, 2, 3], sla_hours_per_step=1)
        data.update(overrides)
        return config_store.create_config(data)
    return _make


@pytest.fixture
def entries(TestSession):
    """Callable returning a client's entries (fresh session) ordered by sequence."""
    from leadcascade.models.cascade_entry import CascadeEntry

    def _entries(cliente_id):
        session = TestSession()
        try:
            rows = session.execute(
                select(CascadeEntry)
                .where(CascadeEntry.cliente_id == cliente_id)
                .order_by(CascadeEntry.sequence)
            ).scalars()
            return [e.to_dict() for e in rows]
        finally:
            session.close()
    return _entries
