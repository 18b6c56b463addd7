from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env.test"
load_dotenv(env_file)

import uuid  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.progress.services.progress_service import ProgressService  # noqa: E402
from tests.utils.factories import create_learning_path  # noqa: E402


@pytest.fixture
def memory_engine():
    """In-memory SQLite shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(memory_engine):
    return sessionmaker(bind=memory_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def progress_service(db_session):
    return ProgressService(db_session)


@pytest.fixture
def learning_path(db_session):
    """Three published videos (orders 1..3, 600 s each), one quiz per video."""
    return create_learning_path(db_session, count=3)


@pytest.fixture
def learner_id():
    return uuid.uuid4()


@pytest.fixture
def admin_id():
    return uuid.uuid4()


@pytest.fixture
def test_user_token(learner_id):
    return create_access_token({"sub": str(learner_id), "role": "learner"})


@pytest.fixture
def test_admin_token(admin_id):
    return create_access_token({"sub": str(admin_id), "role": "admin"})


@pytest.fixture
async def test_app(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def test_client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client
