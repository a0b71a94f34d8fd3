import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Settings are read at import time, so the test environment has to be in place first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL") or "sqlite:///./test.db"

import pytest
from fastapi.testclient import TestClient
from app.core.database import Base, SessionLocal, engine
from app.models import department, exam_attempt, leaderboard_cache, security_log, user_profile  # noqa: F401
from app.services.leaderboard import LeaderboardService
from app.utils import deps as deps_utils
import main

test_db_url = os.environ["DATABASE_URL"]

@pytest.fixture(scope="session")
def database_engine():
    yield engine
    engine.dispose()
    if test_db_url.startswith("sqlite") and os.path.exists("./test.db"):
        os.remove("./test.db")

@pytest.fixture(scope="function")
def db_session(database_engine):
    # Worker threads open their own sessions, so every test starts from an empty schema
    Base.metadata.drop_all(bind=database_engine)
    Base.metadata.create_all(bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture(scope="function")
def client(db_session):
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()

@pytest.fixture
def service(db_session):
    return LeaderboardService(session_factory=SessionLocal)
