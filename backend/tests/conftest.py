import os

# Precisa vir antes de qualquer import de chat_history (settings é lido no import)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chat_history import models
from chat_history.core.database import get_db
from chat_history.ingestion.service import IngestionService

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Instante de referência dos testes (UTC sem timezone)
NOW = datetime(2026, 10, 17, 12, 30)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db_session():
    models.Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        models.Base.metadata.drop_all(bind=engine)


@pytest.fixture
def ingestion(db_session):
    return IngestionService(db_session)


@pytest.fixture
def submit(ingestion):
    """Atalho para gravar mensagens com created_at explícito."""
    def _submit(session_id="abc", sender="user", text="hello", created_at=NOW, **kwargs):
        return ingestion.submit_message(
            session_id=session_id, sender=sender, text=text, created_at=created_at, **kwargs
        )
    return _submit


@pytest.fixture
def client(db_session):
    from chat_history.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
