"""
Shared pytest fixtures — in‑memory SQLite + FastAPI TestClient.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models import ReceiptModel  # noqa: F401  — register model
from app.main import app

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def session_factory():
    return _Session


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def asgi_app():
    """The app wired to the in-memory database, without running lifespan."""
    def _override():
        session = _Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override
    yield app
    app.dependency_overrides.clear()


RECEIPT = {
    "merchant": "Cafe Luna",
    "date": "2024-03-01",
    "amount": 42.5,
    "currency": "USD",
    "category": "Food & Drinks",
}


@pytest.fixture()
def receipt_payload():
    return dict(RECEIPT)
