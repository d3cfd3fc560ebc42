import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bookloop.db import Base, get_db
from bookloop.dependencies import get_cache
from bookloop.main import app
from bookloop.models.db_models import Account
from bookloop.services.cache import StatsCache
from tests.factories import ALICE_ID, BOB_ID, CAROL_ID, FakeRedis


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def accounts(db_session):
    db_session.add_all(
        [
            Account(id=ALICE_ID, name="Alice Reader", email="alice@example.com", phone="555-0001", location="Portland, OR"),
            Account(id=BOB_ID, name="Bob Browser", email="bob@example.com", phone="555-0002", location="Austin, TX"),
            Account(id=CAROL_ID, name="Carol Gone", email="carol@example.com", location="Portland, OR", is_active=False),
        ]
    )
    db_session.commit()
    return {"alice": ALICE_ID, "bob": BOB_ID, "carol": CAROL_ID}


@pytest.fixture
def client(session_factory, fake_redis, accounts):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: StatsCache(fake_redis)
    yield TestClient(app)
    app.dependency_overrides.clear()
