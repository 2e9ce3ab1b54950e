import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  테이블 등록
from database.db import Base, get_db
from main import app
from services.data_source import LedgerHealth
from services.record_store import RecordStore


@pytest.fixture
def engine():
    # 테스트마다 새 인메모리 DB (커넥션 하나를 공유해야 테이블이 유지됨)
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def client(session_factory):
    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.state.ledger_health = LedgerHealth(None)
    # lifespan 은 실행하지 않음 (실제 DB 파일/원장 폴링 없이 테스트)
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.ledger_health = LedgerHealth(None)
