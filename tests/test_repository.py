"""
Unit tests for simulation history storage.
Runs the database repository against an in-memory SQLite database.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.consorcio.repository import InMemorySimulationRepository, SqlAlchemySimulationRepository
from app.consorcio.schemas import RecordKind

# Setup In-Memory Database for Testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(params=["memory", "sqlalchemy"])
def repository(request, db):
    if request.param == "memory":
        return InMemorySimulationRepository()
    return SqlAlchemySimulationRepository(db)


def test_add_and_get(repository):
    payload_in = {"credit": 100000.0, "term_months": 100}
    payload_out = {"installment_value": 1200.0, "remaining_installment_count": 69}

    record = repository.add(RecordKind.SIMULATION, payload_in, payload_out, "corr-1")
    fetched = repository.get(record.id)

    assert fetched is not None
    assert fetched.kind is RecordKind.SIMULATION
    assert fetched.input == payload_in
    assert fetched.output == payload_out
    assert fetched.correlation_id == "corr-1"


def test_ids_are_sequential(repository):
    first = repository.add(RecordKind.CONSTRUCTION, {"credit": 1.0}, None)
    second = repository.add(RecordKind.COMPARISON, {"value": 2.0}, None)

    assert second.id == first.id + 1
    assert repository.get(first.id).output is None


def test_missing_record(repository):
    assert repository.get(42) is None
