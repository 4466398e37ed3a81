"""
Simulation history storage.
The engine never touches storage: routes receive a repository through dependency injection.
The database-backed repository is used in production, the in-memory one when no database is configured.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Any, Dict, Generator, Optional, Protocol

from sqlalchemy.orm import Session

from app.consorcio.models import ConsortiumSimulation
from app.consorcio.schemas import RecordKind
from app.core.database import SessionLocal, engine
from app.core.logger import logger


@dataclass(frozen=True)
class SimulationRecord:
    """A stored input/output pair."""
    id: int
    kind: RecordKind
    input: Dict[str, Any]
    output: Optional[Dict[str, Any]]
    correlation_id: Optional[str]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SimulationRepository(Protocol):
    """Storage capability for simulation history."""

    def add(
        self,
        kind: RecordKind,
        input_payload: Dict[str, Any],
        output_payload: Optional[Dict[str, Any]],
        correlation_id: Optional[str] = None
    ) -> SimulationRecord:
        ...

    def get(self, record_id: int) -> Optional[SimulationRecord]:
        ...


class InMemorySimulationRepository:
    """Process-local history. Records are lost on restart."""

    def __init__(self):
        self._records: Dict[int, SimulationRecord] = {}
        self._ids = count(1)
        self._lock = Lock()

    def add(
        self,
        kind: RecordKind,
        input_payload: Dict[str, Any],
        output_payload: Optional[Dict[str, Any]],
        correlation_id: Optional[str] = None
    ) -> SimulationRecord:
        with self._lock:
            record = SimulationRecord(
                id=next(self._ids),
                kind=kind,
                input=input_payload,
                output=output_payload,
                correlation_id=correlation_id,
            )
            self._records[record.id] = record
        logger.info(f"Simulation stored in memory: id={record.id}")
        return record

    def get(self, record_id: int) -> Optional[SimulationRecord]:
        return self._records.get(record_id)


class SqlAlchemySimulationRepository:
    """History persisted in the `simulacoes_consorcio` table."""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _to_record(row: ConsortiumSimulation) -> SimulationRecord:
        return SimulationRecord(
            id=row.id,
            kind=RecordKind(row.kind),
            input=json.loads(row.input_payload),
            output=json.loads(row.output_payload) if row.output_payload else None,
            correlation_id=row.correlation_id,
            created_at=row.created_at,
        )

    def add(
        self,
        kind: RecordKind,
        input_payload: Dict[str, Any],
        output_payload: Optional[Dict[str, Any]],
        correlation_id: Optional[str] = None
    ) -> SimulationRecord:
        row = ConsortiumSimulation(
            kind=kind.value,
            input_payload=json.dumps(input_payload, default=str),
            output_payload=json.dumps(output_payload, default=str) if output_payload is not None else None,
            correlation_id=correlation_id
        )

        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)

        logger.info(f"Simulation persisted: id={row.id}")
        return self._to_record(row)

    def get(self, record_id: int) -> Optional[SimulationRecord]:
        row = self.db.query(ConsortiumSimulation).filter(
            ConsortiumSimulation.id == record_id
        ).first()
        return self._to_record(row) if row else None


_memory_repository = InMemorySimulationRepository()


def get_repository() -> Generator[SimulationRepository, None, None]:
    """FastAPI dependency selecting the history backend from configuration."""
    if engine is None:
        yield _memory_repository
        return

    db = SessionLocal()
    try:
        yield SqlAlchemySimulationRepository(db)
    finally:
        db.close()
