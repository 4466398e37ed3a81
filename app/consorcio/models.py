"""
Data models for consortium simulation history.
Stores input/output payloads verbatim for audit and later reloading.
"""
from sqlalchemy import Integer, String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.core.database import Base


class ConsortiumSimulation(Base):
    """Entity representing a stored simulation run."""

    __tablename__ = "simulacoes_consorcio"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    kind: Mapped[str] = mapped_column("tipo", String(20), nullable=False)
    input_payload: Mapped[str] = mapped_column("entrada", Text, nullable=False)  # Serialized JSON
    output_payload: Mapped[str] = mapped_column("saida", Text, nullable=True)  # Serialized JSON
    created_at: Mapped[datetime] = mapped_column("criado_em", DateTime, default=lambda: datetime.now(timezone.utc))
    correlation_id: Mapped[str] = mapped_column(String(100), index=True, nullable=True)

    def __repr__(self):
        return f"<ConsortiumSimulation(id={self.id}, kind={self.kind})>"
