"""
db/models/procedure_production.py

One procedure-production event per patient, procedure and service day.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class ProcedureProduction(Base):
    __tablename__ = "procedure_production"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    )
    procedure_code: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        default="Agendado",
        comment="Agendado, Em Produção, Consulta/Molde, Agendado Entrega, Finalizado, Cancelado, Em Atendimento",
    )
    date_service: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    service_day: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="UTC calendar day of date_service; duplicate detection granularity",
    )
    date_delivery: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    date_cancellation: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    date_scheduling: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sia_processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "patient_id",
            "procedure_code",
            "service_day",
            name="uq_procedure_production_event",
        ),
        Index("ix_procedure_production_patient_id", "patient_id"),
        Index("ix_procedure_production_procedure_code", "procedure_code"),
        Index("ix_procedure_production_status", "status"),
        Index("ix_procedure_production_date_service", "date_service"),
    )
