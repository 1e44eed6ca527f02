"""SQLAlchemy ORM models for energy bills and their processing log."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from energy_bills.utils.hashing import FINGERPRINT_LENGTH


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class EnergyBill(Base):
    __tablename__ = "energy_bills"
    __table_args__ = (
        # One first-time upload per fingerprint; reprocess attempts chain through supersedes_id
        Index(
            "uq_energy_bills_file_hash_original",
            "file_hash",
            unique=True,
            postgresql_where=text("supersedes_id IS NULL"),
            sqlite_where=text("supersedes_id IS NULL"),
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    # Extracted fields, NULL until COMPLETED
    customer_number: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    reference_month: Mapped[str | None] = mapped_column(String(16), index=True, nullable=True)
    electric_energy_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    electric_energy_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    sceee_energy_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    sceee_energy_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    gd_compensated_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    gd_compensated_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    public_lighting_contrib: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Derived metrics
    total_energy_consumption: Mapped[float | None] = mapped_column(Float, nullable=True)
    compensated_energy_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_value_without_gd: Mapped[float | None] = mapped_column(Float, nullable=True)
    gd_economy: Mapped[float | None] = mapped_column(Float, nullable=True)

    # File metadata
    original_file_name: Mapped[str] = mapped_column(String(512))
    file_path: Mapped[str] = mapped_column(String(1024))
    file_size: Mapped[int] = mapped_column(Integer)
    file_hash: Mapped[str] = mapped_column(String(FINGERPRINT_LENGTH), index=True)

    status: Mapped[str] = mapped_column(String(20), index=True)  # PENDING, PROCESSING, COMPLETED, FAILED
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    supersedes_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("energy_bills.id", ondelete="SET NULL"), unique=True, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ProcessingLog(Base):
    """Append-only audit trail of pipeline steps for a bill."""
    __tablename__ = "processing_logs"

    log_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    bill_id: Mapped[UUID] = mapped_column(ForeignKey("energy_bills.id", ondelete="CASCADE"), index=True)
    operation: Mapped[str] = mapped_column(String(100), index=True)  # upload_started, processing_completed, processing_failed
    status: Mapped[str] = mapped_column(String(20))  # success, error
    message: Mapped[str] = mapped_column(Text)
    details: Mapped[dict | None] = mapped_column("details_json", JSON, nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
