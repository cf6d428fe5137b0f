# app/db/models/appointment.py

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    CANCELED = "CANCELED"
    NO_SHOW = "NO_SHOW"


# Statuses that never count as "upcoming"
TERMINAL_STATUSES = frozenset({
    AppointmentStatus.CANCELLED.value,
    AppointmentStatus.CANCELED.value,
    AppointmentStatus.NO_SHOW.value,
})

# Statuses that assert the session did not happen; only valid once it is past
RETRO_STATUSES = frozenset({AppointmentStatus.NO_SHOW.value})


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        sa.Index("ix_appointments_business_customer_date", "business_id", "customer_id", "date"),
    )

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(
        sa.BigInteger, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[int] = mapped_column(
        sa.BigInteger, sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )

    # Business-local wall clock, never UTC
    date: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    start_time: Mapped[str] = mapped_column(sa.String(5), nullable=False)

    duration_min: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=30, server_default="30")
    status: Mapped[str] = mapped_column(
        sa.String(32), nullable=False, default=AppointmentStatus.SCHEDULED.value, server_default="SCHEDULED"
    )
    notes: Mapped[str | None] = mapped_column(sa.Text)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    customer: Mapped["Customer"] = relationship(back_populates="appointments")
