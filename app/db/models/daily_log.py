# app/db/models/daily_log.py

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base


class WorkoutStatus(str, Enum):
    PLANNED = "PLANNED"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class NutritionStatus(str, Enum):
    FOLLOWED = "FOLLOWED"
    PARTIALLY_FOLLOWED = "PARTIALLY_FOLLOWED"
    NOT_FOLLOWED = "NOT_FOLLOWED"


class DailyLog(Base):
    """One row per (owner, local date), holding both adherence facets."""

    __tablename__ = "daily_logs"
    __table_args__ = (
        sa.UniqueConstraint("owner_id", "date", name="uq_daily_logs_owner_id_date"),
    )

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        sa.BigInteger, sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[str] = mapped_column(sa.String(10), nullable=False)

    # Workout facet (null status means implicitly PLANNED)
    workout_status: Mapped[str | None] = mapped_column(sa.String(16))
    workout_plan_id: Mapped[str | None] = mapped_column(sa.String(64))
    workout_client_note: Mapped[str | None] = mapped_column(sa.Text)
    workout_reported_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))

    # Nutrition facet
    nutrition_status: Mapped[str | None] = mapped_column(sa.String(24))
    meal_plan_id: Mapped[str | None] = mapped_column(sa.String(64))
    nutrition_client_note: Mapped[str | None] = mapped_column(sa.Text)
    nutrition_client_note_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
    nutrition_reported_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
    # Written by the coach, independent of the client report
    nutrition_coach_note: Mapped[str | None] = mapped_column(sa.Text)
    nutrition_coach_note_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))

    flagged: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, server_default=sa.false())

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
