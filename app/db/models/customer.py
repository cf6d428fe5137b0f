# app/db/models/customer.py

from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        sa.Index("ix_customers_business_id", "business_id"),
    )

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(
        sa.BigInteger, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    full_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    mobile: Mapped[str | None] = mapped_column(sa.String(20))

    # Plans a client may report adherence against; the first one is the default
    assigned_workout_plan_ids: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    assigned_meal_plan_ids: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    business: Mapped["Business"] = relationship(back_populates="customers")
    appointments: Mapped[list["Appointment"]] = relationship(back_populates="customer")
