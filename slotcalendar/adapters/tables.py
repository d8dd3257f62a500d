"""
SQLAlchemy table definitions for slots and slot exceptions.
"""

import datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..domain.models import Slot, SlotException


class Base(DeclarativeBase):
    pass


class SlotRow(Base):
    __tablename__ = "slots"
    # Capacity of two per day is enforced by the store, the index only serves the lookups
    __table_args__ = (Index("idx_day_active", "day_of_week", "is_active"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Sunday
    start_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    effective_from: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    effective_until: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)

    exceptions: Mapped[list["SlotExceptionRow"]] = relationship(
        "SlotExceptionRow",
        back_populates="slot",
        cascade="all, delete-orphan",
    )

    def to_domain(self) -> Slot:
        return Slot(
            id=self.id,
            title=self.title,
            description=self.description,
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            is_recurring=self.is_recurring,
            effective_from=self.effective_from,
            effective_until=self.effective_until,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SlotExceptionRow(Base):
    __tablename__ = "slot_exceptions"
    __table_args__ = (
        UniqueConstraint("slot_id", "exception_date", name="unique_slot_exception_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    slot_id: Mapped[str] = mapped_column(
        ForeignKey("slots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    exception_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[datetime.time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[datetime.time | None] = mapped_column(Time, nullable=True)
    is_cancelled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)

    slot: Mapped[SlotRow] = relationship("SlotRow", back_populates="exceptions")

    def to_domain(self) -> SlotException:
        return SlotException(
            id=self.id,
            slot_id=self.slot_id,
            exception_date=self.exception_date,
            start_time=self.start_time,
            end_time=self.end_time,
            is_cancelled=self.is_cancelled,
            reason=self.reason,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
