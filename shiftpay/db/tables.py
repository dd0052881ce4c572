from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .session import Base


class ProfileRow(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=True)
    cadence = Column(String(16), nullable=False, default="biweekly")  # weekly|biweekly|monthly
    reference_date = Column(Date, nullable=True)
    base_rate_cents = Column(BigInteger, nullable=True)
    regular_hours_per_period = Column(Integer, nullable=False, default=80)


class SchedulePatternRow(Base):
    __tablename__ = "schedule_patterns"

    id = Column(String(36), primary_key=True)
    owner_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    kind = Column(String(16), nullable=False)  # weekly|rotating
    start_minute = Column(Integer, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    break_minutes = Column(Integer, nullable=False, default=0)
    weekday_mask = Column(Integer, nullable=False, default=0)  # bit n set = weekday n (Monday is 0)
    anchor_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    rotation_days = relationship(
        "RotationDayRow",
        cascade="all, delete-orphan",
        order_by="RotationDayRow.position",
    )


class RotationDayRow(Base):
    __tablename__ = "rotation_days"
    __table_args__ = (UniqueConstraint("pattern_id", "position", name="uq_rotation_day_position"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    pattern_id = Column(String(36), ForeignKey("schedule_patterns.id"), nullable=False)
    position = Column(Integer, nullable=False)
    is_work_day = Column(Boolean, nullable=False)
    name = Column(String(100), nullable=True)
    start_minute = Column(Integer, nullable=True)
    duration_minutes = Column(Integer, nullable=True)


class PayPeriodRow(Base):
    __tablename__ = "pay_periods"
    __table_args__ = (Index("ix_pay_periods_owner_start", "owner_id", "start_date"),)

    id = Column(String(36), primary_key=True)
    owner_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    paid_minutes = Column(Integer, nullable=False, default=0)
    premium_minutes = Column(Integer, nullable=False, default=0)
    estimated_pay_cents = Column(BigInteger, nullable=True)
    deleted_at = Column(DateTime, nullable=True)


class ShiftRow(Base):
    __tablename__ = "shifts"
    __table_args__ = (Index("ix_shifts_owner_start", "owner_id", "scheduled_start"),)

    id = Column(String(36), primary_key=True)
    owner_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    pattern_id = Column(String(36), ForeignKey("schedule_patterns.id"), nullable=True)
    pay_period_id = Column(String(36), ForeignKey("pay_periods.id"), nullable=True, index=True)
    scheduled_start = Column(DateTime, nullable=False)
    scheduled_end = Column(DateTime, nullable=False)
    actual_start = Column(DateTime, nullable=True)
    actual_end = Column(DateTime, nullable=True)
    break_minutes = Column(Integer, nullable=False, default=0)
    rate_multiplier = Column(Float, nullable=False, default=1.0)
    rate_label = Column(String(100), nullable=True)
    paid_minutes = Column(Integer, nullable=False, default=0)
    premium_minutes = Column(Integer, nullable=False, default=0)
    status = Column(String(16), nullable=False, default="scheduled")
    notes = Column(Text, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
