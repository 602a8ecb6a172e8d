"""
School records that can be archived and restored by administrators.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID
from sqlalchemy import Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, StandardMixin, SoftDeleteMixin


class Batch(Base, StandardMixin, SoftDeleteMixin):
    """A class group taught by one teacher."""

    __tablename__ = "batches"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    teacher_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Batch {self.name}>"


class Attendance(Base, StandardMixin, SoftDeleteMixin):
    """One student's attendance for one class date."""

    __tablename__ = "attendance"

    batch_id: Mapped[UUID] = mapped_column(
        ForeignKey("batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PRESENT", nullable=False)


class Payment(Base, StandardMixin, SoftDeleteMixin):
    """A fee payment recorded for a student."""

    __tablename__ = "payments"

    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PAID", nullable=False)


class Announcement(Base, StandardMixin, SoftDeleteMixin):
    """A notice published to students and teachers."""

    __tablename__ = "announcements"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Holiday(Base, StandardMixin, SoftDeleteMixin):
    """A declared day without classes."""

    __tablename__ = "holidays"

    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
