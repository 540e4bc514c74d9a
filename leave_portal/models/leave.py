"""
Leave model - a student's request for approved absence.

Besides the main status (pending -> test_assigned -> approved | rejected)
a leave carries the one-way remediation flags used by the reevaluation
and retest workflow, and the balance_deducted guard that makes the
leave-balance deduction happen at most once per leave.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Boolean, Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from leave_portal.database import Base

STATUS_PENDING = "pending"
STATUS_TEST_ASSIGNED = "test_assigned"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
LEAVE_STATUSES = [STATUS_PENDING, STATUS_TEST_ASSIGNED, STATUS_APPROVED, STATUS_REJECTED]

LEAVE_TYPES = ["personal", "sick", "emergency", "vacation", "other"]


def inclusive_days(start_date, end_date) -> int:
    """Number of calendar days from start_date to end_date, both included."""
    return (end_date - start_date).days + 1


class Leave(Base):
    """SQLAlchemy model for the leaves table."""
    __tablename__ = "leaves"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique leave identifier")
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False,
                        doc="Owning student")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=False)
    leave_type = Column(String(16), nullable=False, default="personal",
                        doc="personal | sick | emergency | vacation | other")
    status = Column(String(16), nullable=False, default=STATUS_PENDING,
                    doc="pending | test_assigned | approved | rejected")
    total_days = Column(Integer, nullable=False, default=1,
                        doc="Inclusive day count between start_date and end_date")
    admin_remarks = Column(Text, nullable=True)
    reviewed_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    retest_requested = Column(Boolean, nullable=False, default=False)
    retest_approved = Column(Boolean, nullable=False, default=False)
    retest_used = Column(Boolean, nullable=False, default=False)
    reevaluation_used = Column(Boolean, nullable=False, default=False)
    balance_deducted = Column(Boolean, nullable=False, default=False,
                              doc="Set once total_days has been taken off the balance")

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    student = relationship("User", back_populates="leaves", foreign_keys=[student_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])
    test = relationship("Test", back_populates="leave", uselist=False)

    __table_args__ = (
        Index("ix_leaves_student_status", "student_id", "status"),
        Index("ix_leaves_dates", "start_date", "end_date"),
    )

    def recompute_total_days(self):
        self.total_days = inclusive_days(self.start_date, self.end_date)

    def __repr__(self):
        return f"<Leave(id={self.id}, student={self.student_id}, status='{self.status}', days={self.total_days})>"
