"""
User model - students and administrators known to the identity gate.

The portal never creates credentials; it reads role and active state for
authorization and mutates only the student's leave balance.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Boolean, DateTime, String
from sqlalchemy.orm import relationship

from leave_portal.config import DEFAULT_LEAVE_BALANCE
from leave_portal.database import Base

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"
ROLES = [ROLE_STUDENT, ROLE_ADMIN]


class User(Base):
    """SQLAlchemy model for the users table."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique user identifier")
    name = Column(Text, nullable=False,
                  doc="Display name")
    email = Column(String(255), nullable=False, unique=True,
                   doc="Login email, lowercase")
    role = Column(String(16), nullable=False, default=ROLE_STUDENT,
                  doc="student | admin")
    department = Column(Text, nullable=True)
    leave_balance = Column(Integer, nullable=False, default=DEFAULT_LEAVE_BALANCE,
                           doc="Remaining leave days; never negative")
    is_active = Column(Boolean, nullable=False, default=True,
                       doc="Inactive users are refused by the identity gate")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    leaves = relationship("Leave", back_populates="student",
                          foreign_keys="Leave.student_id")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
