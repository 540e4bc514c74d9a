"""
Test model - the assessment bound 1:1 to a leave request.

Question sets are stored as JSON text:

    mcq_questions:    [{"question", "options", "correct_answer", "marks"}]
    coding_questions: [{"question", "expected_output", "marks"}]

total_marks is derived from the question marks and must be refreshed with
recompute_total_marks() whenever either list changes.
"""

import math
import uuid
import json
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from leave_portal.config import DEFAULT_PASS_RATIO, DEFAULT_TEST_DURATION
from leave_portal.database import Base


def _load_list(value):
    if isinstance(value, list):
        return value
    try:
        return json.loads(value) if value else []
    except (json.JSONDecodeError, TypeError):
        return []


def default_pass_marks(total_marks: int) -> int:
    """60% of the total, rounded up."""
    return math.ceil(round(total_marks * DEFAULT_PASS_RATIO, 6))


class Test(Base):
    """SQLAlchemy model for the tests table."""
    __tablename__ = "tests"
    # keeps pytest from collecting the model as a test class
    __test__ = False

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique test identifier")
    leave_id = Column(String(36), ForeignKey("leaves.id"), nullable=False, unique=True,
                      doc="Owning leave; at most one test per leave")
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=False,
                           doc="Admin who created the test")
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    mcq_questions = Column(Text, nullable=False, default="[]",
                           doc="MCQ questions as JSON")
    coding_questions = Column(Text, nullable=False, default="[]",
                              doc="Coding-output questions as JSON")
    total_marks = Column(Integer, nullable=False, default=0,
                         doc="Sum of all question marks")
    pass_marks = Column(Integer, nullable=False, default=0,
                        doc="Minimum total score needed to pass")
    duration = Column(Integer, nullable=False, default=DEFAULT_TEST_DURATION,
                      doc="Allowed time in seconds")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    leave = relationship("Leave", back_populates="test")
    created_by = relationship("User")
    results = relationship("TestResult", back_populates="test",
                           cascade="all, delete-orphan")

    @property
    def mcq_list(self) -> list:
        return _load_list(self.mcq_questions)

    @mcq_list.setter
    def mcq_list(self, questions: list):
        self.mcq_questions = json.dumps(questions)

    @property
    def coding_list(self) -> list:
        return _load_list(self.coding_questions)

    @coding_list.setter
    def coding_list(self, questions: list):
        self.coding_questions = json.dumps(questions)

    def recompute_total_marks(self) -> int:
        total = sum(q.get("marks", 1) for q in self.mcq_list)
        total += sum(q.get("marks", 1) for q in self.coding_list)
        self.total_marks = total
        return total

    def __repr__(self):
        return f"<Test(id={self.id}, leave={self.leave_id}, total_marks={self.total_marks})>"
