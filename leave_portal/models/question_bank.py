"""
QuestionBankItem model - curated MCQs backing the static question source.
"""

import uuid
import json
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Boolean, DateTime, Index, String
from leave_portal.database import Base

DIFFICULTIES = ["Easy", "Medium", "Hard"]


class QuestionBankItem(Base):
    """SQLAlchemy model for the question_bank table."""
    __tablename__ = "question_bank"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    question = Column(Text, nullable=False)
    options = Column(Text, nullable=False, default="[]",
                     doc="Answer options as a JSON list")
    correct_answer = Column(Integer, nullable=False,
                            doc="Zero-based index into options")
    subject = Column(String(64), nullable=False)
    difficulty = Column(String(16), nullable=False, default="Medium")
    marks = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_question_bank_lookup", "subject", "difficulty", "is_active"),
    )

    @property
    def option_list(self) -> list:
        if isinstance(self.options, list):
            return self.options
        try:
            return json.loads(self.options) if self.options else []
        except (json.JSONDecodeError, TypeError):
            return []

    def __repr__(self):
        return f"<QuestionBankItem(id={self.id}, subject='{self.subject}', difficulty='{self.difficulty}')>"
