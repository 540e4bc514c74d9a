"""
Question sources for automatic test generation.

A source answers one call, fetch(subject, difficulty, count), with a list
of MCQ dicts shaped {question, options, correct_answer}. The shipped
source samples the curated question_bank table; the API receives its
source through the get_question_source dependency, so another backend
can be plugged in with a dependency override.
"""

import random
from typing import Optional
from fastapi import Depends
from sqlalchemy.orm import Session

from leave_portal.database import get_db
from leave_portal.errors import ValidationError
from leave_portal.logging_config import get_logger, log_with_context
from leave_portal.models.question_bank import DIFFICULTIES, QuestionBankItem

logger = get_logger("generator")

SUBJECTS = [
    "Data Structures",
    "Java",
    "DBMS",
    "Operating System",
    "Computer Networks",
    "Web Development",
    "Python",
    "C++",
    "JavaScript",
    "Algorithms",
    "Software Engineering",
    "Machine Learning",
]


class QuestionSource:
    """Interface for anything that can supply MCQs by subject and difficulty."""

    name = "base"

    def fetch(self, subject: str, difficulty: str, count: int) -> list:
        raise NotImplementedError

    def available_subjects(self) -> list:
        return list(SUBJECTS)

    def question_count(self, subject: str, difficulty: str) -> int:
        raise NotImplementedError


class StaticBankSource(QuestionSource):
    """Draws questions from the curated question bank."""

    name = "static"

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def _active_items(self, subject: str, difficulty: str):
        return self.db.query(QuestionBankItem).filter(
            QuestionBankItem.subject == subject,
            QuestionBankItem.difficulty == difficulty,
            QuestionBankItem.is_active.is_(True),
        )

    def fetch(self, subject: str, difficulty: str, count: int) -> list:
        items = self._active_items(subject, difficulty).all()
        if len(items) > count:
            items = self.rng.sample(items, count)

        log_with_context(logger, "DEBUG", "Question bank sampled",
                         context={"subject": subject, "difficulty": difficulty},
                         extra_data={"requested": count, "returned": len(items)})
        return [
            {
                "question": item.question,
                "options": item.option_list,
                "correct_answer": item.correct_answer,
            }
            for item in items
        ]

    def available_subjects(self) -> list:
        rows = (self.db.query(QuestionBankItem.subject)
                .filter(QuestionBankItem.is_active.is_(True))
                .distinct()
                .all())
        return sorted(row[0] for row in rows)

    def question_count(self, subject: str, difficulty: str) -> int:
        return self._active_items(subject, difficulty).count()


def validate_criteria_names(subject: Optional[str], difficulty: Optional[str]):
    if not subject or not subject.strip():
        raise ValidationError("Please provide subject")
    if difficulty not in DIFFICULTIES:
        raise ValidationError(
            "Difficulty must be one of: {}".format(", ".join(DIFFICULTIES)))


def get_question_source(db: Session = Depends(get_db)) -> QuestionSource:
    """FastAPI dependency returning the question source for this request."""
    return StaticBankSource(db)
