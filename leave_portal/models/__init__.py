from leave_portal.models.user import User
from leave_portal.models.leave import Leave
from leave_portal.models.test import Test
from leave_portal.models.test_result import TestResult
from leave_portal.models.question_bank import QuestionBankItem

__all__ = ["User", "Leave", "Test", "TestResult", "QuestionBankItem"]
