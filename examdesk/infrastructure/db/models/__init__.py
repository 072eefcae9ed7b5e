from .user_model import UserModel, UserRole
from .question_model import QuestionModel
from .mock_test_model import MockTestModel, MockTestQuestionModel
from .attempt_model import AttemptModel, AttemptAnswerModel, AttemptStatus

__all__ = [
    "UserModel",
    "UserRole",
    "QuestionModel",
    "MockTestModel",
    "MockTestQuestionModel",
    "AttemptModel",
    "AttemptAnswerModel",
    "AttemptStatus",
]
