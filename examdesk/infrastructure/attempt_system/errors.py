from typing import Any, Dict, List, Optional


class AttemptError(Exception):
    """Base class for failures surfaced to the caller as a structured response."""

    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class NotFoundError(AttemptError):
    status_code = 404
    default_message = "Resource not found"


class ForbiddenError(AttemptError):
    status_code = 403
    default_message = "Access denied"


class ValidationFailedError(AttemptError):
    status_code = 422
    default_message = "Validation failed"


class RestrictionViolationError(ForbiddenError):
    def __init__(self, dimension: str, required: str):
        self.dimension = dimension
        self.required = required
        super().__init__(f"This test is restricted to {required} {dimension} students only")

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        body["restriction"] = self.dimension
        return body


class AlreadyCompletedError(AttemptError):
    status_code = 409
    default_message = "Test attempt already completed"


class AttemptInProgressError(AttemptError):
    status_code = 409
    default_message = "You have an ongoing attempt for this test"

    def __init__(self, attempt_id: int, message: Optional[str] = None):
        self.attempt_id = attempt_id
        super().__init__(message)

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        body["attempt_id"] = self.attempt_id
        return body


class AttemptConflictError(AttemptError):
    status_code = 409
    default_message = "Another attempt was started at the same time, please try again"


class MaxAttemptsReachedError(AttemptError):
    default_message = "Maximum attempts reached for this test"


class NotStartedError(AttemptError):
    default_message = "Test has not started yet"


class EndedError(AttemptError):
    default_message = "Test has ended"


class EmptyTestError(AttemptError):
    default_message = "This test has no questions available"


class QuestionNotInAttemptError(AttemptError):
    default_message = "Question not found in this attempt"
