class InterviewCoreError(Exception):
    """Base exception for the interview session engine."""

    pass


class ConfigError(InterviewCoreError):
    """Raised when a session configuration cannot be started."""

    pass


class ValidationError(InterviewCoreError):
    """Raised when a submission is rejected before any state is touched."""

    pass


class SubmissionRejectedError(ValidationError):
    """Raised when a submission is not allowed in the question's current state."""

    def __init__(self, question_id: str, reason: str):
        self.question_id = question_id
        self.reason = reason
        super().__init__(f"Submission for question '{question_id}' rejected: {reason}")


class EvaluatorError(InterviewCoreError):
    """Raised when the external evaluator call fails."""

    def __init__(self, message: str, retryable: bool = True, status_code: int | None = None):
        self.retryable = retryable
        self.status_code = status_code
        super().__init__(message)


class PersistenceError(InterviewCoreError):
    """Raised when finalize could not durably write every result record."""

    def __init__(self, session_id: str, question_ids: list[str], message: str | None = None):
        self.session_id = session_id
        self.question_ids = question_ids
        super().__init__(
            message or f"Session '{session_id}' has {len(question_ids)} unpersisted result(s): {', '.join(question_ids)}"
        )


class InvariantViolation(InterviewCoreError):
    """Raised when an internal invariant is observed broken. Always a defect."""

    pass


class SessionNotFoundError(InterviewCoreError):
    """Raised when a session id is unknown or already discarded."""

    pass


class ActiveSessionExistsError(InterviewCoreError):
    """Raised when a user already has an active session."""

    def __init__(self, user_id: str, session_id: str):
        self.user_id = user_id
        self.session_id = session_id
        super().__init__(f"User '{user_id}' already has active session '{session_id}'")


class SessionStateError(InterviewCoreError):
    """Raised when an operation is not valid for the session's current status."""

    pass
