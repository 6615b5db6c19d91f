# study_aid/exceptions.py
from typing import Any, Optional


class StudyAidError(Exception):
    """Base error carrying the HTTP status and envelope message it maps to."""
    status_code = 500

    def __init__(self, message: str, error: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.error = error


class ValidationError(StudyAidError):
    """A required field is missing or malformed."""
    status_code = 400


class InvalidIdentifierError(StudyAidError):
    status_code = 400

    def __init__(self, message: str = "Invalid document ID format", error: Optional[Any] = None):
        super().__init__(message, error)


class NotFoundError(StudyAidError):
    status_code = 404


class AnalysisFailedError(StudyAidError):
    """The analysis step returned no usable result; nothing is persisted."""
    status_code = 500

    def __init__(self, message: str = "Failed to analyze content", error: Optional[Any] = None):
        super().__init__(message, error)
