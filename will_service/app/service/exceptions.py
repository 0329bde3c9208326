"""
Custom exceptions for the Will service.
"""
from typing import Dict, List, Optional


class BaseWillServiceError(Exception):
    """Base class for exceptions in this module."""
    pass

class WillNotFoundError(BaseWillServiceError):
    """
    Raised when a will does not exist or is owned by another user.
    The message is the same in both cases so callers cannot probe for ids.
    """
    def __init__(self, will_id: str):
        self.will_id = will_id
        super().__init__(f"Will with ID '{will_id}' not found.")

class PersonNotFoundError(BaseWillServiceError):
    """Raised when a person id is not present in the named list of a will."""
    def __init__(self, will_id: str, person_type: str, person_id: str):
        self.will_id = will_id
        self.person_type = person_type
        self.person_id = person_id
        super().__init__(f"Person '{person_id}' not found in {person_type} of will '{will_id}'.")

class WillValidationError(BaseWillServiceError):
    """Raised when a payload fails shape, type or business rule checks. Nothing is written."""
    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        self.errors = errors or {}
        super().__init__(message)

class ExecutionPreconditionError(BaseWillServiceError):
    """Raised when execution is requested for a will that is not eligible."""
    def __init__(self, will_id: str, reasons: List[str]):
        self.will_id = will_id
        self.reasons = reasons
        super().__init__(f"Will '{will_id}' cannot be executed: {'; '.join(reasons)}")

class ConcurrencyConflictError(BaseWillServiceError):
    """Raised when a version conflict is detected during an update operation."""
    def __init__(self, will_id: str, expected_version: int, actual_version: int):
        self.will_id = will_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrency conflict for will '{will_id}'. "
            f"Expected version {expected_version}, but found {actual_version}."
        )

class PersistenceUnavailableError(BaseWillServiceError):
    """Raised when the document store keeps failing after bounded retries."""
    pass

class WillApiError(BaseWillServiceError):
    """Raised by the HTTP will client when a call to the will API fails."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
