"""Service-layer exceptions translated to JSON responses by the application."""

from typing import Dict, List, Optional


class ComplaintDeskError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationFailed(ComplaintDeskError):
    """
    Field-keyed validation or business-rule failure.

    Args:
        errors: Field name -> list of messages
        message: Summary message (defaults to the first field message)

    Example:
        raise ValidationFailed({"role": ["SuperAdmin already exists in the system."]})
    """

    status_code = 422

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        self.errors = errors
        if message is None:
            first = next((msgs[0] for msgs in errors.values() if msgs), None)
            message = first or "The given data was invalid."
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailed":
        return cls({field: [message]})

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": self.errors}


class NotFoundError(ComplaintDeskError):
    """Requested record does not exist."""

    status_code = 404

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} '{key}' not found.")
