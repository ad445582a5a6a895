from __future__ import annotations


class ValidationError(ValueError):
    """Request is missing required fields or carries invalid values."""


class NotFoundError(ValueError):
    """A referenced entity does not exist."""


class UnauthorizedError(ValueError):
    """The caller does not own the entity it acts on."""

    def __init__(self, message: str):
        if not message.startswith("Unauthorized"):
            message = f"Unauthorized: {message}"
        super().__init__(message)
