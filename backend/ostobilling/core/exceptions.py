"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class OstoBillingException(Exception):
    """Base exception for Ostobilling services."""

    pass


class NotFoundException(OstoBillingException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ConflictException(OstoBillingException):
    """Exception raised when a write would violate a uniqueness rule.

    Raised for duplicate plan slugs, duplicate organization slugs and a second
    live subscription for the same organization.
    """

    def __init__(self, message: Optional[str] = "Object already exists"):
        """Create a new ConflictException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class InvalidInputException(OstoBillingException):
    """Exception raised when a caller supplies malformed or out of range input."""

    def __init__(self, message: Optional[str] = "Invalid input"):
        """Create a new InvalidInputException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class InvalidStateError(OstoBillingException):
    """Exception raised when an object is in an invalid state for the requested operation."""

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class StorageFailureException(OstoBillingException):
    """Exception raised when the persistence layer fails and the unit of work was rolled back."""

    def __init__(self, message: Optional[str] = "Storage failure"):
        """Create a new StorageFailureException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        error_messages.append({field: error["msg"]})

    return {"errors": error_messages}
