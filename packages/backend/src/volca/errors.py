"""Service error taxonomy.

Every auth flow raises a ServiceError at the point where it detects a
problem. The error carries:
- name: machine-readable kind (ErrorName)
- message: public text, safe to show to the caller
- status_code: HTTP status the API layer should answer with
- debug: internal detail for logs only, never returned to clients

The API layer turns these into JSON responses in one place
(see volca.main.service_error_handler).
"""

from enum import Enum
from typing import Optional


class ErrorName(str, Enum):
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    USER_DOES_NOT_EXIST = "USER_DOES_NOT_EXIST"
    PROJECT_DOES_NOT_EXIST = "PROJECT_DOES_NOT_EXIST"
    MISSING_PROPERTY_ERROR = "MISSING_PROPERTY_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class ServiceError(Exception):
    """Raised by services when a request cannot be fulfilled."""

    def __init__(
        self,
        name: ErrorName,
        message: str,
        status_code: int,
        debug: Optional[str] = None,
    ):
        super().__init__(message)
        self.name = name
        self.message = message
        self.status_code = status_code
        self.debug = debug

    def to_dict(self) -> dict:
        """Public representation — debug is deliberately left out."""
        return {"name": self.name.value, "message": self.message}

    def __repr__(self) -> str:
        return (
            f"ServiceError(name={self.name.value!r}, status_code={self.status_code}, "
            f"message={self.message!r}, debug={self.debug!r})"
        )
