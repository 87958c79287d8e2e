"""
Error taxonomy shared by services and the HTTP layer.

Every fatal error aborts a single request. Duplicate submissions and malformed
question rows are not errors and never reach this module.
"""
from fastapi import status


class QuizDrillError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(QuizDrillError):
    """Deployment misconfiguration, e.g. no store URL. Not retried."""

    error_type = "configuration_error"


class SchemaError(ConfigurationError):
    """A required sheet or header column is missing."""

    error_type = "schema_error"


class ForbiddenError(QuizDrillError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "forbidden"


class LockTimeoutError(QuizDrillError):
    """The append lock could not be acquired within the bounded wait."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "lock_timeout"
