"""
Service-layer exceptions.

Services raise these instead of returning HTTP responses; the API layer
turns them into ``api_response`` errors with the matching status code.
"""


class ServiceError(Exception):
    status_code = 500
    error = 'Internal Server Error'

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    status_code = 400
    error = 'Bad Request'


class PermissionDeniedError(ServiceError):
    status_code = 403
    error = 'Forbidden'


class NotFoundError(ServiceError):
    status_code = 404
    error = 'Not Found'


class ConflictError(ServiceError):
    status_code = 409
    error = 'Conflict'


class CapacityExceededError(ConflictError):
    error = 'Capacity Exceeded'


class GeocodingError(ServiceError):
    """Postcode lookup failure carrying the status to report upstream."""

    def __init__(self, message: str, status_code: int = 502, details=None):
        super().__init__(message, details)
        self.status_code = status_code
        self.error = {
            400: 'Bad Request',
            404: 'Not Found',
            429: 'Too Many Requests',
        }.get(status_code, 'Bad Gateway')


class DeletionCascadeError(ServiceError):
    """Raised when a step of the organization deletion cascade fails."""

    def __init__(self, step: str, completed_steps, cause: Exception):
        super().__init__(f"Organization deletion failed at step '{step}': {cause}")
        self.step = step
        self.completed_steps = list(completed_steps)
        self.cause = cause
