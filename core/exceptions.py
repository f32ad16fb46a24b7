from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler


class ServiceError(Exception):
    """Base class for failures raised by the service layer.

    Callers branch on ``kind``; ``status_code`` is the HTTP mapping used by
    :func:`service_exception_handler`.
    """

    kind = "service_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The request could not be processed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class UnauthorizedError(ServiceError):
    kind = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action."


class InvalidStateError(ServiceError):
    kind = "invalid_state"
    status_code = status.HTTP_409_CONFLICT
    default_message = "The resource is not in a state that allows this action."


class CapacityExceededError(ServiceError):
    kind = "capacity_exceeded"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Mentor has reached maximum capacity."


class DuplicateRequestError(ServiceError):
    kind = "duplicate_request"
    status_code = status.HTTP_409_CONFLICT
    default_message = "A conflicting request already exists."


class ServiceValidationError(ServiceError):
    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input."


def service_exception_handler(exc, context):
    if isinstance(exc, ServiceError):
        return Response(
            {
                "error": {
                    "code": exc.kind,
                    "message": exc.message,
                    "timestamp": timezone.now().isoformat(),
                }
            },
            status=exc.status_code,
        )
    return exception_handler(exc, context)
