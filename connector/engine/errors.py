"""
Error taxonomy for the connector.

Every error carries an HTTP status, a stable ``code`` and a ``retriable``
flag. Only version conflicts are retriable: the caller re-reads the payment
and applies the same update again. Everything else is a permanent failure
of the request as submitted.
"""

from typing import Any, Optional


class ConnectorError(Exception):
    """Base exception for all connector errors."""

    code = "GeneralError"
    status_code = 500
    retriable = False

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


class UnsupportedNotificationError(ConnectorError):
    """The webhook carries an event code this connector does not map."""

    code = "UnsupportedNotification"
    status_code = 400

    def __init__(self, event_code: str):
        super().__init__(
            f"Notification event '{event_code}' is not supported",
            details={"notificationEvent": event_code},
        )
        self.event_code = event_code


class ResourceNotFoundError(ConnectorError):
    code = "ResourceNotFound"
    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"The resource of type '{resource_type}' with id '{resource_id}' was not found.",
            details={"resourceType": resource_type, "resourceId": resource_id},
        )


class ReferencedResourceNotFoundError(ConnectorError):
    code = "ReferencedResourceNotFound"
    status_code = 400

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"The referenced object of type '{resource_type}' '{resource_id}' was not found. "
            "It either doesn't exist, or it can't be accessed from this endpoint.",
            details={"typeId": resource_type, "id": resource_id},
        )


class InvalidOperationError(ConnectorError):
    code = "InvalidOperation"
    status_code = 400


class InvalidJsonInputError(ConnectorError):
    code = "InvalidJsonInput"
    status_code = 400


class ProcessorApiError(ConnectorError):
    """
    Error response from the payment processor, or a failure to reach it.

    ``status_code`` is the processor's HTTP status; ``error_code`` and
    ``error_type`` are taken verbatim from its error body.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_code: str,
        error_type: Optional[str] = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            details={"errorCode": error_code, "errorType": error_type},
        )
        self.error_code = error_code
        self.error_type = error_type
        self.code = f"AdyenError-{error_code}"


class VersionConflictError(ConnectorError):
    """A concurrent update changed the payment first. Re-read and retry."""

    code = "ConcurrentModification"
    status_code = 409
    retriable = True


class RequiredFieldError(ConnectorError):
    code = "RequiredField"
    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(message, details={"field": field})
        self.field = field
