from fastapi import status

from shared.utils.app_status_code import AppStatusCode


class DomainError(Exception):
    """Base class for failures the crud layer raises and routers surface verbatim."""

    http_status = status.HTTP_400_BAD_REQUEST
    status_code = AppStatusCode.OPERATION_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    http_status = status.HTTP_404_NOT_FOUND
    status_code = AppStatusCode.RESOURCE_NOT_FOUND


class ForbiddenError(DomainError):
    http_status = status.HTTP_403_FORBIDDEN
    status_code = AppStatusCode.AUTHORIZATION_FORBIDDEN


class PreconditionFailedError(DomainError):
    http_status = status.HTTP_409_CONFLICT
    status_code = AppStatusCode.PRECONDITION_FAILED


class UpstreamFailureError(DomainError):
    """Processor/storage/document failure. Retryable by the caller."""

    http_status = status.HTTP_502_BAD_GATEWAY
    status_code = AppStatusCode.UPSTREAM_FAILURE
    retryable = True


class WebhookSignatureError(DomainError):
    http_status = status.HTTP_400_BAD_REQUEST
    status_code = AppStatusCode.WEBHOOK_SIGNATURE_INVALID
