"""Exception taxonomy.

Every exception raised by routes and workflows derives from BeluvaError and
carries the HTTP status and machine-readable code used by the app's
exception handler to build the error envelope.
"""

from __future__ import annotations

from typing import Literal


class BeluvaError(Exception):
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InvalidRequestError(BeluvaError):
    status_code = 400
    code = "validation_error"


class AuthenticationError(BeluvaError):
    status_code = 401
    code = "unauthorized"


class PermissionDeniedError(BeluvaError):
    status_code = 403
    code = "forbidden"


class NotFoundError(BeluvaError):
    status_code = 404
    code = "not_found"


class ConflictError(BeluvaError):
    status_code = 409
    code = "conflict"


class PayloadTooLargeError(BeluvaError):
    status_code = 413
    code = "file_too_large"


class StorageError(BeluvaError):
    code = "storage_error"


ProviderErrorKind = Literal["upstream", "parse"]


class ProviderError(BeluvaError):
    """A generative-AI provider call failed.

    kind="upstream": network failure, timeout or non-2xx response.
    kind="parse": the response was malformed or missing the expected field.
    """

    code = "provider_error"

    def __init__(
        self,
        provider: str,
        kind: ProviderErrorKind,
        message: str,
        *,
        status: int | None = None,
    ) -> None:
        super().__init__(f"{provider} {kind} error: {message}")
        self.provider = provider
        self.kind = kind
        self.status = status
        self.upstream_message = message


class RecommendationGenerationError(BeluvaError):
    code = "recommendation_failed"


class VisualizationGenerationError(BeluvaError):
    code = "visualization_failed"
