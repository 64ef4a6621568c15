from __future__ import annotations


class ServiceError(Exception):
    """Base for every failure reported to clients as ``{success: false}``."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputValidationError(ServiceError):
    status_code = 400


class ImageDecodeError(ServiceError):
    status_code = 400


class NoTranscriptAvailable(ServiceError):
    status_code = 404


class UpstreamError(ServiceError):
    """Generation endpoint failed with anything other than not-found."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class ModelNotFound(UpstreamError):
    """404 for one model id. Soft: the invoker moves on to the next model."""

    def __init__(self, model: str):
        super().__init__(f"Model {model} not found", upstream_status=404)
        self.model = model


class NoContentGenerated(ServiceError):
    status_code = 502


class AllModelsFailed(ServiceError):
    status_code = 502
