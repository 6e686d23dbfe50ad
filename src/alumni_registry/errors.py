"""Domain exceptions raised by the registry core and mapped to HTTP at the API edge."""

from __future__ import annotations


class RegistryError(Exception):
    http_status = 500
    code = "registry_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(RegistryError):
    http_status = 400
    code = "validation_failed"

    def __init__(self, errors: dict[str, list[str]], message: str = "One or more fields are invalid"):
        super().__init__(message)
        self.errors = errors

    def to_payload(self) -> dict:
        return {**super().to_payload(), "errors": self.errors}


class DuplicateError(RegistryError):
    http_status = 409
    code = "duplicate"

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"A registration with this {field} already exists")
        self.field = field

    def to_payload(self) -> dict:
        return {**super().to_payload(), "field": self.field}


class NotFoundError(RegistryError):
    http_status = 404
    code = "not_found"


class InvalidStateError(RegistryError):
    http_status = 409
    code = "invalid_state"


class ExternalServiceError(RegistryError):
    http_status = 503
    code = "external_service_unavailable"


class RateLimitError(RegistryError):
    http_status = 429
    code = "rate_limited"
