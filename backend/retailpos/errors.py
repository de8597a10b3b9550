"""
Error taxonomy shared by services and routes.

Services raise these; the app-level error handler maps them to JSON
responses using status_code. Routes never downgrade them.
"""


class ServiceError(Exception):
    """Base for all expected, user-visible failures."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    """400-level input problem."""
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class InsufficientStockError(ServiceError):
    """Requested quantity exceeds what is on hand."""
    status_code = 409

    def __init__(self, variant_id: int, requested: int, available: int, message: str | None = None):
        super().__init__(
            message or f"Insufficient stock for product variant {variant_id}",
            details={
                "variant_id": variant_id,
                "requested_quantity": requested,
                "available_quantity": available,
            },
        )
        self.variant_id = variant_id
        self.requested = requested
        self.available = available


class ForbiddenError(ServiceError):
    """Caller is outside the tenant/location scope, or lacks the role."""
    status_code = 403


class ConflictError(ServiceError):
    """409-level uniqueness or referential conflict (e.g., duplicate email)."""
    status_code = 409


class InternalError(ServiceError):
    status_code = 500


class LockTimeoutError(ServiceError):
    """Gave up waiting for row locks held by a concurrent sale/restock."""
    status_code = 503

    def __init__(self, message: str = "Inventory is busy, please retry", details: dict | None = None):
        details = dict(details or {})
        details.setdefault("retryable", True)
        super().__init__(message, details)
