"""Domain errors raised by the service layer.

Services raise these instead of HTTP errors so they stay usable outside a
request. The API renders them through the handlers registered in
``kitchen_stock.core.observability``.
"""

from typing import Any


class InventoryError(ValueError):
    status_code = 400
    code = "bad_request"

    def __init__(self, message: str, *, details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(InventoryError):
    status_code = 422
    code = "validation_error"

    @classmethod
    def for_field(cls, field: str, message: str, error_type: str = "value_error") -> "ValidationFailed":
        return cls(
            "Validation failed",
            details=[{"field": field, "message": message, "type": error_type}],
        )


class ResourceNotFound(InventoryError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class ResourceConflict(InventoryError):
    status_code = 409
    code = "conflict"
