# cart_service/domain/failures.py

"""
Failure taxonomy shared by the aggregates, stores and services.

Every failure carries the HTTP status the API layer answers with, so the
routers never have to know which layer raised it.
"""


class Failure(Exception):
    """Base class for every expected failure of the cart/checkout core."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(Failure):
    """Malformed or out-of-range input, e.g. a non-positive quantity."""

    status_code = 400


class NotFound(Failure):
    """Missing cart, order or product."""

    status_code = 404

    def __init__(self, entity: str, message: str | None = None):
        super().__init__(message or f"{entity} not found")
        self.entity = entity


class Conflict(Failure):
    """Duplicate cart, illegal status transition or existing order id."""

    status_code = 409

    def __init__(self, operation: str, entity: str, message: str):
        super().__init__(f"{entity}: {operation} conflict: {message}")
        self.operation = operation
        self.entity = entity


class BadRequest(Failure):
    """Business-rule rejection the caller can correct (empty cart, stock)."""

    status_code = 400


class InternalError(Failure):
    """Persistence or transport failure. The message is safe to show."""

    status_code = 500

    def __init__(self, message: str = "internal error"):
        super().__init__(message)
