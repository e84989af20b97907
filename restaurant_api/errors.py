"""Typed failures raised by the reservation and order services.

Every service failure carries the HTTP status and machine-readable code it is
surfaced with, so blueprints never have to translate them by hand.
"""
from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError


class ServiceError(Exception):
    status = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    status = 422
    code = "VALIDATION_ERROR"


class CapacityExceeded(ServiceError):
    status = 409
    code = "FULLY_BOOKED"


class ConcurrentUpdate(ServiceError):
    status = 409
    code = "CONCURRENT_UPDATE"


class SlotConflict(ConcurrentUpdate):
    code = "RACE_LOST"


class InvalidTransition(ServiceError):
    status = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move from '{current}' to '{requested}'.")
        self.current = current
        self.requested = requested


class NotFound(ServiceError):
    status = 404
    code = "NOT_FOUND"


class StoreUnavailable(ServiceError):
    status = 503
    code = "STORE_UNAVAILABLE"


class DuplicateCustomer(ServiceError):
    status = 500
    code = "DUPLICATE_CUSTOMER"


@contextmanager
def store_errors():
    """Re-raise database driver failures as StoreUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        raise StoreUnavailable("The reservation store is unavailable.", str(e.orig)) from e
