"""Domain errors raised by repositories and services."""

import functools

from pymongo.errors import PyMongoError


class SettleError(Exception):
    """Base class for all domain errors."""
    pass


class NotFoundError(SettleError):
    """Referenced group, expense or settlement does not exist."""
    pass


class StoreError(SettleError):
    """Underlying document store call failed (network, permission, ...)."""
    pass


class InvariantViolation(SettleError):
    """Input would break a ledger invariant, e.g. splits not summing to the amount."""
    pass


class SettlementStateError(SettleError):
    """Settlement is not in a state that allows the requested transition."""
    pass


class PermissionDeniedError(SettleError):
    """Caller is not allowed to act on the resource."""
    pass


def translate_store_errors(func):
    """Re-raise driver errors from an async repository method as StoreError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as exc:
            raise StoreError(f"{func.__qualname__} failed: {exc}") from exc

    return wrapper
