# app/core/errors.py
"""
Accounting errors raised by the service layer.

They subclass ValueError so routers can keep the usual
``except ValueError -> HTTPException(400)`` handling; ``status_code`` lets
them pick a more precise code where it matters.
"""


class AccountingError(ValueError):
    status_code = 400


class NotFoundError(AccountingError):
    status_code = 404


class InvalidTransition(AccountingError):
    """Status change not allowed from the entity's current status."""


class DistributionError(AccountingError):
    """Founder split rejected before anything is written."""
