"""
Account Service Exceptions

Request-scoped error taxonomy for the account service. Every error carries a
stable code so that an outer transport layer can map it to a status without
inspecting messages.
"""

from typing import Optional


class AccountServiceError(Exception):
    """Base exception for all account service errors"""

    code = "ACCOUNT_SERVICE_ERROR"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        # Last creation stage reached before the error, if any
        self.stage = stage


class InvalidAccountDataError(AccountServiceError):
    """A type-specific field or the balance fails its constraint"""

    code = "INVALID_ACCOUNT_DATA"


class InvalidAccountTypeError(AccountServiceError):
    """Account type is unknown or not allowed for the customer"""

    code = "INVALID_ACCOUNT_TYPE"


class MaximumAccountsReachedError(AccountServiceError):
    """Personal customer already holds an account of the requested type"""

    code = "MAXIMUM_ACCOUNTS_REACHED"

    def __init__(self, account_type: str, stage: Optional[str] = None):
        super().__init__(
            f"The personal customer already has an account of type {account_type}",
            stage=stage
        )
        self.account_type = account_type


class ClassificationUnavailableError(AccountServiceError):
    """Customer classification could not be obtained"""

    code = "CLASSIFICATION_UNAVAILABLE"


class AccountNotFoundError(AccountServiceError):
    """Referenced account does not exist"""

    code = "NOT_FOUND"


class StoreUnavailableError(AccountServiceError):
    """Persistence failed for infrastructure reasons"""

    code = "STORE_UNAVAILABLE"
