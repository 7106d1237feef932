"""
Eligibility Engine

Decides whether a customer may open an account of the requested type, given
the customer's classification:

- PERSONAL customers may hold at most one account of each type
- BUSINESS customers may only open CURRENT accounts
- any other classification is rejected

The engine only reads existing accounts; it never persists.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from .accounts import Account, AccountRequest, AccountType
from .exceptions import InvalidAccountTypeError, MaximumAccountsReachedError

logger = logging.getLogger("bank_accounts.eligibility")


class CustomerType(Enum):
    """Customer classifications recognised by the eligibility rules"""
    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"


@dataclass(frozen=True)
class CustomerClassification:
    """Classification returned by the customer service"""
    customer_id: str
    customer_type: str  # raw value, may be unrecognised

    @property
    def known_type(self) -> Optional[CustomerType]:
        """Recognised CustomerType, or None"""
        try:
            return CustomerType(self.customer_type.strip().upper())
        except (ValueError, AttributeError):
            return None


class ExistingAccountLookup(Protocol):
    """Read access to a customer's accounts of one type"""

    async def find_by_customer_id_and_type(self, customer_id: str, account_type: str) -> List[Account]:
        ...


class EligibilityEngine:
    """Customer-type-specific account opening rules"""

    def __init__(self, accounts: ExistingAccountLookup):
        self.accounts = accounts

    async def check_eligibility(
        self,
        request: AccountRequest,
        classification: CustomerClassification
    ) -> None:
        """
        Check whether the account may be created

        Raises:
            MaximumAccountsReachedError: Personal customer already has this type
            InvalidAccountTypeError: Type not allowed for the classification,
                or the classification is not recognised
        """
        match classification.known_type:
            case CustomerType.PERSONAL:
                await self._check_personal(request)
            case CustomerType.BUSINESS:
                self._check_business(request)
            case _:
                logger.warning(
                    f"Unrecognised customer type {classification.customer_type!r} "
                    f"for customer {classification.customer_id}"
                )
                raise InvalidAccountTypeError("Invalid customer type")

    def requires_exclusive_slot(self, classification: CustomerClassification) -> bool:
        """Whether the insert must hold the one-account-per-type slot"""
        return classification.known_type is CustomerType.PERSONAL

    async def _check_personal(self, request: AccountRequest) -> None:
        existing = await self.accounts.find_by_customer_id_and_type(
            request.customer_id, request.account_type
        )
        if existing:
            raise MaximumAccountsReachedError(request.account_type)

    def _check_business(self, request: AccountRequest) -> None:
        if request.account_type != AccountType.CURRENT.value:
            raise InvalidAccountTypeError("Invalid account type for business customer")
