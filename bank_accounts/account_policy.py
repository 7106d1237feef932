"""
Account Type Policy

Validates the type-specific attributes of a candidate account and builds the
matching details record. Pure: no storage or network access.
"""

from decimal import Decimal

from .accounts import (
    AccountDetails, AccountRequest, AccountType,
    CurrentDetails, DETAILS_BY_TYPE, FixedTermDetails, SavingsDetails
)
from .exceptions import InvalidAccountDataError


class AccountTypePolicy:
    """Per-variant field validation"""

    def validate(self, request: AccountRequest) -> AccountDetails:
        """
        Validate a candidate account for its declared type

        Args:
            request: Candidate account

        Returns:
            Details record for the account variant

        Raises:
            InvalidAccountTypeError: Unknown account type
            InvalidAccountDataError: A field fails its constraint
        """
        account_type = AccountType.parse(request.account_type)

        if request.effective_balance < 0:
            raise InvalidAccountDataError("Balance cannot be negative")

        self._reject_foreign_fields(request, account_type)

        match account_type:
            case AccountType.SAVINGS:
                return self._validate_savings(request)
            case AccountType.CURRENT:
                return self._validate_current(request)
            case AccountType.FIXED_TERM:
                return self._validate_fixed_term(request)

    def _reject_foreign_fields(self, request: AccountRequest, account_type: AccountType) -> None:
        """Refuse attributes that belong to another variant"""
        allowed = DETAILS_BY_TYPE[account_type].field_names
        foreign = [name for name in request.populated_variant_fields() if name not in allowed]
        if foreign:
            raise InvalidAccountDataError(
                f"Fields not allowed for {account_type.value} account: {', '.join(foreign)}"
            )

    def _validate_savings(self, request: AccountRequest) -> SavingsDetails:
        limit = request.monthly_movement_limit
        if limit is None or limit <= 0:
            raise InvalidAccountDataError("Invalid monthly movement limit")
        return SavingsDetails(monthly_movement_limit=limit)

    def _validate_current(self, request: AccountRequest) -> CurrentDetails:
        # An omitted fee means no fee
        fee = request.maintenance_fee if request.maintenance_fee is not None else Decimal("0.00")
        if fee < 0:
            raise InvalidAccountDataError("Maintenance fee cannot be negative")
        return CurrentDetails(maintenance_fee=fee)

    def _validate_fixed_term(self, request: AccountRequest) -> FixedTermDetails:
        if request.withdrawal_date is None:
            raise InvalidAccountDataError("Specific withdrawal date is required")
        return FixedTermDetails(withdrawal_date=request.withdrawal_date)
