"""
Tests for the eligibility engine
"""

import pytest
from decimal import Decimal

from bank_accounts.accounts import Account, AccountRequest, AccountType, SavingsDetails
from bank_accounts.eligibility import CustomerClassification, CustomerType, EligibilityEngine
from bank_accounts.exceptions import InvalidAccountTypeError, MaximumAccountsReachedError


class StubAccountLookup:
    """Existing accounts keyed by (customer_id, type)"""

    def __init__(self, accounts=None):
        self.accounts = accounts or []
        self.queries = []

    async def find_by_customer_id_and_type(self, customer_id, account_type):
        self.queries.append((customer_id, account_type))
        return [
            a for a in self.accounts
            if a.customer_id == customer_id and a.type.value == account_type
        ]


def existing_savings(customer_id="c1"):
    return Account(
        id="acc-1",
        customer_id=customer_id,
        type=AccountType.SAVINGS,
        details=SavingsDetails(monthly_movement_limit=5),
        balance=Decimal("0")
    )


def personal(customer_id="c1"):
    return CustomerClassification(customer_id=customer_id, customer_type="PERSONAL")


def business(customer_id="c1"):
    return CustomerClassification(customer_id=customer_id, customer_type="BUSINESS")


class TestCustomerClassification:
    """Test classification recognition"""

    def test_known_types(self):
        assert personal().known_type is CustomerType.PERSONAL
        assert CustomerClassification("c1", "business").known_type is CustomerType.BUSINESS

    def test_unknown_type(self):
        assert CustomerClassification("c1", "GOVERNMENT").known_type is None


class TestPersonalCustomer:
    """At most one account per type"""

    @pytest.mark.asyncio
    async def test_first_account_of_type_allowed(self):
        lookup = StubAccountLookup()
        engine = EligibilityEngine(lookup)

        await engine.check_eligibility(
            AccountRequest(customer_id="c1", account_type="SAVINGS", monthly_movement_limit=5),
            personal()
        )

        assert lookup.queries == [("c1", "SAVINGS")]

    @pytest.mark.asyncio
    async def test_second_account_of_same_type_rejected(self):
        engine = EligibilityEngine(StubAccountLookup([existing_savings()]))

        with pytest.raises(MaximumAccountsReachedError) as exc_info:
            await engine.check_eligibility(
                AccountRequest(customer_id="c1", account_type="SAVINGS", monthly_movement_limit=3),
                personal()
            )

        assert exc_info.value.account_type == "SAVINGS"
        assert "SAVINGS" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_other_type_allowed(self):
        engine = EligibilityEngine(StubAccountLookup([existing_savings()]))

        await engine.check_eligibility(
            AccountRequest(customer_id="c1", account_type="CURRENT"),
            personal()
        )

    @pytest.mark.asyncio
    async def test_other_customers_accounts_ignored(self):
        engine = EligibilityEngine(StubAccountLookup([existing_savings("c2")]))

        await engine.check_eligibility(
            AccountRequest(customer_id="c1", account_type="SAVINGS", monthly_movement_limit=5),
            personal()
        )

    def test_requires_exclusive_slot(self):
        engine = EligibilityEngine(StubAccountLookup())

        assert engine.requires_exclusive_slot(personal()) is True
        assert engine.requires_exclusive_slot(business()) is False


class TestBusinessCustomer:
    """Only current accounts"""

    @pytest.mark.asyncio
    async def test_current_allowed(self):
        lookup = StubAccountLookup()
        engine = EligibilityEngine(lookup)

        await engine.check_eligibility(AccountRequest(customer_id="c1", account_type="CURRENT"), business())

        # No per-type limit for business customers
        assert lookup.queries == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("account_type", ["SAVINGS", "FIXED_TERM", "BROKERAGE"])
    async def test_other_types_rejected(self, account_type):
        engine = EligibilityEngine(StubAccountLookup())

        with pytest.raises(InvalidAccountTypeError):
            await engine.check_eligibility(
                AccountRequest(customer_id="c1", account_type=account_type),
                business()
            )


class TestUnknownClassification:
    """Unrecognised customer types"""

    @pytest.mark.asyncio
    async def test_unknown_classification_rejected(self):
        engine = EligibilityEngine(StubAccountLookup())

        with pytest.raises(InvalidAccountTypeError, match="customer type"):
            await engine.check_eligibility(
                AccountRequest(customer_id="c1", account_type="CURRENT"),
                CustomerClassification(customer_id="c1", customer_type="VIP")
            )
