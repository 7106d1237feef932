"""
Account Workflow Module

End-to-end account operations. Creation runs a fixed pipeline:

    RECEIVED -> CLASSIFIED -> ELIGIBILITY_CHECKED -> TYPE_VALIDATED -> PERSISTED

and any failure ends the request in FAILED before the account reaches the
store. Classification must precede eligibility, and both must precede type
validation and persistence. The remaining operations are direct store
operations.

Concurrent requests run as independent coroutines. The eligibility check
reads existing accounts before inserting; when the unique personal account
guard is enabled the store rejects a second account of the same type that
slipped past the check.
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Union

from .account_policy import AccountTypePolicy
from .accounts import Account, AccountRequest, AccountType, parse_amount
from .eligibility import CustomerClassification, EligibilityEngine
from .exceptions import (
    AccountNotFoundError, AccountServiceError,
    ClassificationUnavailableError, InvalidAccountDataError
)
from .logging_config import log_action
from .repository import AccountRepository

logger = logging.getLogger("bank_accounts.workflow")


class CreationStage(Enum):
    """Account creation pipeline stages"""
    RECEIVED = "received"
    CLASSIFIED = "classified"
    ELIGIBILITY_CHECKED = "eligibility_checked"
    TYPE_VALIDATED = "type_validated"
    PERSISTED = "persisted"
    FAILED = "failed"


class CustomerClassifier(Protocol):
    """Source of customer classifications"""

    async def get_classification(self, customer_id: str) -> CustomerClassification:
        ...


class AccountWorkflow:
    """
    Account workflow orchestrator

    Composes the customer classifier, eligibility engine, account type policy
    and account store.
    """

    def __init__(
        self,
        repository: AccountRepository,
        classifier: CustomerClassifier,
        policy: Optional[AccountTypePolicy] = None,
        eligibility: Optional[EligibilityEngine] = None,
        enforce_unique_personal_accounts: bool = True
    ):
        self.repository = repository
        self.classifier = classifier
        self.policy = policy or AccountTypePolicy()
        self.eligibility = eligibility or EligibilityEngine(repository)
        self.enforce_unique_personal_accounts = enforce_unique_personal_accounts

    async def create_account(
        self,
        request: Union[AccountRequest, Dict[str, Any]],
        correlation_id: Optional[str] = None
    ) -> Account:
        """
        Create a new account

        Args:
            request: Candidate account, or a raw payload
            correlation_id: Request id carried into the logs

        Returns:
            The persisted account, with its assigned id

        Raises:
            InvalidAccountDataError, InvalidAccountTypeError,
            MaximumAccountsReachedError, ClassificationUnavailableError,
            StoreUnavailableError
        """
        stage = CreationStage.RECEIVED
        try:
            if not isinstance(request, AccountRequest):
                request = AccountRequest.from_dict(request)
            if not request.customer_id.strip():
                raise InvalidAccountDataError("Customer ID must not be blank")
            self._log_stage(stage, request, correlation_id)

            classification = await self._classify(request.customer_id)
            stage = CreationStage.CLASSIFIED
            self._log_stage(stage, request, correlation_id,
                            customer_type=classification.customer_type)

            await self.eligibility.check_eligibility(request, classification)
            stage = CreationStage.ELIGIBILITY_CHECKED
            self._log_stage(stage, request, correlation_id)

            details = self.policy.validate(request)
            stage = CreationStage.TYPE_VALIDATED
            self._log_stage(stage, request, correlation_id)

            account = Account(
                customer_id=request.customer_id,
                type=AccountType.parse(request.account_type),
                details=details,
                balance=request.effective_balance,
            )
            exclusive = (
                self.enforce_unique_personal_accounts
                and self.eligibility.requires_exclusive_slot(classification)
            )
            account = await self.repository.insert(account, exclusive=exclusive)
            stage = CreationStage.PERSISTED

        except AccountServiceError as e:
            e.stage = stage.value
            log_action(
                logger, "warning",
                f"Error creating bank account: {e.message}",
                action="create_account", correlation_id=correlation_id,
                customer_id=getattr(request, "customer_id", None),
                stage=CreationStage.FAILED.value, last_stage=stage.value, code=e.code
            )
            raise

        log_action(
            logger, "info", f"Account {account.id} created",
            action="create_account", correlation_id=correlation_id,
            account_id=account.id, customer_id=account.customer_id,
            account_type=account.type.value, stage=stage.value
        )
        return account

    async def _classify(self, customer_id: str) -> CustomerClassification:
        """Ask the classifier, treating any failure as unavailable"""
        try:
            return await self.classifier.get_classification(customer_id)
        except ClassificationUnavailableError:
            raise
        except Exception as e:
            raise ClassificationUnavailableError(
                f"Customer classification failed: {e}"
            ) from e

    def _log_stage(self, stage: CreationStage, request: AccountRequest,
                   correlation_id: Optional[str], **details) -> None:
        log_action(
            logger, "debug", f"Account creation {stage.value}",
            action="create_account", correlation_id=correlation_id,
            customer_id=request.customer_id, account_type=request.account_type,
            stage=stage.value, **details
        )

    async def get_account(self, account_id: str) -> Account:
        """Get account by ID"""
        return await self.repository.find_by_id(account_id)

    async def list_customer_accounts(self, customer_id: str) -> List[Account]:
        """All accounts held by a customer"""
        return await self.repository.find_by_customer_id(customer_id)

    async def list_accounts_of_type(self, customer_id: str,
                                    account_type: Union[str, AccountType]) -> List[Account]:
        """A customer's accounts of one type; AccountNotFoundError when there are none"""
        accounts = await self.repository.find_by_customer_id_and_type(customer_id, account_type)
        if not accounts:
            raise AccountNotFoundError(
                f"No {account_type} accounts found for customer {customer_id}"
            )
        return accounts

    async def first_account_of_type(self, customer_id: str,
                                    account_type: Union[str, AccountType]) -> Account:
        """First of a customer's accounts of one type"""
        accounts = await self.list_accounts_of_type(customer_id, account_type)
        return accounts[0]

    async def update_balance(self, account_id: str, balance: Union[Decimal, str, int, float]) -> Account:
        """
        Set an account's balance

        Only the balance changes; id, customer and type are immutable.
        """
        new_balance = parse_amount(balance, "balance")
        if new_balance is None:
            raise InvalidAccountDataError("Balance is required")
        if new_balance < 0:
            raise InvalidAccountDataError("Balance cannot be negative")

        account = await self.repository.find_by_id(account_id)
        old_balance = account.balance
        account.balance = new_balance
        account = await self.repository.save(account)

        log_action(
            logger, "info", f"Account {account_id} balance updated",
            action="update_balance", account_id=account_id,
            old_balance=str(old_balance), new_balance=str(new_balance)
        )
        return account

    async def delete_account(self, account_id: str) -> None:
        """Delete an account by ID"""
        account = await self.repository.find_by_id(account_id)
        await self.repository.delete(account)
        log_action(
            logger, "info", f"Account {account_id} deleted",
            action="delete_account", account_id=account_id
        )
