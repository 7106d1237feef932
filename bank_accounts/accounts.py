"""
Account Data Model

Bank accounts are a closed set of variants keyed by account type. Each variant
carries exactly one details record (savings movement limit, current account
maintenance fee, fixed term withdrawal date), and an account can never carry
the attributes of another variant.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from .exceptions import InvalidAccountDataError, InvalidAccountTypeError


class AccountType(Enum):
    """Account variants"""
    SAVINGS = "SAVINGS"          # Limited monthly movements
    CURRENT = "CURRENT"          # Unlimited movements, maintenance fee
    FIXED_TERM = "FIXED_TERM"    # Single withdrawal on a fixed date

    @classmethod
    def parse(cls, value: Union[str, "AccountType"]) -> "AccountType":
        """Resolve a raw account type, raising InvalidAccountTypeError if unknown"""
        if isinstance(value, cls):
            return value
        try:
            return cls(normalize_account_type(value))
        except ValueError:
            raise InvalidAccountTypeError(f"Invalid account type: {value!r}")


def normalize_account_type(value: Union[str, AccountType, None]) -> str:
    """Canonical string form of an account type, known or not"""
    if isinstance(value, AccountType):
        return value.value
    if value is None:
        return ""
    return str(value).strip().upper()


@dataclass(frozen=True)
class SavingsDetails:
    """Savings account attributes"""
    account_type: ClassVar[AccountType] = AccountType.SAVINGS
    field_names: ClassVar[Tuple[str, ...]] = ("monthly_movement_limit",)

    monthly_movement_limit: int

    def to_fields(self) -> Dict[str, Any]:
        return {"monthly_movement_limit": self.monthly_movement_limit}

    @classmethod
    def from_fields(cls, data: Dict[str, Any]) -> "SavingsDetails":
        return cls(monthly_movement_limit=int(data["monthly_movement_limit"]))


@dataclass(frozen=True)
class CurrentDetails:
    """Current account attributes"""
    account_type: ClassVar[AccountType] = AccountType.CURRENT
    field_names: ClassVar[Tuple[str, ...]] = ("maintenance_fee",)

    maintenance_fee: Decimal

    def to_fields(self) -> Dict[str, Any]:
        return {"maintenance_fee": str(self.maintenance_fee)}

    @classmethod
    def from_fields(cls, data: Dict[str, Any]) -> "CurrentDetails":
        return cls(maintenance_fee=Decimal(str(data["maintenance_fee"])))


@dataclass(frozen=True)
class FixedTermDetails:
    """Fixed term account attributes"""
    account_type: ClassVar[AccountType] = AccountType.FIXED_TERM
    field_names: ClassVar[Tuple[str, ...]] = ("withdrawal_date",)

    withdrawal_date: date

    def to_fields(self) -> Dict[str, Any]:
        return {"withdrawal_date": self.withdrawal_date.isoformat()}

    @classmethod
    def from_fields(cls, data: Dict[str, Any]) -> "FixedTermDetails":
        return cls(withdrawal_date=date.fromisoformat(data["withdrawal_date"]))


AccountDetails = Union[SavingsDetails, CurrentDetails, FixedTermDetails]

DETAILS_BY_TYPE = {
    AccountType.SAVINGS: SavingsDetails,
    AccountType.CURRENT: CurrentDetails,
    AccountType.FIXED_TERM: FixedTermDetails,
}

# Every variant-specific attribute name, across all variants
VARIANT_FIELDS: Tuple[str, ...] = tuple(
    name for details_cls in DETAILS_BY_TYPE.values() for name in details_cls.field_names
)


@dataclass
class Account:
    """
    Bank account

    ``id`` and the timestamps are assigned by the store on insert. Only
    ``balance`` changes after the account has been persisted.
    """
    customer_id: str
    type: AccountType
    details: AccountDetails
    balance: Decimal = field(default_factory=lambda: Decimal("0.00"))
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.customer_id or not self.customer_id.strip():
            raise InvalidAccountDataError("Customer ID must not be blank")
        if not isinstance(self.type, AccountType):
            raise InvalidAccountTypeError(f"Invalid account type: {self.type!r}")
        if self.details.account_type is not self.type:
            raise InvalidAccountDataError(
                f"{self.type.value} account cannot carry "
                f"{self.details.account_type.value} attributes"
            )
        if not self.balance.is_finite():
            raise InvalidAccountDataError("Balance must be a finite number")
        if self.balance < 0:
            raise InvalidAccountDataError("Balance cannot be negative")

    @property
    def exclusive_key(self) -> str:
        """Uniqueness key for customers limited to one account per type"""
        return f"{self.customer_id}:{self.type.value}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a flat storage document"""
        result = {
            "id": self.id,
            "customer_id": self.customer_id,
            "type": self.type.value,
            "balance": str(self.balance),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        result.update(self.details.to_fields())
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        """Create instance from a storage document"""
        account_type = AccountType.parse(data["type"])
        details = DETAILS_BY_TYPE[account_type].from_fields(data)

        created_at = data.get("created_at")
        updated_at = data.get("updated_at")

        return cls(
            id=data.get("id"),
            customer_id=data["customer_id"],
            type=account_type,
            details=details,
            balance=Decimal(str(data.get("balance", "0.00"))),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )


# Accepted spellings for incoming request keys
_REQUEST_KEY_ALIASES = {
    "customerId": "customer_id",
    "type": "account_type",
    "accountType": "account_type",
    "monthlyMovementLimit": "monthly_movement_limit",
    "maintenanceFee": "maintenance_fee",
    "withdrawalDate": "withdrawal_date",
}


@dataclass
class AccountRequest:
    """
    Candidate account submitted for creation

    ``account_type`` is kept in its raw form; whether it names a known
    variant is decided by the account type policy.
    """
    customer_id: str
    account_type: str
    balance: Optional[Decimal] = None
    monthly_movement_limit: Optional[int] = None
    maintenance_fee: Optional[Decimal] = None
    withdrawal_date: Optional[date] = None

    def __post_init__(self):
        self.account_type = normalize_account_type(self.account_type)
        self.balance = parse_amount(self.balance, "balance")
        self.monthly_movement_limit = _parse_int(self.monthly_movement_limit, "monthly_movement_limit")
        self.maintenance_fee = parse_amount(self.maintenance_fee, "maintenance_fee")
        self.withdrawal_date = _parse_date(self.withdrawal_date, "withdrawal_date")

    @property
    def effective_balance(self) -> Decimal:
        """Opening balance, zero when not supplied"""
        return self.balance if self.balance is not None else Decimal("0.00")

    def populated_variant_fields(self) -> Tuple[str, ...]:
        """Names of the variant-specific attributes present on the request"""
        return tuple(name for name in VARIANT_FIELDS if getattr(self, name) is not None)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountRequest":
        """
        Build a request from an incoming payload

        Accepts snake_case and camelCase keys. A payload carrying an ``id`` is
        rejected since ids are assigned by the store.
        """
        payload = {_REQUEST_KEY_ALIASES.get(key, key): value for key, value in data.items()}

        if payload.get("id") is not None:
            raise InvalidAccountDataError("Account id is assigned on creation and cannot be supplied")

        unknown = set(payload) - {
            "id", "customer_id", "account_type", "balance",
            "monthly_movement_limit", "maintenance_fee", "withdrawal_date",
        }
        if unknown:
            raise InvalidAccountDataError(f"Unknown account fields: {', '.join(sorted(unknown))}")

        return cls(
            customer_id=str(payload.get("customer_id") or ""),
            account_type=payload.get("account_type"),
            balance=payload.get("balance"),
            monthly_movement_limit=payload.get("monthly_movement_limit"),
            maintenance_fee=payload.get("maintenance_fee"),
            withdrawal_date=payload.get("withdrawal_date"),
        )


def parse_amount(value: Any, name: str) -> Optional[Decimal]:
    """Monetary amount from user input; NaN and infinities are rejected"""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidAccountDataError(f"{name} must be a number")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidAccountDataError(f"{name} must be a number")
    if not amount.is_finite():
        raise InvalidAccountDataError(f"{name} must be a finite number")
    return amount


def _parse_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidAccountDataError(f"{name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidAccountDataError(f"{name} must be an integer")
    # int() truncates 5.9 to 5
    if isinstance(value, (float, Decimal)) and number != value:
        raise InvalidAccountDataError(f"{name} must be an integer")
    return number


def _parse_date(value: Any, name: str) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidAccountDataError(f"{name} must be an ISO date (YYYY-MM-DD)")
