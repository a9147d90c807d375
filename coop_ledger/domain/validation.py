"""Input validation for ledger writes and redistribution inputs"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping

from coop_ledger.domain.exceptions import ValidationError
from coop_ledger.domain.models import (
    Contribution,
    ContributionSet,
    PaymentMethod,
    TransactionKind,
    TransactionStatus,
)

MIN_DESCRIPTION_LENGTH = 3
PERCENTAGE_TOLERANCE = Decimal("0.01")

_KINDS = {k.value for k in TransactionKind}
_STATUSES = {s.value for s in TransactionStatus}
_METHODS = {m.value for m in PaymentMethod}


def _value(raw: Any) -> Any:
    return raw.value if hasattr(raw, "value") else raw


def validate_transaction(transaction: Mapping[str, Any]) -> List[str]:
    """
    Check a transaction payload and return the list of problems (empty when valid).

    Rules:
    - amount must be a positive integer (minor currency units)
    - category must be non-empty
    - description must have at least 3 characters
    - date is required
    - kind, status and payment method must be known values
    """
    errors = []

    amount = transaction.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        errors.append("amount must be a positive integer")

    category = transaction.get("category")
    if not category or not str(category).strip():
        errors.append("category is required")

    description = transaction.get("description")
    if not description or len(str(description).strip()) < MIN_DESCRIPTION_LENGTH:
        errors.append(f"description must be at least {MIN_DESCRIPTION_LENGTH} characters")

    if not transaction.get("date"):
        errors.append("date is required")

    if _value(transaction.get("kind")) not in _KINDS:
        errors.append("kind must be income or expense")

    if _value(transaction.get("status")) not in _STATUSES:
        errors.append("invalid status")

    if _value(transaction.get("payment_method")) not in _METHODS:
        errors.append("invalid payment method")

    return errors


def require_valid_transaction(transaction: Mapping[str, Any]) -> None:
    errors = validate_transaction(transaction)
    if errors:
        raise ValidationError(errors)


def require_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")


def parse_payment_method(raw: Any) -> PaymentMethod:
    try:
        return PaymentMethod(_value(raw))
    except ValueError:
        raise ValidationError(f"unknown payment method: {raw}") from None


def parse_contributions(raw_items: Iterable[Any]) -> ContributionSet:
    """
    Turn pooling-aggregate rows into a ContributionSet.

    Accepts Contribution objects or mappings with member_id, member_name,
    percentage and optional quantity/product_id/recipient_ref. Percentages
    must each be positive and sum to 100 (within 0.01); member ids must be
    unique.
    """
    contributions = []
    errors = []

    for index, item in enumerate(raw_items):
        if isinstance(item, Contribution):
            contributions.append(item)
            continue
        try:
            percentage = Decimal(str(item["percentage"]))
            contributions.append(
                Contribution(
                    member_id=str(item["member_id"]),
                    member_name=str(item.get("member_name") or ""),
                    percentage=percentage,
                    quantity=int(item.get("quantity") or 0),
                    product_id=item.get("product_id"),
                    recipient_ref=item.get("recipient_ref"),
                )
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            errors.append(f"contribution #{index} is malformed: {e}")

    if errors:
        raise ValidationError(errors)
    if not contributions:
        raise ValidationError("at least one member contribution is required")

    seen = set()
    for c in contributions:
        if not c.member_id:
            errors.append("member_id is required")
        if c.member_id in seen:
            errors.append(f"duplicate member '{c.member_id}'")
        seen.add(c.member_id)
        if not c.percentage.is_finite() or c.percentage <= 0:
            errors.append(f"percentage for member '{c.member_id}' must be positive")
        if c.quantity < 0:
            errors.append(f"quantity for member '{c.member_id}' cannot be negative")

    if errors:
        raise ValidationError(errors)

    total = sum((c.percentage for c in contributions), Decimal(0))
    if abs(total - Decimal(100)) > PERCENTAGE_TOLERANCE:
        raise ValidationError(f"contribution percentages sum to {total}, expected 100")

    return ContributionSet(items=tuple(contributions))


def parse_status(enum_cls, raw: Any, name: str = "status"):
    """Coerce a raw value into one of the lifecycle enums"""
    try:
        return enum_cls(_value(raw))
    except ValueError:
        raise ValidationError(f"unknown {name}: {_value(raw)}") from None
