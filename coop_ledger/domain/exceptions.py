"""Domain-specific exceptions"""

from typing import List


class DomainException(Exception):
    """Base exception for domain layer"""

    kind = "domain_error"


class ValidationError(DomainException):
    """Input has the wrong shape or is out of range"""

    kind = "validation_error"

    def __init__(self, errors: List[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class InvalidTransitionError(DomainException):
    """Lifecycle transition is not allowed from the current state"""

    kind = "invalid_transition"

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot move from '{current}' to '{target}'")


class NotFoundError(DomainException):
    """Entity does not exist in this cooperative"""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class ProviderError(DomainException):
    """Payout provider call failed or timed out"""

    kind = "provider_error"


class ConsistencyError(DomainException):
    """Distribution totals do not reconcile with the payment amount"""

    kind = "consistency_error"
