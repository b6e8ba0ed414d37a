"""Ordered keyword rules for failure classification."""
from dataclasses import dataclass

from ..types import FailureCategory


@dataclass(frozen=True)
class ClassificationRule:
    """Keyword rule matched against an error message.

    A rule matches when the message contains at least one of ``any_of``
    (if given) and every entry of ``all_of`` (if given). Matching is
    case-sensitive.
    """

    category: FailureCategory
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()

    def matches(self, message: str) -> bool:
        if not self.any_of and not self.all_of:
            return False
        if self.any_of and not any(keyword in message for keyword in self.any_of):
            return False
        return all(keyword in message for keyword in self.all_of)


# Earlier rules win on overlap.
DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        category=FailureCategory.RPC_ERROR,
        any_of=("RPC", "provider", "ENOTFOUND"),
    ),
    ClassificationRule(
        category=FailureCategory.DATABASE_ERROR,
        any_of=("database", "sqlite", "SQLITE"),
    ),
    ClassificationRule(
        category=FailureCategory.ADDRESS_VALIDATION_ERROR,
        all_of=("address", "invalid"),
    ),
    ClassificationRule(
        category=FailureCategory.NETWORK_TIMEOUT,
        any_of=("timeout", "ETIMEDOUT", "ECONNREFUSED"),
    ),
    ClassificationRule(
        category=FailureCategory.API_VALIDATION_ERROR,
        any_of=("validation", "required"),
    ),
)


def get_rules_for_category(category: FailureCategory) -> list[ClassificationRule]:
    """Get all default rules for a specific category."""
    return [rule for rule in DEFAULT_RULES if rule.category == category]
