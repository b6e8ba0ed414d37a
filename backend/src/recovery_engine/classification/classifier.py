"""Failure classifier implementations."""
import logging
from typing import Iterable, Optional

from ..types import ErrorClassifierProtocol, FailureCategory
from .patterns import DEFAULT_RULES, ClassificationRule

logger = logging.getLogger(__name__)


def error_message(error: BaseException) -> str:
    """Text used for classification and error identities."""
    message = str(error)
    return message if message else type(error).__name__


class KeywordClassifier:
    """Classifies errors by ordered keyword inspection of their message."""

    def __init__(self, rules: Optional[Iterable[ClassificationRule]] = None):
        """Initialize classifier with rules.

        Args:
            rules: Ordered rules to evaluate; first match wins. Defaults to
                ``DEFAULT_RULES``.

        """
        self.rules: list[ClassificationRule] = list(DEFAULT_RULES if rules is None else rules)

    def classify(self, error: BaseException) -> FailureCategory:
        """Return the category of the first matching rule, else GENERIC_ERROR."""
        message = error_message(error)
        for rule in self.rules:
            if rule.matches(message):
                logger.debug(f"Classified '{message[:80]}' as {rule.category.value}")
                return rule.category
        return FailureCategory.GENERIC_ERROR

    def add_rule(self, rule: ClassificationRule, index: Optional[int] = None) -> None:
        """Add a rule. Appended (lowest precedence) unless ``index`` is given."""
        if index is None:
            self.rules.append(rule)
        else:
            self.rules.insert(index, rule)


class TaggedErrorClassifier:
    """Prefers an explicit ``category`` attribute over message sniffing.

    A ``GENERIC_ERROR`` tag carries no information, so it defers to the
    fallback classifier like an untagged error.
    """

    def __init__(self, fallback: Optional[ErrorClassifierProtocol] = None):
        self.fallback = fallback or KeywordClassifier()

    def classify(self, error: BaseException) -> FailureCategory:
        tag = getattr(error, "category", None)
        if isinstance(tag, str):
            try:
                tag = FailureCategory(tag)
            except ValueError:
                logger.debug(f"Ignoring unknown category tag {tag!r} on {type(error).__name__}")
                tag = None
        if isinstance(tag, FailureCategory) and tag is not FailureCategory.GENERIC_ERROR:
            return tag
        return self.fallback.classify(error)
