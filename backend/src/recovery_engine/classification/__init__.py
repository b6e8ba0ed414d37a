"""Failure classification for the recovery engine."""
from .classifier import KeywordClassifier, TaggedErrorClassifier, error_message
from .patterns import DEFAULT_RULES, ClassificationRule, get_rules_for_category

__all__ = [
    "KeywordClassifier",
    "TaggedErrorClassifier",
    "ClassificationRule",
    "DEFAULT_RULES",
    "error_message",
    "get_rules_for_category",
]
