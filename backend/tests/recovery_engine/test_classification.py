"""Tests for failure classification."""
import pytest

from backend.src.recovery_engine.classification import (
    DEFAULT_RULES,
    ClassificationRule,
    KeywordClassifier,
    TaggedErrorClassifier,
    get_rules_for_category,
)
from backend.src.recovery_engine.exceptions import RecoverableOperationError, ValidationStepError
from backend.src.recovery_engine.types import FailureCategory


class TestClassificationRule:
    """Test keyword rule matching."""

    def test_any_of_matches(self):
        rule = ClassificationRule(FailureCategory.RPC_ERROR, any_of=("RPC", "provider"))
        assert rule.matches("provider returned 502")
        assert not rule.matches("nothing relevant")

    def test_all_of_requires_every_keyword(self):
        rule = ClassificationRule(FailureCategory.ADDRESS_VALIDATION_ERROR, all_of=("address", "invalid"))
        assert rule.matches("invalid address checksum")
        assert not rule.matches("address not found")
        assert not rule.matches("invalid token")

    def test_empty_rule_never_matches(self):
        rule = ClassificationRule(FailureCategory.RPC_ERROR)
        assert not rule.matches("RPC")

    def test_rules_for_category(self):
        rules = get_rules_for_category(FailureCategory.NETWORK_TIMEOUT)
        assert len(rules) == 1
        assert "ETIMEDOUT" in rules[0].any_of


class TestKeywordClassifier:
    """Test ordered first-match-wins classification."""

    @pytest.fixture
    def classifier(self):
        return KeywordClassifier()

    @pytest.mark.parametrize("message,expected", [
        ("RPC endpoint unreachable", FailureCategory.RPC_ERROR),
        ("provider rejected request", FailureCategory.RPC_ERROR),
        ("getaddrinfo ENOTFOUND mainnet.infura.io", FailureCategory.RPC_ERROR),
        ("database is locked", FailureCategory.DATABASE_ERROR),
        ("SQLITE_BUSY: database table is locked", FailureCategory.DATABASE_ERROR),
        ("sqlite3 disk I/O error", FailureCategory.DATABASE_ERROR),
        ("invalid address for ethereum", FailureCategory.ADDRESS_VALIDATION_ERROR),
        ("request timeout after 5000ms", FailureCategory.NETWORK_TIMEOUT),
        ("connect ETIMEDOUT 10.0.0.1:443", FailureCategory.NETWORK_TIMEOUT),
        ("connect ECONNREFUSED 127.0.0.1:8545", FailureCategory.NETWORK_TIMEOUT),
        ("schema validation failed", FailureCategory.API_VALIDATION_ERROR),
        ("field 'amount' is required", FailureCategory.API_VALIDATION_ERROR),
        ("something odd happened", FailureCategory.GENERIC_ERROR),
    ])
    def test_default_rules(self, classifier, message, expected):
        assert classifier.classify(RuntimeError(message)) == expected

    def test_earlier_rule_wins_on_overlap(self, classifier):
        # Mentions both RPC and timeout terms; RPC comes first.
        assert classifier.classify(RuntimeError("RPC timeout")) == FailureCategory.RPC_ERROR
        # Mentions database and validation terms; database comes first.
        error = RuntimeError("database validation required")
        assert classifier.classify(error) == FailureCategory.DATABASE_ERROR

    def test_case_sensitive(self, classifier):
        assert classifier.classify(RuntimeError("rpc down")) == FailureCategory.GENERIC_ERROR
        assert classifier.classify(RuntimeError("Validation failed")) == FailureCategory.GENERIC_ERROR
        assert classifier.classify(RuntimeError("Invalid Address")) == FailureCategory.GENERIC_ERROR

    def test_empty_message_uses_type_name(self, classifier):
        class RPCFailure(Exception):
            pass

        assert classifier.classify(RPCFailure()) == FailureCategory.RPC_ERROR

    def test_deterministic(self, classifier):
        error = ConnectionError("connect ECONNREFUSED 127.0.0.1")
        categories = {classifier.classify(error) for _ in range(1000)}
        assert categories == {FailureCategory.NETWORK_TIMEOUT}

    def test_add_rule_appends_after_defaults(self, classifier):
        classifier.add_rule(ClassificationRule(FailureCategory.DATABASE_ERROR, any_of=("deadlock",)))
        assert classifier.classify(RuntimeError("deadlock detected")) == FailureCategory.DATABASE_ERROR
        # Default rules still take precedence.
        assert classifier.classify(RuntimeError("RPC deadlock")) == FailureCategory.RPC_ERROR

    def test_add_rule_at_front(self, classifier):
        classifier.add_rule(ClassificationRule(FailureCategory.NETWORK_TIMEOUT, any_of=("RPC",)), index=0)
        assert classifier.classify(RuntimeError("RPC slow")) == FailureCategory.NETWORK_TIMEOUT

    def test_custom_rules_replace_defaults(self):
        classifier = KeywordClassifier(rules=[
            ClassificationRule(FailureCategory.DATABASE_ERROR, any_of=("postgres",)),
        ])
        assert classifier.classify(RuntimeError("postgres gone")) == FailureCategory.DATABASE_ERROR
        assert classifier.classify(RuntimeError("RPC down")) == FailureCategory.GENERIC_ERROR
        assert len(DEFAULT_RULES) == 5


class TestTaggedErrorClassifier:
    """Test structured category tags."""

    def test_tag_overrides_message(self):
        classifier = TaggedErrorClassifier()
        error = RecoverableOperationError("RPC flake", FailureCategory.DATABASE_ERROR)
        assert classifier.classify(error) == FailureCategory.DATABASE_ERROR

    def test_string_tag(self):
        classifier = TaggedErrorClassifier()
        error = RecoverableOperationError("oops", "network_timeout")
        assert classifier.classify(error) == FailureCategory.NETWORK_TIMEOUT

    def test_generic_tag_defers_to_keywords(self):
        classifier = TaggedErrorClassifier()
        error = ValidationStepError("provider unavailable")
        assert classifier.classify(error) == FailureCategory.RPC_ERROR

    def test_unknown_string_tag_ignored(self):
        error = RuntimeError("database closed")
        error.category = "not-a-category"
        assert TaggedErrorClassifier().classify(error) == FailureCategory.DATABASE_ERROR

    def test_untagged_uses_fallback(self):
        class AlwaysTimeout:
            def classify(self, error):
                return FailureCategory.NETWORK_TIMEOUT

        classifier = TaggedErrorClassifier(fallback=AlwaysTimeout())
        assert classifier.classify(RuntimeError("whatever")) == FailureCategory.NETWORK_TIMEOUT
