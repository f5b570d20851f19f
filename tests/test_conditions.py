"""
Unit tests for step run-conditions.
"""

import pytest

from weather_assistant.exceptions import ConditionSyntaxError, TemplateSyntaxError
from weather_assistant.execution.conditions import evaluate_condition, parse_condition
from weather_assistant.state.models import RunContext, StepResult


def _context(location) -> RunContext:
    context = RunContext("test", "query", ["parseLocation", "getWeather"])
    context.record(StepResult.success("parseLocation", location))
    return context


class TestParseCondition:
    def test_numeric_literal(self):
        condition = parse_condition("{{parseLocation.confidence}} > 0.5")
        assert condition.left == "{{parseLocation.confidence}}"
        assert condition.operator == ">"
        assert condition.literal == 0.5
        assert not condition.quoted

    def test_two_character_operators_win(self):
        assert parse_condition("{{a}} >= 1").operator == ">="
        assert parse_condition("{{a}} != 1").operator == "!="

    def test_quoted_literal(self):
        condition = parse_condition("{{parseLocation.country}} == 'CN'")
        assert condition.literal == "CN"
        assert condition.quoted

    def test_bare_word_literal(self):
        assert parse_condition("{{parseLocation.country}} == CN").literal == "CN"

    @pytest.mark.parametrize("text", [
        "{{parseLocation.confidence}}",
        "> 0.5",
        "{{parseLocation.confidence}} >",
        "{{parseLocation.confidence}} > 0.5 > 1",
        "{{parseLocation.confidence}} == two words",
        "{{parseLocation.confidence}} > high",
        "{{parseLocation.confidence}} <= '0.5'",
    ])
    def test_malformed(self, text):
        with pytest.raises(ConditionSyntaxError):
            parse_condition(text)

    def test_malformed_left_template(self):
        with pytest.raises((ConditionSyntaxError, TemplateSyntaxError)):
            parse_condition("{{parseLocation.confidence > 0.5")

    def test_numeric_operator_rejects_word_literal(self):
        with pytest.raises(ConditionSyntaxError, match="numeric literal"):
            parse_condition("{{parseLocation.confidence}} > high")


class TestEvaluateCondition:
    def test_no_condition_always_runs(self):
        context = _context({"confidence": 0})
        assert evaluate_condition(None, context) is True
        assert evaluate_condition("  ", context) is True

    @pytest.mark.parametrize("confidence, expected", [
        (0.95, True),
        (0.51, True),
        (0.5, False),
        (0.1, False),
        (0, False),
    ])
    def test_numeric_threshold(self, confidence, expected):
        context = _context({"confidence": confidence})
        assert evaluate_condition("{{parseLocation.confidence}} > 0.5", context) is expected

    def test_numeric_string_is_coerced(self):
        context = _context({"confidence": "0.8"})
        assert evaluate_condition("{{parseLocation.confidence}} > 0.5", context) is True

    def test_non_numeric_left_side_is_false_with_warning(self):
        context = _context({"confidence": "high"})
        assert evaluate_condition("{{parseLocation.confidence}} > 0.5", context) is False
        assert [w.kind for w in context.warnings] == ["condition_not_numeric"]

    def test_boolean_is_not_numeric(self):
        context = _context({"confidence": True})
        assert evaluate_condition("{{parseLocation.confidence}} >= 0", context) is False

    def test_missing_value_is_false(self):
        context = _context({})
        assert evaluate_condition("{{parseLocation.confidence}} > 0.5", context) is False
        kinds = [w.kind for w in context.warnings]
        assert "unresolved_placeholder" in kinds
        assert "condition_not_numeric" in kinds

    def test_failed_previous_step_is_false(self):
        context = RunContext("test", "query", ["parseLocation", "getWeather"])
        context.record(StepResult.failure("parseLocation", "boom", error_type="timeout"))
        assert evaluate_condition("{{parseLocation.confidence}} > 0.5", context) is False

    def test_string_equality(self):
        context = _context({"country": "CN"})
        assert evaluate_condition("{{parseLocation.country}} == 'CN'", context) is True
        assert evaluate_condition("{{parseLocation.country}} == CN", context) is True
        assert evaluate_condition("{{parseLocation.country}} != \"US\"", context) is True

    def test_equality_is_numeric_for_numbers(self):
        context = _context({"confidence": 1})
        assert evaluate_condition("{{parseLocation.confidence}} == 1.0", context) is True

    def test_quoted_literal_forces_string_comparison(self):
        context = _context({"confidence": 1})
        assert evaluate_condition("{{parseLocation.confidence}} == '1.0'", context) is False
        assert evaluate_condition("{{parseLocation.confidence}} == '1'", context) is True
