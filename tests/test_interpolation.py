"""
Unit tests for {{placeholder}} interpolation.
"""

import pytest

from weather_assistant.exceptions import TemplateSyntaxError
from weather_assistant.execution.interpolation import (
    Placeholder,
    interpolate,
    interpolate_value,
    parse_path,
    parse_template,
)
from weather_assistant.schemas.location import LocationExtraction
from weather_assistant.state.models import RunContext, StepResult

from conftest import make_report


def _context(user_input: str = "北京天气怎么样?") -> RunContext:
    context = RunContext("test", user_input, ["parseLocation", "getWeather", "formatResponse"])
    context.record(StepResult.success("parseLocation", {"city": "北京", "country": "CN", "confidence": 0.95}))
    return context


class TestParsing:
    def test_literal_only(self):
        parsed = parse_template("no placeholders here")
        assert parsed.segments == ("no placeholders here",)
        assert parsed.placeholders == ()

    def test_segments_and_whitespace(self):
        parsed = parse_template("Weather: {{ getWeather.weather.temperature }} in {{input}}")
        assert parsed.segments[0] == "Weather: "
        assert parsed.segments[1] == Placeholder(path=("getWeather", "weather", "temperature"),
                                                 source="getWeather.weather.temperature")
        assert parsed.segments[2] == " in "
        assert parsed.segments[3].path == ("input",)

    def test_numeric_segments_become_indexes(self):
        assert parse_path("items.0.name") == ("items", 0, "name")

    def test_single_braces_are_literal(self):
        parsed = parse_template('{"city": "{{parseLocation.city}}"}')
        assert parsed.segments[0] == '{"city": "'
        assert parsed.segments[-1] == '"}'

    @pytest.mark.parametrize("template", [
        "Hello {{input",
        "{{}}",
        "{{ a..b }}",
        "{{ a b }}",
        "a }} {{input}}",
        "{{input}} }}",
    ])
    def test_malformed_templates(self, template):
        with pytest.raises(TemplateSyntaxError):
            parse_template(template)

    def test_stray_close_is_reported(self):
        with pytest.raises(TemplateSyntaxError, match="Unmatched"):
            parse_template("a }} {{input}}")


class TestInterpolate:
    def test_resolves_input_and_nested_paths(self):
        context = _context()
        text = interpolate("City: {{parseLocation.city}} ({{parseLocation.country}}) for '{{input}}'", context)
        assert text == "City: 北京 (CN) for '北京天气怎么样?'"
        assert context.warnings == []

    def test_numbers_and_booleans(self):
        context = _context()
        context.record(StepResult.success("getWeather", {"ok": True, "temp": 25, "wind": 3.5}))
        assert interpolate("{{getWeather.ok}} {{getWeather.temp}} {{getWeather.wind}}", context) == "true 25 3.5"

    def test_dicts_render_as_json(self):
        context = _context()
        rendered = interpolate("Data: {{parseLocation}}", context)
        assert rendered == 'Data: {"city": "北京", "country": "CN", "confidence": 0.95}'

    def test_models_render_as_json_and_expose_fields(self):
        context = _context()
        context.record(StepResult.success("getWeather", make_report("北京")))
        assert interpolate("{{getWeather.weather.temperature}}°", context) == "25°"
        assert '"city": "北京"' in interpolate("{{getWeather.location}}", context)

    def test_list_index(self):
        context = _context()
        context.record(StepResult.success("getWeather", {"days": [{"high": 30}, {"high": 28}]}))
        assert interpolate("{{getWeather.days.1.high}}", context) == "28"

    def test_missing_path_renders_empty_with_warning(self):
        context = _context()
        text = interpolate("Weather: [{{getWeather.weather.temperature}}]", context)
        assert text == "Weather: []"
        assert len(context.warnings) == 1
        assert context.warnings[0].kind == "unresolved_placeholder"

    def test_failed_step_reference_renders_empty(self):
        context = _context()
        context.record(StepResult.failure("getWeather", "timed out", error_type="timeout"))
        assert interpolate("Data: {{getWeather}}", context) == "Data: "
        assert [w.kind for w in context.warnings] == ["unresolved_placeholder"]

    def test_none_renders_empty_without_warning(self):
        context = _context()
        context.record(StepResult.success("getWeather", {"state": None}))
        assert interpolate("<{{getWeather.state}}>", context) == "<>"
        assert context.warnings == []

    def test_no_braces_left_after_full_resolution(self):
        context = _context()
        text = interpolate("{{input}} {{parseLocation.city}} {{missing.path}} {{parseLocation.confidence}}", context)
        assert "{{" not in text and "}}" not in text

    def test_private_attributes_do_not_resolve(self):
        context = _context()
        context.record(StepResult.success("getWeather", LocationExtraction(city="A", country="B", confidence=1)))
        assert interpolate("{{getWeather.__class__}}", context) == ""


class TestInterpolateValue:
    def test_single_placeholder_keeps_type(self):
        context = _context()
        assert interpolate_value("{{parseLocation.confidence}}", context) == 0.95
        assert interpolate_value("{{ parseLocation }}", context) == {"city": "北京", "country": "CN", "confidence": 0.95}

    def test_mixed_template_is_text(self):
        context = _context()
        assert interpolate_value("{{parseLocation.confidence}}%", context) == "0.95%"
