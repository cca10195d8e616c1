"""Tests for resolving attribute specifications into evaluators."""

from datetime import datetime

import pytest

from fdsim.errors import InvalidInterpolationSpec
from fdsim.resolver import AttributeEvaluator, InterpolatorKind, parse_call, resolve

NOON = datetime(2016, 10, 20, 12, 0, 0)


class TestParseCall:
    def test_interpolator_call(self):
        assert parse_call("time-linear-interpolator([[0, 0], [24, 24]])") == (
            InterpolatorKind.TIME_LINEAR,
            "[[0, 0], [24, 24]]",
        )

    def test_surrounding_whitespace(self):
        kind, arguments = parse_call("  text-rotation-interpolator( {} )  ")
        assert kind is InterpolatorKind.TEXT_ROTATION
        assert arguments == "{}"

    def test_random_linear_is_not_confused_with_linear(self):
        kind, _ = parse_call("time-random-linear-interpolator([[0, 0], [24, 1]])")
        assert kind is InterpolatorKind.TIME_RANDOM_LINEAR

    def test_not_a_call(self):
        assert parse_call("1 + 2") is None
        assert parse_call("time-linear-interpolator") is None

    def test_missing_closing_parenthesis(self):
        with pytest.raises(InvalidInterpolationSpec):
            parse_call("time-linear-interpolator([[0, 0], [24, 24]]")


class TestResolve:
    """Dispatch on the specification prefix."""

    @pytest.mark.parametrize(
        "spec,expected",
        [
            ("time-linear-interpolator([[0, 0], [24, 24]])", 12),
            ("time-step-before-interpolator([[0, 0], [12, 5], [24, 10]])", 5),
            ("time-step-after-interpolator([[0, 0], [11, 5], [24, 10]])", 5),
            ("time-random-linear-interpolator([[0, 0], [12, random(3, 3)], [24, 10]])", 3),
        ],
    )
    def test_time_interpolators_use_decimal_hours(self, spec, expected):
        evaluator = resolve(spec)
        assert evaluator(now=NOON) == expected

    def test_date_increment(self):
        evaluator = resolve(
            'date-increment-interpolator({"origin": "2016-10-20T10:00:00.000Z", "increment": 60})'
        )
        assert evaluator.kind is InterpolatorKind.DATE_INCREMENT
        assert evaluator(now=NOON) == "2016-10-20T10:01:00.000Z"

    def test_multiline_position(self):
        evaluator = resolve(
            'multiline-position-interpolator({"coordinates": [[0, 0], [1, 0]], '
            '"speed": {"value": 10}, "time": {"from": 13, "to": 22}})'
        )
        assert evaluator(now=NOON) == {"type": "Point", "coordinates": [0, 0]}

    def test_text_rotation_uses_wall_clock(self):
        evaluator = resolve(
            'text-rotation-interpolator({"units": "hours", "text": [[0, "NIGHT"], [8, "DAY"], [20, "NIGHT"]]})'
        )
        assert evaluator(now=NOON) == "DAY"
        assert evaluator(now=datetime(2016, 10, 20, 21, 0)) == "NIGHT"

    def test_expression(self):
        evaluator = resolve("2 * 21")
        assert evaluator.is_expression
        assert evaluator() == 42

    def test_literal(self):
        evaluator = resolve(21.5)
        assert evaluator.kind is None
        assert evaluator() == 21.5

    def test_returns_attribute_evaluator(self):
        assert isinstance(resolve("1"), AttributeEvaluator)

    @pytest.mark.parametrize("kind", list(InterpolatorKind))
    def test_empty_arguments_rejected(self, kind):
        with pytest.raises(InvalidInterpolationSpec):
            resolve(f"{kind.value}()")

    @pytest.mark.parametrize(
        "spec",
        [
            "time-linear-interpolator([[0], [24]])",
            "time-step-before-interpolator(abc)",
            'text-rotation-interpolator({"units": "ages", "text": [[0, "A"], [1, "B"]]})',
        ],
    )
    def test_invalid_arguments(self, spec):
        with pytest.raises(InvalidInterpolationSpec):
            resolve(spec)


def test_independent_evaluators_agree():
    spec = "time-linear-interpolator([[0, 0], [24, 48]])"
    first, second = resolve(spec), resolve(spec)
    assert first is not second
    assert first(now=NOON) == second(now=NOON) == 24
