"""Tests for the time-driven interpolators (date increment, position, text rotation)."""

from datetime import datetime, timedelta, timezone

import pytest

from fdsim.errors import InvalidInterpolationSpec
from fdsim.interpolators import (
    date_increment_interpolator,
    multiline_position_interpolator,
    text_rotation_interpolator,
)
from fdsim.interpolators.multiline_position import haversine_km, point_along
from fdsim.utils.clock import parse_iso

ORIGIN = "2016-10-20T10:00:00.000Z"


class TestDateIncrementInterpolator:
    """Dates advance by the increment on every call."""

    def test_constant_increment_accumulates(self):
        f = date_increment_interpolator({"origin": ORIGIN, "increment": 60})
        assert f(10.0) == "2016-10-20T10:01:00.000Z"
        assert f(10.0) == "2016-10-20T10:02:00.000Z"

    def test_json_string_spec(self):
        f = date_increment_interpolator('{"origin": "2016-10-20T10:00:00.000Z", "increment": 3600}')
        assert f(0) == "2016-10-20T11:00:00.000Z"

    def test_interpolated_increment(self):
        f = date_increment_interpolator({"origin": ORIGIN, "increment": "[[0, 0], [24, 2400]]"})
        assert f(12.0) == "2016-10-20T10:20:00.000Z"

    def test_now_origin(self):
        before = datetime.now(timezone.utc)
        f = date_increment_interpolator({"origin": "now", "increment": 10})
        result = parse_iso(f(0))
        assert result >= before.replace(microsecond=0) + timedelta(seconds=9)
        assert result <= datetime.now(timezone.utc) + timedelta(seconds=11)

    @pytest.mark.parametrize(
        "spec",
        [
            {"increment": 60},
            {"origin": ORIGIN},
            {"origin": "yesterday", "increment": 60},
            {"origin": 1234, "increment": 60},
            {"origin": ORIGIN, "increment": "abc"},
            "not json",
            [ORIGIN, 60],
        ],
    )
    def test_invalid(self, spec):
        with pytest.raises(InvalidInterpolationSpec):
            date_increment_interpolator(spec)


class TestMultilinePositionInterpolator:
    """Positions move along the path during the time window."""

    PATH = [[0, 0], [1, 0], [2, 0]]

    def _spec(self, **overrides):
        spec = {
            "coordinates": self.PATH,
            "speed": {"value": 10, "units": "km/h"},
            "time": {"from": 10, "to": 22},
        }
        spec.update(overrides)
        return spec

    def test_before_window_stays_at_start(self):
        f = multiline_position_interpolator(self._spec())
        assert f(9) == {"type": "Point", "coordinates": [0, 0]}
        assert f(10)["coordinates"] == [0, 0]

    def test_moves_at_speed(self):
        f = multiline_position_interpolator(self._spec())
        lon, lat = f(11)["coordinates"]
        expected = 10 / haversine_km([0, 0], [1, 0])
        assert lon == pytest.approx(expected)
        assert lat == pytest.approx(0)

    def test_after_window_keeps_last_position(self):
        f = multiline_position_interpolator(self._spec())
        assert f(23) == f(22)

    def test_stops_at_last_vertex(self):
        f = multiline_position_interpolator(self._spec(speed={"value": 1000}))
        assert f(20)["coordinates"] == [2, 0]

    def test_speed_units(self):
        kmh = multiline_position_interpolator(self._spec(speed={"value": 36, "units": "km/h"}))
        ms = multiline_position_interpolator(self._spec(speed={"value": 10, "units": "m/s"}))
        assert kmh(11)["coordinates"] == pytest.approx(ms(11)["coordinates"])

    def test_json_string_spec(self):
        f = multiline_position_interpolator(
            '{"coordinates": [[0, 0], [1, 0]], "speed": {"value": 10}, "time": {"from": 0, "to": 24}}'
        )
        assert f(0)["coordinates"] == [0, 0]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"coordinates": [[0, 0]]},
            {"coordinates": [[200, 0], [0, 0]]},
            {"speed": {"value": -1}},
            {"speed": {"value": 10, "units": "knots"}},
            {"time": {"from": 20, "to": 10}},
            {"time": {"from": 0, "to": 25}},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(InvalidInterpolationSpec):
            multiline_position_interpolator(self._spec(**overrides))

    def test_invalid_json(self):
        with pytest.raises(InvalidInterpolationSpec):
            multiline_position_interpolator("{coordinates")

    def test_point_along_zero_distance(self):
        assert point_along(self.PATH, 0) == [0, 0]


class TestTextRotationInterpolator:
    """Text is picked from the clock component with step-after semantics."""

    TABLE = [[0, "PENDING"], [15, "REQUESTED"], [30, "IN_PROGRESS"], [45, "DELIVERED"]]

    @pytest.mark.parametrize(
        "second,expected",
        [(0, "PENDING"), (14, "PENDING"), (15, "REQUESTED"), (29, "REQUESTED"), (30, "IN_PROGRESS"), (59, "DELIVERED")],
    )
    def test_seconds(self, second, expected):
        f = text_rotation_interpolator({"units": "seconds", "text": self.TABLE})
        assert f(datetime(2016, 10, 20, 10, 0, second)) == expected

    def test_days_start_on_sunday(self):
        f = text_rotation_interpolator(
            '{"units": "days", "text": [[0, "SUNDAY"], [1, "WEEKDAY"], [6, "SATURDAY"]]}'
        )
        assert f(datetime(2016, 1, 3)) == "SUNDAY"
        assert f(datetime(2016, 1, 4)) == "WEEKDAY"
        assert f(datetime(2016, 1, 9)) == "SATURDAY"

    def test_months_are_zero_based(self):
        f = text_rotation_interpolator({"units": "months", "text": [[0, "JAN"], [1, "LATER"]]})
        assert f(datetime(2016, 1, 15)) == "JAN"
        assert f(datetime(2016, 2, 15)) == "LATER"

    @pytest.mark.parametrize(
        "spec",
        [
            {"units": "fortnights", "text": [[0, "A"], [1, "B"]]},
            {"units": "seconds", "text": [[0, 1], [1, 2]]},
            {"units": "seconds"},
            {"units": "seconds", "text": [[0, "A"]]},
            '{"units": "seconds", "text": [[0, "A"], [1, "B"]]',
        ],
    )
    def test_invalid(self, spec):
        with pytest.raises(InvalidInterpolationSpec):
            text_rotation_interpolator(spec)
