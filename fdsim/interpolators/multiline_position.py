"""Geographic position moving along a polyline at constant speed.

Specification:
    {
        "coordinates": [[lon, lat], [lon, lat], ...],
        "speed": {"value": 30, "units": "km/h"},
        "time": {"from": 10, "to": 22}
    }

Between time.from and time.to (decimal hours) the position advances along the
path at the given speed; before the window it sits at the first vertex and
after it stays where the window ended. Past the last vertex it stays there.
"""

import math
from collections.abc import Callable, Sequence
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..errors import InvalidInterpolationSpec
from .spec import load_json

EARTH_RADIUS_KM = 6371.0088

_KMH_PER_UNIT = {
    "km/h": 1.0,
    "m/s": 3.6,
    "mph": 1.609344,
}

Longitude = Annotated[float, Field(ge=-180, le=180)]
Latitude = Annotated[float, Field(ge=-90, le=90)]


class Speed(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: float = Field(ge=0)
    units: Literal["km/h", "m/s", "mph"] = "km/h"

    @property
    def kmh(self) -> float:
        return self.value * _KMH_PER_UNIT[self.units]


class TimeWindow(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    start: float = Field(default=0, ge=0, le=24, alias="from")
    end: float = Field(default=24, ge=0, le=24, alias="to")

    @model_validator(mode="after")
    def _ordered(self) -> "TimeWindow":
        if self.end < self.start:
            raise ValueError("time.to must not be earlier than time.from")
        return self


class MultilinePositionSpec(BaseModel):
    """Validated multiline-position specification."""

    model_config = ConfigDict(extra="forbid")

    coordinates: list[tuple[Longitude, Latitude]] = Field(min_length=2)
    speed: Speed
    time: TimeWindow = Field(default_factory=TimeWindow)


def haversine_km(a: Sequence[float], b: Sequence[float]) -> float:
    """Great-circle distance in km between two [lon, lat] points."""
    lon1, lat1, lon2, lat2 = map(math.radians, (a[0], a[1], b[0], b[1]))
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def point_along(path: Sequence[Sequence[float]], distance_km: float) -> list[float]:
    """Point reached after travelling distance_km along path from its first vertex."""
    if distance_km <= 0:
        return [path[0][0], path[0][1]]

    travelled = 0.0
    for start, end in zip(path, path[1:]):
        segment = haversine_km(start, end)
        if segment > 0 and travelled + segment >= distance_km:
            fraction = (distance_km - travelled) / segment
            return [
                start[0] + (end[0] - start[0]) * fraction,
                start[1] + (end[1] - start[1]) * fraction,
            ]
        travelled += segment
    return [path[-1][0], path[-1][1]]


def multiline_position_interpolator(
    interpolation_spec: Any,
) -> Callable[[float], dict[str, Any]]:
    """Build a multiline-position interpolator.

    Returns:
        Function mapping decimal hours to {"type": "Point", "coordinates": [lon, lat]}

    Raises:
        InvalidInterpolationSpec: If the path, speed or time window is malformed
    """
    raw = interpolation_spec
    if isinstance(raw, str):
        raw = load_json(raw.strip(), "multiline position specification")
    if not isinstance(raw, dict):
        raise InvalidInterpolationSpec(
            f"Invalid multiline position specification {interpolation_spec!r}"
        )
    try:
        spec = MultilinePositionSpec.model_validate(raw)
    except ValidationError as e:
        raise InvalidInterpolationSpec(
            f"Invalid multiline position specification: {e}"
        ) from e

    path = [list(point) for point in spec.coordinates]

    def interpolate(decimal_hours: float) -> dict[str, Any]:
        elapsed = min(max(decimal_hours, spec.time.start), spec.time.end) - spec.time.start
        return {
            "type": "Point",
            "coordinates": point_along(path, spec.speed.kmh * elapsed),
        }

    return interpolate
