"""Pickup vs return damage matching.

A return-phase damage is pre-existing when at least one pickup damage on the
same angle lies within ``threshold`` pixels of it; otherwise it is new. The
test is one-directional per return damage, so several return damages may match
the same pickup damage, and pickup damages without a return counterpart are
not reported.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from inspection.enums import REQUIRED_ANGLES, VehicleAngle

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 50.0

_LOCATION_RE = re.compile(r"x:([0-9]+),y:([0-9]+)")


def parse_location(location) -> tuple[int, int] | None:
    """Parse ``"x:<int>,y:<int>"`` into a point, or None if malformed."""
    if not isinstance(location, str):
        return None
    match = _LOCATION_RE.fullmatch(location)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def format_location(x: float, y: float) -> str:
    return f"x:{max(0, round(x))},y:{max(0, round(y))}"


def location_distance(a: str, b: str) -> float | None:
    p1 = parse_location(a)
    p2 = parse_location(b)
    if p1 is None or p2 is None:
        return None
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def locations_match(a: str, b: str, threshold: float = DEFAULT_MATCH_THRESHOLD) -> bool:
    distance = location_distance(a, b)
    return distance is not None and distance <= threshold


@dataclass
class AngleComparison:
    angle: VehicleAngle
    matched: list = field(default_factory=list)
    new: list = field(default_factory=list)
    malformed: int = 0

    @property
    def new_cost(self) -> float:
        return sum(d.estimated_cost for d in self.new)


@dataclass
class ComparisonResult:
    angles: dict[VehicleAngle, AngleComparison] = field(default_factory=dict)

    @property
    def new_damages(self) -> list:
        return [d for comparison in self.angles.values() for d in comparison.new]

    @property
    def new_damage_ids(self) -> set[str]:
        return {d.id for d in self.new_damages}

    @property
    def new_damage_cost(self) -> float:
        return sum(comparison.new_cost for comparison in self.angles.values())

    @property
    def malformed_count(self) -> int:
        return sum(comparison.malformed for comparison in self.angles.values())


def classify_angle(
    angle: VehicleAngle,
    pickup_damages: Sequence,
    return_damages: Sequence,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> AngleComparison:
    result = AngleComparison(angle=VehicleAngle(angle))
    pickup_points = []
    for damage in pickup_damages:
        point = parse_location(damage.location)
        if point is None:
            result.malformed += 1
            logger.warning(
                "Unparseable location %r on pickup damage %s (%s), ignored for matching",
                damage.location, getattr(damage, "id", None), result.angle.value,
            )
            continue
        pickup_points.append(point)

    for damage in return_damages:
        point = parse_location(damage.location)
        if point is None:
            result.malformed += 1
            logger.warning(
                "Unparseable location %r on return damage %s (%s), treating as new",
                damage.location, getattr(damage, "id", None), result.angle.value,
            )
            result.new.append(damage)
            continue
        if any(math.hypot(point[0] - px, point[1] - py) <= threshold for px, py in pickup_points):
            result.matched.append(damage)
        else:
            result.new.append(damage)
    return result


def compare_damages(
    pickup_by_angle: Mapping[VehicleAngle, Sequence],
    return_by_angle: Mapping[VehicleAngle, Sequence],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> ComparisonResult:
    result = ComparisonResult()
    for angle in REQUIRED_ANGLES:
        result.angles[angle] = classify_angle(
            angle,
            pickup_by_angle.get(angle, []),
            return_by_angle.get(angle, []),
            threshold,
        )
    if result.malformed_count:
        logger.warning("Comparison skipped %d damages with malformed locations", result.malformed_count)
    return result
