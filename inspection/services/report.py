"""Folds over photo and damage rows: per-angle grouping, totals and summaries."""
from typing import Iterable

from inspection.enums import REQUIRED_ANGLES, AssessmentPhase, DamageSeverity, VehicleAngle
from inspection.schemas.assessment import (
    AngleBreakdown,
    AssessmentResponse,
    AssessmentTimestamps,
    ComparisonResponse,
    CostSummary,
    DamageCounts,
    DamageResponse,
    DamageSummary,
    PhotoResponse,
    SeverityBreakdown,
)


def total_damage_cost(damages: Iterable) -> float:
    return float(sum(d.estimated_cost for d in damages))


def new_damage_cost(damages: Iterable) -> float:
    return float(sum(d.estimated_cost for d in damages if d.is_new))


def group_photos(photos: Iterable, phase: AssessmentPhase) -> dict:
    grouped: dict = {angle: None for angle in REQUIRED_ANGLES}
    phase = AssessmentPhase(phase)
    for photo in photos:
        if AssessmentPhase(photo.phase) == phase:
            grouped[VehicleAngle(photo.angle)] = photo
    return grouped


def group_damages(
    damages: Iterable,
    phase: AssessmentPhase | None = None,
    new_only: bool = False,
) -> dict:
    grouped: dict = {angle: [] for angle in REQUIRED_ANGLES}
    for damage in damages:
        if phase is not None and AssessmentPhase(damage.phase) != AssessmentPhase(phase):
            continue
        if new_only and not damage.is_new:
            continue
        grouped[VehicleAngle(damage.angle)].append(damage)
    return grouped


def build_summary(damages: Iterable) -> DamageSummary:
    damages = list(damages)
    by_angle = {angle: AngleBreakdown() for angle in REQUIRED_ANGLES}
    by_severity = {severity: SeverityBreakdown() for severity in DamageSeverity}

    for damage in damages:
        row = by_angle[VehicleAngle(damage.angle)]
        if AssessmentPhase(damage.phase) == AssessmentPhase.PICKUP:
            row.pickup_count += 1
            row.pickup_cost += damage.estimated_cost
        else:
            row.return_count += 1
            row.return_cost += damage.estimated_cost

        severity = by_severity[DamageSeverity(damage.severity)]
        severity.total += 1
        if damage.is_new:
            row.new_count += 1
            row.new_cost += damage.estimated_cost
            severity.new += 1

    return DamageSummary(
        pickup_damages={angle: row.pickup_count for angle, row in by_angle.items()},
        return_damages={angle: row.return_count for angle, row in by_angle.items()},
        new_damages={angle: row.new_count for angle, row in by_angle.items()},
        by_angle=by_angle,
        by_severity=by_severity,
        cost_summary=CostSummary(
            total_cost=total_damage_cost(damages),
            new_cost=new_damage_cost(damages),
        ),
    )


def build_assessment_response(assessment, photos: Iterable, damages: Iterable, comparisons: Iterable = ()) -> AssessmentResponse:
    """Reshape flat rows into the nested per-phase, per-angle assessment view."""
    photos = list(photos)
    damages = list(damages)

    def _photos(phase):
        return {
            angle: PhotoResponse.model_validate(photo) if photo is not None else None
            for angle, photo in group_photos(photos, phase).items()
        }

    def _damages(phase=None, new_only=False):
        return {
            angle: [DamageResponse.model_validate(d) for d in rows]
            for angle, rows in group_damages(damages, phase, new_only).items()
        }

    pickup_damages = _damages(AssessmentPhase.PICKUP)
    return_damages = _damages(AssessmentPhase.RETURN)
    new_damages = _damages(new_only=True)

    return AssessmentResponse(
        id=assessment.id,
        vehicle_id=assessment.vehicle_id,
        vehicle_name=assessment.vehicle_name,
        status=assessment.status,
        pickup_photos=_photos(AssessmentPhase.PICKUP),
        return_photos=_photos(AssessmentPhase.RETURN),
        pickup_damages=pickup_damages,
        return_damages=return_damages,
        new_damages=new_damages,
        comparisons=[ComparisonResponse.model_validate(c) for c in comparisons],
        total_damage_cost=assessment.total_damage_cost,
        new_damage_cost=assessment.new_damage_cost,
        damage_counts=DamageCounts(
            pickup=sum(len(rows) for rows in pickup_damages.values()),
            returned=sum(len(rows) for rows in return_damages.values()),
            new=sum(len(rows) for rows in new_damages.values()),
        ),
        timestamps=AssessmentTimestamps(
            created_at=assessment.created_at,
            pickup_analyzed_at=assessment.pickup_analyzed_at,
            return_analyzed_at=assessment.return_analyzed_at,
            completed_at=assessment.completed_at,
        ),
    )
