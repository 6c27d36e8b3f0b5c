"""Which of the five required angles have a photo, per phase.

Pure reads over a photo collection; the inspection service feeds it the
current rows for an assessment.
"""
from dataclasses import dataclass, field
from typing import Iterable

from inspection.enums import REQUIRED_ANGLES, AssessmentPhase, VehicleAngle


@dataclass
class PhaseStatus:
    phase: AssessmentPhase
    is_complete: bool
    captured_angles: list[VehicleAngle] = field(default_factory=list)
    missing_angles: list[VehicleAngle] = field(default_factory=list)


def _photographed(photos: Iterable, phase: AssessmentPhase) -> set[VehicleAngle]:
    phase = AssessmentPhase(phase)
    return {VehicleAngle(p.angle) for p in photos if AssessmentPhase(p.phase) == phase}


def captured_angles(photos: Iterable, phase: AssessmentPhase) -> list[VehicleAngle]:
    present = _photographed(photos, phase)
    return [angle for angle in REQUIRED_ANGLES if angle in present]


def missing_angles(photos: Iterable, phase: AssessmentPhase) -> list[VehicleAngle]:
    present = _photographed(photos, phase)
    return [angle for angle in REQUIRED_ANGLES if angle not in present]


def is_phase_complete(photos: Iterable, phase: AssessmentPhase) -> bool:
    return not missing_angles(photos, phase)


def phase_status(photos: Iterable, phase: AssessmentPhase) -> PhaseStatus:
    photos = list(photos)
    missing = missing_angles(photos, phase)
    return PhaseStatus(
        phase=AssessmentPhase(phase),
        is_complete=not missing,
        captured_angles=captured_angles(photos, phase),
        missing_angles=missing,
    )
