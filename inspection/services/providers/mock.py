"""Deterministic provider for development and tests.

Pickup reports a baseline set of damages; return repeats them at the same
spots and adds new ones on front, driver side and roof.
"""
import asyncio

from inspection.enums import AssessmentPhase, DamageSeverity, VehicleAngle
from inspection.schemas.detection import BoundingBox, DetectedDamage, PhotoAnalysis
from inspection.services.providers.base import analysis_score

_BUMPER_SCRATCH = DetectedDamage(
    description="Minor scratch on bumper",
    severity=DamageSeverity.MINOR,
    location="x:150,y:100",
    estimated_cost=150,
    confidence=0.92,
    bounding_box=BoundingBox(x=100, y=50, width=200, height=100),
)
_REAR_DENT = DetectedDamage(
    description="Dent on rear panel",
    severity=DamageSeverity.MODERATE,
    location="x:200,y:80",
    estimated_cost=450,
    confidence=0.88,
    bounding_box=BoundingBox(x=150, y=30, width=250, height=150),
)
_PAINT_CHIP = DetectedDamage(
    description="Paint chip on door",
    severity=DamageSeverity.MINOR,
    location="x:100,y:120",
    estimated_cost=200,
    confidence=0.85,
    bounding_box=BoundingBox(x=50, y=80, width=150, height=120),
)

PICKUP_DAMAGES: dict[VehicleAngle, list[DetectedDamage]] = {
    VehicleAngle.FRONT: [_BUMPER_SCRATCH],
    VehicleAngle.REAR: [_REAR_DENT],
    VehicleAngle.DRIVER_SIDE: [],
    VehicleAngle.PASSENGER_SIDE: [_PAINT_CHIP],
    VehicleAngle.ROOF: [],
}

RETURN_DAMAGES: dict[VehicleAngle, list[DetectedDamage]] = {
    VehicleAngle.FRONT: [
        _BUMPER_SCRATCH,
        DetectedDamage(
            description="New headlight crack",
            severity=DamageSeverity.SEVERE,
            location="x:80,y:60",
            estimated_cost=800,
            confidence=0.9,
            bounding_box=BoundingBox(x=20, y=20, width=180, height=100),
        ),
    ],
    VehicleAngle.REAR: [_REAR_DENT],
    VehicleAngle.DRIVER_SIDE: [
        DetectedDamage(
            description="Deep scratch on door",
            severity=DamageSeverity.SEVERE,
            location="x:120,y:140",
            estimated_cost=650,
            confidence=0.87,
            bounding_box=BoundingBox(x=70, y=100, width=200, height=150),
        ),
    ],
    VehicleAngle.PASSENGER_SIDE: [_PAINT_CHIP],
    VehicleAngle.ROOF: [
        DetectedDamage(
            description="Hail damage - multiple dents",
            severity=DamageSeverity.MODERATE,
            location="x:200,y:150",
            estimated_cost=1200,
            confidence=0.89,
            bounding_box=BoundingBox(x=120, y=80, width=350, height=280),
        ),
    ],
}


class MockProvider:
    name = "mock"

    def __init__(self, latency: float = 0.0):
        self.latency = latency

    async def validate_config(self) -> bool:
        return True

    async def analyze_photo(self, photo, angle: VehicleAngle, phase: AssessmentPhase) -> PhotoAnalysis:
        if self.latency:
            await asyncio.sleep(self.latency)

        table = PICKUP_DAMAGES if phase == AssessmentPhase.PICKUP else RETURN_DAMAGES
        detections = [d.model_copy(deep=True) for d in table[VehicleAngle(angle)]]
        return PhotoAnalysis(
            photo_id=photo.id,
            angle=angle,
            phase=phase,
            detections=detections,
            analysis_score=analysis_score(detections),
        )
