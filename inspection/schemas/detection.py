from pydantic import BaseModel, Field

from inspection.enums import AssessmentPhase, DamageSeverity, VehicleAngle


class BoundingBox(BaseModel):
    """Axis-aligned box in image space, top-left origin."""

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(ge=0)
    height: int = Field(ge=0)


class DetectedDamage(BaseModel):
    description: str
    severity: DamageSeverity
    location: str  # "x:<int>,y:<int>"
    estimated_cost: float = Field(ge=0)
    confidence: float = Field(ge=0.0, le=1.0)
    bounding_box: BoundingBox | None = None


class PhotoAnalysis(BaseModel):
    photo_id: str
    angle: VehicleAngle
    phase: AssessmentPhase
    detections: list[DetectedDamage] = []
    analysis_score: float = Field(ge=0.0, le=1.0)
