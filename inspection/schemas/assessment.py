import json

from pydantic import BaseModel, Field, field_validator

from inspection.enums import AssessmentPhase, AssessmentStatus, DamageSeverity, VehicleAngle
from inspection.schemas.detection import BoundingBox


class AssessmentCreate(BaseModel):
    vehicle_id: str = Field(min_length=1)
    vehicle_name: str = Field(min_length=1)

    @field_validator("vehicle_id", "vehicle_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class PhotoResponse(BaseModel):
    id: str
    assessment_id: str
    angle: VehicleAngle
    phase: AssessmentPhase
    filename: str
    storage_path: str
    file_size: int
    uploaded_at: str

    model_config = {"from_attributes": True}


class DamageResponse(BaseModel):
    id: str
    assessment_id: str
    photo_id: str | None = None
    angle: VehicleAngle
    phase: AssessmentPhase
    description: str
    severity: DamageSeverity
    location: str
    bounding_box: BoundingBox | None = None
    estimated_cost: float
    confidence: float
    is_new: bool
    created_at: str

    model_config = {"from_attributes": True}

    @field_validator("bounding_box", mode="before")
    @classmethod
    def _decode_bounding_box(cls, value):
        if isinstance(value, str):
            return json.loads(value)
        return value


class ComparisonResponse(BaseModel):
    angle: VehicleAngle
    pickup_photo_id: str | None = None
    return_photo_id: str | None = None
    matched_count: int
    new_damages_count: int
    new_damages_cost: float
    compared_at: str

    model_config = {"from_attributes": True}


class DamageCounts(BaseModel):
    pickup: int = 0
    returned: int = 0
    new: int = 0


class AssessmentTimestamps(BaseModel):
    created_at: str
    pickup_analyzed_at: str | None = None
    return_analyzed_at: str | None = None
    completed_at: str | None = None


class AssessmentResponse(BaseModel):
    id: str
    vehicle_id: str
    vehicle_name: str
    status: AssessmentStatus
    pickup_photos: dict[VehicleAngle, PhotoResponse | None]
    return_photos: dict[VehicleAngle, PhotoResponse | None]
    pickup_damages: dict[VehicleAngle, list[DamageResponse]]
    return_damages: dict[VehicleAngle, list[DamageResponse]]
    new_damages: dict[VehicleAngle, list[DamageResponse]]
    comparisons: list[ComparisonResponse] = []
    total_damage_cost: float
    new_damage_cost: float
    damage_counts: DamageCounts
    timestamps: AssessmentTimestamps


class AssessmentListItem(BaseModel):
    id: str
    vehicle_id: str
    vehicle_name: str
    status: AssessmentStatus
    total_damage_cost: float
    new_damage_cost: float
    created_at: str
    completed_at: str | None = None

    model_config = {"from_attributes": True}


class PhaseStatusResponse(BaseModel):
    phase: AssessmentPhase
    is_complete: bool
    captured_angles: list[VehicleAngle]
    missing_angles: list[VehicleAngle]


class AngleBreakdown(BaseModel):
    pickup_count: int = 0
    return_count: int = 0
    new_count: int = 0
    pickup_cost: float = 0.0
    return_cost: float = 0.0
    new_cost: float = 0.0


class SeverityBreakdown(BaseModel):
    total: int = 0
    new: int = 0


class CostSummary(BaseModel):
    total_cost: float = 0.0
    new_cost: float = 0.0


class DamageSummary(BaseModel):
    pickup_damages: dict[VehicleAngle, int]
    return_damages: dict[VehicleAngle, int]
    new_damages: dict[VehicleAngle, int]
    by_angle: dict[VehicleAngle, AngleBreakdown]
    by_severity: dict[DamageSeverity, SeverityBreakdown]
    cost_summary: CostSummary


class ProviderSwitch(BaseModel):
    name: str = Field(min_length=1)


class ProviderInfo(BaseModel):
    available_providers: list[str]
    active_provider: str | None = None
