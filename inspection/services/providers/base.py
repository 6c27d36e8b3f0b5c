"""Contract every damage-detection backend implements, plus shared policy helpers."""
import base64
import os
from typing import Mapping, Protocol

from inspection.enums import AssessmentPhase, DamageSeverity, VehicleAngle
from inspection.schemas.detection import DetectedDamage, PhotoAnalysis

# Repair cost policy shared by all providers (monetary units).
SEVERITY_BASE_COSTS: dict[DamageSeverity, float] = {
    DamageSeverity.MINOR: 200.0,
    DamageSeverity.MODERATE: 500.0,
    DamageSeverity.SEVERE: 1200.0,
}


class DetectionProvider(Protocol):
    """Provider-agnostic interface for damage detection on a single photo.

    ``photo`` must expose ``id`` and a resolvable ``storage_path``. Implementations
    raise when the backend is unreachable or the locator is unusable rather than
    returning an empty analysis.
    """

    name: str

    async def analyze_photo(self, photo, angle: VehicleAngle, phase: AssessmentPhase) -> PhotoAnalysis:
        ...

    async def validate_config(self) -> bool:
        ...


def base_costs_from_settings(costs: Mapping[str, float] | None) -> dict[DamageSeverity, float]:
    resolved = dict(SEVERITY_BASE_COSTS)
    for key, value in (costs or {}).items():
        resolved[DamageSeverity(key)] = float(value)
    return resolved


def estimate_cost(
    severity: DamageSeverity,
    confidence: float,
    base_costs: Mapping[DamageSeverity, float] | None = None,
) -> float:
    """Base cost for the severity, scaled between 80% and 100% by confidence."""
    base = (base_costs or SEVERITY_BASE_COSTS)[DamageSeverity(severity)]
    return float(round(base * (0.8 + confidence * 0.2)))


def analysis_score(detections: list[DetectedDamage]) -> float:
    if not detections:
        return 1.0
    return min(sum(d.confidence for d in detections) / len(detections), 1.0)


def severity_from_label(label: str, extra_minor: tuple[str, ...] = (), extra_moderate: tuple[str, ...] = (),
                        extra_severe: tuple[str, ...] = ()) -> DamageSeverity:
    """Map a detector class label onto a severity, defaulting to moderate."""
    label = (label or "").lower()
    if any(word in label for word in ("light", "minor") + extra_minor):
        return DamageSeverity.MINOR
    if any(word in label for word in ("moderate", "medium") + extra_moderate):
        return DamageSeverity.MODERATE
    if any(word in label for word in ("severe", "major", "critical") + extra_severe):
        return DamageSeverity.SEVERE
    return DamageSeverity.MODERATE


def is_remote(locator: str) -> bool:
    return locator.startswith(("http://", "https://"))


def read_image_bytes(locator: str) -> bytes:
    """Read a locally stored image; raises if the locator does not resolve."""
    if not locator:
        raise ValueError("Photo storage path is required for analysis")
    path = locator[len("file://"):] if locator.startswith("file://") else locator
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Photo file not found: {path}")
    with open(path, "rb") as f:
        return f.read()


def encode_image_base64(locator: str) -> str:
    return base64.b64encode(read_image_bytes(locator)).decode("utf-8")
