"""Hosted Roboflow car-damage object detection model."""
import logging

import httpx

from inspection.enums import AssessmentPhase, VehicleAngle
from inspection.schemas.detection import BoundingBox, DetectedDamage, PhotoAnalysis
from inspection.services.matching import format_location
from inspection.services.providers.base import (
    analysis_score,
    encode_image_base64,
    estimate_cost,
    is_remote,
    severity_from_label,
)

logger = logging.getLogger(__name__)

PROBE_IMAGE_URL = "https://images.unsplash.com/photo-1552820728-8ac41f1ce891?w=400"


def parse_predictions(payload: dict, base_costs=None, min_confidence: float = 0.3) -> list[DetectedDamage]:
    """Roboflow predictions carry the box centre in ``x``/``y`` plus ``width``/``height``."""
    detections = []
    for prediction in payload.get("predictions", []):
        confidence = float(prediction.get("confidence", 0.0))
        if confidence < min_confidence:
            continue
        label = prediction.get("class") or prediction.get("label") or "damage"
        severity = severity_from_label(
            label,
            extra_minor=("scratch",),
            extra_moderate=("dent",),
            extra_severe=("crush", "broken", "shatter"),
        )
        cx = float(prediction.get("x", 0.0))
        cy = float(prediction.get("y", 0.0))
        width = float(prediction.get("width", 0.0))
        height = float(prediction.get("height", 0.0))
        detections.append(DetectedDamage(
            description=f"{severity.value.capitalize()} damage detected ({label})",
            severity=severity,
            location=format_location(cx, cy),
            estimated_cost=estimate_cost(severity, confidence, base_costs),
            confidence=min(confidence, 1.0),
            bounding_box=BoundingBox(
                x=max(0, round(cx - width / 2)),
                y=max(0, round(cy - height / 2)),
                width=max(0, round(width)),
                height=max(0, round(height)),
            ),
        ))
    return detections


class RoboflowProvider:
    name = "roboflow"

    def __init__(self, api_key: str, model_id: str, endpoint: str = "https://serverless.roboflow.com",
                 base_costs=None, min_confidence: float = 0.3, timeout: float = 60.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.model_id = model_id
        self.url = f"{endpoint.rstrip('/')}/{model_id}"
        self.base_costs = base_costs
        self.min_confidence = min_confidence
        self.timeout = timeout
        self._transport = transport

    async def validate_config(self) -> bool:
        if not self.api_key:
            logger.warning("Roboflow API key not configured")
            return False
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(
                    self.url, params={"api_key": self.api_key, "image": PROBE_IMAGE_URL}
                )
        except httpx.HTTPError as e:
            logger.warning("Roboflow API unreachable: %s", e)
            return False

        if response.status_code in (401, 403):
            logger.warning("Invalid Roboflow API key")
            return False
        # 400 still means the model endpoint answered
        return response.status_code < 500

    async def analyze_photo(self, photo, angle: VehicleAngle, phase: AssessmentPhase) -> PhotoAnalysis:
        locator = photo.storage_path
        logger.info("POST %s for photo %s", self.url, photo.id)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            if is_remote(locator):
                response = await client.post(self.url, params={"api_key": self.api_key, "image": locator})
            else:
                response = await client.post(
                    self.url,
                    params={"api_key": self.api_key},
                    content=encode_image_base64(locator),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            response.raise_for_status()
            payload = response.json()

        detections = parse_predictions(payload, self.base_costs, self.min_confidence)
        logger.info("Roboflow found %d damages on photo %s", len(detections), photo.id)
        return PhotoAnalysis(
            photo_id=photo.id,
            angle=angle,
            phase=phase,
            detections=detections,
            analysis_score=analysis_score(detections),
        )
