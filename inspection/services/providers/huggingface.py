"""YOLOv8 car-damage-level model served by the Hugging Face inference API."""
import logging

import httpx

from inspection.enums import AssessmentPhase, VehicleAngle
from inspection.schemas.detection import BoundingBox, DetectedDamage, PhotoAnalysis
from inspection.services.matching import format_location
from inspection.services.providers.base import (
    analysis_score,
    estimate_cost,
    is_remote,
    read_image_bytes,
    severity_from_label,
)

logger = logging.getLogger(__name__)


def _box_from_detection(detection: dict) -> BoundingBox | None:
    box = detection.get("box")
    if isinstance(box, dict) and {"xmin", "ymin", "xmax", "ymax"} <= box.keys():
        x1, y1, x2, y2 = box["xmin"], box["ymin"], box["xmax"], box["ymax"]
    else:
        bbox = detection.get("bbox") or box
        if not isinstance(bbox, (list, tuple)) or len(bbox) != 4:
            return None
        # [x1, y1, x2, y2]
        x1, y1, x2, y2 = bbox
    return BoundingBox(
        x=max(0, round(x1)),
        y=max(0, round(y1)),
        width=max(0, round(x2 - x1)),
        height=max(0, round(y2 - y1)),
    )


def parse_detections(payload, base_costs=None, min_confidence: float = 0.3) -> list[DetectedDamage]:
    if isinstance(payload, dict) and "error" in payload:
        raise ValueError(f"Hugging Face error: {payload['error']}")
    items = payload if isinstance(payload, list) else (payload or {}).get("detections", [])

    detections = []
    for item in items:
        confidence = float(item.get("score", item.get("confidence", 0.0)))
        if confidence < min_confidence:
            continue
        severity = severity_from_label(item.get("label") or item.get("class") or "")
        box = _box_from_detection(item)
        if box is not None:
            location = format_location(box.x + box.width / 2, box.y + box.height / 2)
        else:
            location = "x:0,y:0"
        detections.append(DetectedDamage(
            description=f"{severity.value.capitalize()} damage detected",
            severity=severity,
            location=location,
            estimated_cost=estimate_cost(severity, confidence, base_costs),
            confidence=min(confidence, 1.0),
            bounding_box=box,
        ))
    return detections


class HuggingFaceProvider:
    name = "huggingface"

    def __init__(self, api_key: str, endpoint: str, base_costs=None, min_confidence: float = 0.3,
                 timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.endpoint = endpoint
        self.base_costs = base_costs
        self.min_confidence = min_confidence
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self._transport,
        )

    async def validate_config(self) -> bool:
        if not self.api_key:
            logger.warning("Hugging Face API key not configured")
            return False
        try:
            async with self._client(10.0) as client:
                response = await client.post(self.endpoint, json={"inputs": "test"})
        except httpx.HTTPError as e:
            logger.warning("Hugging Face API unreachable: %s", e)
            return False

        if response.status_code in (401, 403):
            logger.warning("Invalid Hugging Face API key")
            return False
        # 410/503: model is loading, credentials accepted
        return True

    async def analyze_photo(self, photo, angle: VehicleAngle, phase: AssessmentPhase) -> PhotoAnalysis:
        locator = photo.storage_path
        async with self._client(self.timeout) as client:
            if is_remote(locator):
                response = await client.post(self.endpoint, json={"inputs": locator})
            else:
                response = await client.post(self.endpoint, content=read_image_bytes(locator))
            response.raise_for_status()
            payload = response.json()

        detections = parse_detections(payload, self.base_costs, self.min_confidence)
        logger.info("Hugging Face found %d damages on photo %s", len(detections), photo.id)
        return PhotoAnalysis(
            photo_id=photo.id,
            angle=angle,
            phase=phase,
            detections=detections,
            analysis_score=analysis_score(detections),
        )
