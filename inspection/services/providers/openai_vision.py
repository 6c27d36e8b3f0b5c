import json
import logging

from inspection.enums import AssessmentPhase, DamageSeverity, VehicleAngle
from inspection.schemas.detection import BoundingBox, DetectedDamage, PhotoAnalysis
from inspection.services.matching import format_location
from inspection.services.providers.base import (
    analysis_score,
    encode_image_base64,
    estimate_cost,
    is_remote,
)

logger = logging.getLogger(__name__)

DAMAGE_PROMPT = """\
You are a vehicle damage inspector. The image shows the {angle} of a rental car, \
photographed at {phase}.

List every visible body damage (scratches, dents, cracks, broken or missing parts).
Answer ONLY with a JSON object, no additional text:
{{
  "damages": [
    {{
      "description": "short description",
      "severity": "minor" | "moderate" | "severe",
      "confidence": 0.0-1.0,
      "box": {{"x": int, "y": int, "width": int, "height": int}}
    }}
  ]
}}

Rules:
- "box" uses pixel coordinates of the image, top-left origin
- return {{"damages": []}} if the vehicle shows no damage
"""


def _build_api_kwargs(model: str, content: list[dict]) -> dict:
    """Build OpenAI API kwargs based on model type."""
    api_kwargs: dict = {
        "model": model,
        "messages": [{"role": "user", "content": content}],
    }

    if model.startswith("o"):
        # o-series reasoning models: no temperature, max_completion_tokens
        api_kwargs["max_completion_tokens"] = 4096
    else:
        api_kwargs["max_tokens"] = 2048
        api_kwargs["temperature"] = 0.1

    return api_kwargs


def _strip_code_fence(raw_text: str) -> str:
    text = raw_text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [line for line in lines if not line.strip().startswith("```")]
        text = "\n".join(lines)
    return text


def parse_damages(raw_text: str, base_costs=None, min_confidence: float = 0.0) -> list[DetectedDamage]:
    """Turn the model's JSON answer into detections, skipping malformed entries."""
    parsed = json.loads(_strip_code_fence(raw_text))
    entries = parsed.get("damages", [])
    valid_severities = {s.value for s in DamageSeverity}

    detections = []
    for entry in entries:
        box = entry.get("box") or {}
        if entry.get("severity") not in valid_severities or not {"x", "y", "width", "height"} <= box.keys():
            logger.warning("Skipping invalid damage entry: %s", entry)
            continue
        confidence = min(max(float(entry.get("confidence", 0.5)), 0.0), 1.0)
        if confidence < min_confidence:
            continue
        severity = DamageSeverity(entry["severity"])
        bbox = BoundingBox(
            x=max(0, round(box["x"])),
            y=max(0, round(box["y"])),
            width=max(0, round(box["width"])),
            height=max(0, round(box["height"])),
        )
        detections.append(DetectedDamage(
            description=entry.get("description") or f"{severity.value.capitalize()} damage detected",
            severity=severity,
            location=format_location(bbox.x + bbox.width / 2, bbox.y + bbox.height / 2),
            estimated_cost=estimate_cost(severity, confidence, base_costs),
            confidence=confidence,
            bounding_box=bbox,
        ))
    return detections


class OpenAIVisionProvider:
    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", base_url: str = "",
                 base_costs=None, min_confidence: float = 0.3, timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.base_costs = base_costs
        self.min_confidence = min_confidence
        self.timeout = timeout

    def _client(self):
        from openai import AsyncOpenAI

        kwargs = {"api_key": self.api_key, "timeout": self.timeout}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return AsyncOpenAI(**kwargs)

    async def validate_config(self) -> bool:
        if not self.api_key:
            logger.warning("OpenAI API key not configured")
            return False
        return True

    async def analyze_photo(self, photo, angle: VehicleAngle, phase: AssessmentPhase) -> PhotoAnalysis:
        locator = photo.storage_path
        if is_remote(locator):
            image_url = locator
        else:
            image_url = f"data:image/jpeg;base64,{encode_image_base64(locator)}"

        prompt = DAMAGE_PROMPT.format(angle=angle.value.replace("_", " "), phase=phase.value)
        content: list[dict] = [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": image_url, "detail": "high"}},
        ]

        logger.info("Calling OpenAI model=%s for photo %s", self.model, photo.id)
        response = await self._client().chat.completions.create(**_build_api_kwargs(self.model, content))

        raw_text = response.choices[0].message.content or ""
        logger.info("OpenAI raw response (%d chars): %s", len(raw_text), raw_text[:500])

        detections = parse_damages(raw_text, self.base_costs, self.min_confidence)
        return PhotoAnalysis(
            photo_id=photo.id,
            angle=angle,
            phase=phase,
            detections=detections,
            analysis_score=analysis_score(detections),
        )
