import json
from types import SimpleNamespace

import httpx
import pytest

from inspection.enums import AssessmentPhase, DamageSeverity, VehicleAngle
from inspection.schemas.detection import DetectedDamage
from inspection.services.providers.base import (
    analysis_score,
    base_costs_from_settings,
    estimate_cost,
    read_image_bytes,
    severity_from_label,
)
from inspection.services.providers.huggingface import HuggingFaceProvider
from inspection.services.providers.mock import MockProvider
from inspection.services.providers.openai_vision import parse_damages
from inspection.services.providers.roboflow import RoboflowProvider

REMOTE_PHOTO = SimpleNamespace(id="photo-1", storage_path="https://images.example.com/front.jpg")


def _detection(confidence):
    return DetectedDamage(
        description="d", severity=DamageSeverity.MINOR, location="x:1,y:1", estimated_cost=1, confidence=confidence
    )


def test_analysis_score_is_one_without_detections():
    assert analysis_score([]) == 1.0


def test_analysis_score_is_mean_confidence():
    assert analysis_score([_detection(0.6), _detection(0.8)]) == pytest.approx(0.7)


def test_estimate_cost_scales_base_cost_by_confidence():
    assert estimate_cost(DamageSeverity.MINOR, 1.0) == 200
    assert estimate_cost(DamageSeverity.MODERATE, 0.0) == 400
    assert estimate_cost(DamageSeverity.SEVERE, 0.9) == 1176


def test_base_costs_can_be_overridden():
    costs = base_costs_from_settings({"severe": 2000})

    assert costs[DamageSeverity.SEVERE] == 2000
    assert costs[DamageSeverity.MINOR] == 200
    assert estimate_cost(DamageSeverity.SEVERE, 1.0, costs) == 2000


@pytest.mark.parametrize("label, expected", [
    ("light-damage", DamageSeverity.MINOR),
    ("Moderate", DamageSeverity.MODERATE),
    ("severe-damage", DamageSeverity.SEVERE),
    ("unknown", DamageSeverity.MODERATE),
])
def test_severity_from_label(label, expected):
    assert severity_from_label(label) == expected


def test_read_image_bytes_fails_loudly_for_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_image_bytes(str(tmp_path / "missing.jpg"))


@pytest.mark.asyncio
async def test_mock_provider_pickup_front():
    analysis = await MockProvider().analyze_photo(REMOTE_PHOTO, VehicleAngle.FRONT, AssessmentPhase.PICKUP)

    assert analysis.photo_id == "photo-1"
    assert [d.location for d in analysis.detections] == ["x:150,y:100"]
    assert analysis.analysis_score == pytest.approx(0.92)


@pytest.mark.asyncio
async def test_mock_provider_clean_angle_scores_one():
    analysis = await MockProvider().analyze_photo(REMOTE_PHOTO, VehicleAngle.ROOF, AssessmentPhase.PICKUP)

    assert analysis.detections == []
    assert analysis.analysis_score == 1.0


def test_openai_parse_damages_strips_code_fence_and_skips_invalid():
    raw = "```json\n" + json.dumps({
        "damages": [
            {"description": "Dent", "severity": "moderate", "confidence": 0.9,
             "box": {"x": 100, "y": 50, "width": 40, "height": 20}},
            {"description": "???", "severity": "catastrophic", "confidence": 0.9,
             "box": {"x": 0, "y": 0, "width": 1, "height": 1}},
            {"description": "No box", "severity": "minor", "confidence": 0.9},
        ]
    }) + "\n```"

    detections = parse_damages(raw)

    assert len(detections) == 1
    assert detections[0].location == "x:120,y:60"
    assert detections[0].estimated_cost == 490


def test_openai_parse_damages_rejects_non_json():
    with pytest.raises(ValueError):
        parse_damages("I could not find any damage.")


@pytest.mark.asyncio
async def test_huggingface_parses_detections():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[
            {"label": "severe-damage", "score": 0.9, "box": {"xmin": 10, "ymin": 20, "xmax": 110, "ymax": 220}},
            {"label": "minor", "score": 0.1, "box": {"xmin": 0, "ymin": 0, "xmax": 5, "ymax": 5}},
        ])

    provider = HuggingFaceProvider("hf-key", "https://hf.example.com/model", transport=httpx.MockTransport(handler))
    analysis = await provider.analyze_photo(REMOTE_PHOTO, VehicleAngle.FRONT, AssessmentPhase.RETURN)

    assert requests[0].headers["Authorization"] == "Bearer hf-key"
    assert json.loads(requests[0].content) == {"inputs": REMOTE_PHOTO.storage_path}
    assert len(analysis.detections) == 1
    damage = analysis.detections[0]
    assert damage.severity == DamageSeverity.SEVERE
    assert damage.location == "x:60,y:120"
    assert damage.bounding_box.width == 100
    assert damage.estimated_cost == 1176


@pytest.mark.asyncio
async def test_huggingface_backend_error_raises():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"}))
    provider = HuggingFaceProvider("hf-key", "https://hf.example.com/model", transport=transport)

    with pytest.raises(httpx.HTTPStatusError):
        await provider.analyze_photo(REMOTE_PHOTO, VehicleAngle.FRONT, AssessmentPhase.PICKUP)


@pytest.mark.asyncio
async def test_huggingface_validate_config():
    assert not await HuggingFaceProvider("", "https://hf.example.com/model").validate_config()

    loading = httpx.MockTransport(lambda request: httpx.Response(503))
    assert await HuggingFaceProvider("k", "https://hf.example.com/m", transport=loading).validate_config()

    denied = httpx.MockTransport(lambda request: httpx.Response(401))
    assert not await HuggingFaceProvider("k", "https://hf.example.com/m", transport=denied).validate_config()


@pytest.mark.asyncio
async def test_roboflow_uses_box_centre_as_location():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["api_key"] == "rf-key"
        assert request.url.params["image"] == REMOTE_PHOTO.storage_path
        return httpx.Response(200, json={"predictions": [
            {"x": 200, "y": 100, "width": 100, "height": 50, "confidence": 0.8, "class": "dent"},
        ]})

    provider = RoboflowProvider("rf-key", "car-damage/1", transport=httpx.MockTransport(handler))
    analysis = await provider.analyze_photo(REMOTE_PHOTO, VehicleAngle.REAR, AssessmentPhase.PICKUP)

    damage = analysis.detections[0]
    assert damage.severity == DamageSeverity.MODERATE
    assert damage.location == "x:200,y:100"
    assert (damage.bounding_box.x, damage.bounding_box.y) == (150, 75)
    assert damage.estimated_cost == 480
    assert analysis.analysis_score == pytest.approx(0.8)


@pytest.mark.asyncio
async def test_roboflow_sends_local_file_as_base64(tmp_path):
    image = tmp_path / "front.jpg"
    image.write_bytes(b"\xff\xd8\xff\xe0" + b"\x00" * 16)
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content
        return httpx.Response(200, json={"predictions": []})

    provider = RoboflowProvider("rf-key", "car-damage/1", transport=httpx.MockTransport(handler))
    photo = SimpleNamespace(id="p", storage_path=str(image))
    analysis = await provider.analyze_photo(photo, VehicleAngle.FRONT, AssessmentPhase.PICKUP)

    assert seen["body"].startswith(b"/9j/")
    assert analysis.detections == []
    assert analysis.analysis_score == 1.0


@pytest.mark.asyncio
async def test_roboflow_invalid_key_fails_validation():
    denied = httpx.MockTransport(lambda request: httpx.Response(401))

    assert not await RoboflowProvider("bad", "car-damage/1", transport=denied).validate_config()
