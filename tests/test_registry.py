from types import SimpleNamespace

import pytest

from inspection.config import Settings
from inspection.enums import AssessmentPhase, VehicleAngle
from inspection.services.providers.factory import build_provider_registry
from inspection.services.providers.mock import MockProvider
from inspection.services.providers.registry import ProviderRegistry
from inspection.utils.exceptions import (
    AnalysisFailedError,
    InvalidInputError,
    NoActiveProviderError,
    ProviderInvalidError,
    ProviderNotFoundError,
)

PHOTO = SimpleNamespace(id="photo-1", storage_path="/photos/front.jpg")


class BrokenProvider:
    name = "broken"

    def __init__(self, valid=True, error=None, result=None):
        self.valid = valid
        self.error = error
        self.result = result

    async def validate_config(self):
        if isinstance(self.valid, Exception):
            raise self.valid
        return self.valid

    async def analyze_photo(self, photo, angle, phase):
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_register_and_activate():
    registry = ProviderRegistry()
    registry.register("mock", MockProvider())
    registry.register("other", BrokenProvider())

    assert registry.list_providers() == ["mock", "other"]
    assert registry.active_name is None

    await registry.set_active("mock")
    assert registry.active_name == "mock"
    assert isinstance(registry.get_active(), MockProvider)


@pytest.mark.asyncio
async def test_get_active_without_provider_raises():
    with pytest.raises(NoActiveProviderError):
        ProviderRegistry().get_active()


@pytest.mark.asyncio
async def test_analyze_without_active_provider_raises():
    registry = ProviderRegistry()
    registry.register("mock", MockProvider())

    with pytest.raises(NoActiveProviderError):
        await registry.analyze(PHOTO, VehicleAngle.FRONT, AssessmentPhase.PICKUP)


@pytest.mark.asyncio
async def test_set_active_unknown_provider(registry):
    with pytest.raises(ProviderNotFoundError):
        await registry.set_active("does-not-exist")
    assert registry.active_name == "mock"


@pytest.mark.asyncio
@pytest.mark.parametrize("valid", [False, RuntimeError("cannot reach backend")])
async def test_set_active_invalid_provider_keeps_previous(registry, valid):
    registry.register("broken", BrokenProvider(valid=valid))

    with pytest.raises(ProviderInvalidError):
        await registry.set_active("broken")
    assert registry.active_name == "mock"


@pytest.mark.asyncio
async def test_analyze_wraps_provider_errors():
    registry = ProviderRegistry()
    registry.register("broken", BrokenProvider(error=TimeoutError("timed out")))
    await registry.set_active("broken")

    with pytest.raises(AnalysisFailedError) as exc_info:
        await registry.analyze(PHOTO, VehicleAngle.FRONT, AssessmentPhase.PICKUP)
    assert exc_info.value.provider == "broken"
    assert "timed out" in exc_info.value.message


@pytest.mark.asyncio
async def test_analyze_rejects_unexpected_result():
    registry = ProviderRegistry()
    registry.register("broken", BrokenProvider(result={"detections": []}))
    await registry.set_active("broken")

    with pytest.raises(AnalysisFailedError):
        await registry.analyze(PHOTO, VehicleAngle.FRONT, AssessmentPhase.PICKUP)


@pytest.mark.asyncio
async def test_analyze_routes_to_active_provider(registry):
    analysis = await registry.analyze(PHOTO, VehicleAngle.REAR, AssessmentPhase.PICKUP)

    assert analysis.photo_id == "photo-1"
    assert [d.location for d in analysis.detections] == ["x:200,y:80"]


@pytest.mark.asyncio
async def test_factory_falls_back_to_mock_for_unconfigured_provider():
    settings = Settings(
        detection_provider="roboflow", openai_api_key="", huggingface_api_key="", roboflow_api_key=""
    )

    registry = await build_provider_registry(settings)

    assert registry.list_providers() == ["mock"]
    assert registry.active_name == "mock"


@pytest.mark.asyncio
async def test_factory_activates_configured_provider():
    settings = Settings(
        detection_provider="OpenAI", openai_api_key="sk-test", huggingface_api_key="", roboflow_api_key=""
    )

    registry = await build_provider_registry(settings)

    assert registry.list_providers() == ["mock", "openai"]
    assert registry.active_name == "openai"


@pytest.mark.asyncio
async def test_analyze_wraps_application_errors_with_provider_name():
    registry = ProviderRegistry()
    registry.register("broken", BrokenProvider(error=InvalidInputError("unsupported image")))
    await registry.set_active("broken")

    with pytest.raises(AnalysisFailedError) as exc_info:
        await registry.analyze(PHOTO, VehicleAngle.FRONT, AssessmentPhase.PICKUP)
    assert exc_info.value.provider == "broken"
    assert "unsupported image" in exc_info.value.message
