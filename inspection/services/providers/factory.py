import logging

from inspection.config import Settings
from inspection.services.providers.base import base_costs_from_settings
from inspection.services.providers.huggingface import HuggingFaceProvider
from inspection.services.providers.mock import MockProvider
from inspection.services.providers.openai_vision import OpenAIVisionProvider
from inspection.services.providers.registry import ProviderRegistry
from inspection.services.providers.roboflow import RoboflowProvider
from inspection.utils.exceptions import AppException

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER = "mock"


async def build_provider_registry(settings: Settings) -> ProviderRegistry:
    """Register every provider with credentials and activate the configured one.

    Falls back to the mock provider when the requested one is unknown or fails
    validation.
    """
    registry = ProviderRegistry()
    base_costs = base_costs_from_settings(settings.severity_base_costs)

    registry.register("mock", MockProvider(latency=settings.mock_latency_seconds))

    if settings.openai_api_key:
        registry.register("openai", OpenAIVisionProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            base_costs=base_costs,
            min_confidence=settings.detection_min_confidence,
            timeout=settings.provider_timeout_seconds,
        ))
    if settings.huggingface_api_key:
        registry.register("huggingface", HuggingFaceProvider(
            api_key=settings.huggingface_api_key,
            endpoint=settings.huggingface_model_endpoint,
            base_costs=base_costs,
            min_confidence=settings.detection_min_confidence,
            timeout=settings.provider_timeout_seconds,
        ))
    if settings.roboflow_api_key:
        registry.register("roboflow", RoboflowProvider(
            api_key=settings.roboflow_api_key,
            model_id=settings.roboflow_model_id,
            endpoint=settings.roboflow_endpoint,
            base_costs=base_costs,
            min_confidence=settings.detection_min_confidence,
            timeout=settings.provider_timeout_seconds,
        ))

    requested = (settings.detection_provider or FALLBACK_PROVIDER).lower()
    try:
        await registry.set_active(requested)
    except AppException as e:
        logger.warning("Failed to activate provider %s (%s), falling back to %s",
                       requested, e.message, FALLBACK_PROVIDER)
        await registry.set_active(FALLBACK_PROVIDER)

    logger.info("Detection providers available: %s, active: %s",
                ", ".join(registry.list_providers()), registry.active_name)
    return registry
