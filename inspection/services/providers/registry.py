import logging

from inspection.enums import AssessmentPhase, VehicleAngle
from inspection.schemas.detection import PhotoAnalysis
from inspection.services.providers.base import DetectionProvider
from inspection.utils.exceptions import (
    AnalysisFailedError,
    NoActiveProviderError,
    ProviderInvalidError,
    ProviderNotFoundError,
)

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Named detection providers with one active provider that analysis is routed to.

    Built once at startup and handed to whatever runs analysis; there is no
    module-level instance.
    """

    def __init__(self):
        self._providers: dict[str, DetectionProvider] = {}
        self._active_name: str | None = None

    def register(self, name: str, provider: DetectionProvider) -> None:
        self._providers[name] = provider
        logger.info("Detection provider registered: %s", name)

    def list_providers(self) -> list[str]:
        return list(self._providers)

    @property
    def active_name(self) -> str | None:
        return self._active_name

    def get_active(self) -> DetectionProvider:
        if self._active_name is None:
            raise NoActiveProviderError("No active detection provider configured")
        return self._providers[self._active_name]

    async def set_active(self, name: str) -> None:
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(f"Provider not found: {name}")

        try:
            is_valid = await provider.validate_config()
        except Exception as e:
            logger.warning("Provider %s failed validation: %s", name, e)
            is_valid = False

        if not is_valid:
            raise ProviderInvalidError(f"Provider configuration invalid: {name}")

        previous = self._active_name
        self._active_name = name
        logger.info("Active detection provider: %s (was %s)", name, previous)

    async def analyze(self, photo, angle: VehicleAngle, phase: AssessmentPhase) -> PhotoAnalysis:
        provider = self.get_active()
        name = self._active_name
        logger.info("Analyzing photo %s (%s/%s) with provider %s", photo.id, phase.value, angle.value, name)
        try:
            analysis = await provider.analyze_photo(photo, angle, phase)
        except AnalysisFailedError:
            raise
        except Exception as e:
            logger.error("Provider %s failed on photo %s: %s", name, photo.id, e)
            raise AnalysisFailedError(name, str(e) or type(e).__name__) from e

        if not isinstance(analysis, PhotoAnalysis):
            raise AnalysisFailedError(name, f"unexpected result type {type(analysis).__name__}")
        return analysis
