from fastapi import APIRouter, Depends

from inspection.dependencies import get_provider_registry
from inspection.schemas.assessment import ProviderInfo, ProviderSwitch
from inspection.services.providers.registry import ProviderRegistry
from inspection.utils.response import success_response

router = APIRouter(prefix="/providers", tags=["providers"])


def _info(registry: ProviderRegistry) -> dict:
    return ProviderInfo(
        available_providers=registry.list_providers(),
        active_provider=registry.active_name,
    ).model_dump()


@router.get("")
async def list_providers(registry: ProviderRegistry = Depends(get_provider_registry)):
    return success_response(data=_info(registry))


@router.put("/active")
async def switch_provider(payload: ProviderSwitch, registry: ProviderRegistry = Depends(get_provider_registry)):
    await registry.set_active(payload.name)
    return success_response(data=_info(registry), message=f"Active provider switched to {payload.name}")
