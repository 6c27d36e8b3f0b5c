from fastapi import Header, HTTPException, Request

from inspection.config import settings
from inspection.services.inspection_service import InspectionService
from inspection.services.providers.registry import ProviderRegistry


async def verify_api_key(x_api_key: str = Header(default="")) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid or missing API key")


def get_inspection_service(request: Request) -> InspectionService:
    return request.app.state.inspection


def get_provider_registry(request: Request) -> ProviderRegistry:
    return request.app.state.inspection.registry
