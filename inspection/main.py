from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware

from inspection.config import settings
from inspection.database import create_tables
from inspection.dependencies import verify_api_key
from inspection.routers.assessments import router as assessments_router
from inspection.routers.providers import router as providers_router
from inspection.services.inspection_service import InspectionService
from inspection.services.providers.factory import build_provider_registry
from inspection.utils.exceptions import register_exception_handlers

SERVICE_NAME = "vehicle-inspection-api"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    registry = await build_provider_registry(settings)
    app.state.inspection = InspectionService(registry)
    yield


app = FastAPI(
    title="Vehicle Inspection API",
    description="Pickup/return vehicle photo inspection with damage detection and comparison",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

_api_key_dep = [Depends(verify_api_key)]

app.include_router(assessments_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(providers_router, prefix="/api/v1", dependencies=_api_key_dep)


@app.get("/health")
async def health_check(request: Request):
    inspection = getattr(request.app.state, "inspection", None)
    active = inspection.registry.active_name if inspection is not None else None
    return {
        "status": "success",
        "data": {"service": SERVICE_NAME, "version": VERSION, "detection_provider": active},
        "message": None,
    }
