import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from inspection.config import settings
from inspection.database import build_engine, build_session_factory, create_tables
from inspection.enums import REQUIRED_ANGLES
from inspection.main import app
from inspection.services.inspection_service import InspectionService
from inspection.services.providers.mock import MockProvider
from inspection.services.providers.registry import ProviderRegistry


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    # Disable API key auth and keep uploaded files inside the test's tmp dir
    monkeypatch.setattr(settings, "api_key", "")
    monkeypatch.setattr(settings, "data_dir", str(tmp_path))


@pytest_asyncio.fixture
async def session_factory():
    engine = build_engine("sqlite+aiosqlite://")
    await create_tables(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def registry():
    registry = ProviderRegistry()
    registry.register("mock", MockProvider())
    await registry.set_active("mock")
    return registry


@pytest.fixture
def service(registry, session_factory):
    return InspectionService(registry, session_factory=session_factory)


@pytest_asyncio.fixture
async def client(service):
    app.state.inspection = service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def upload_phase(service):
    """Register a photo for each of ``angles`` in ``phase``."""

    async def _upload(assessment_id, phase, angles=REQUIRED_ANGLES):
        for angle in angles:
            await service.upload_photo(
                assessment_id,
                angle,
                phase,
                f"{angle.value}.jpg",
                f"/photos/{assessment_id}/{phase.value}_{angle.value}.jpg",
                1024,
            )

    return _upload
