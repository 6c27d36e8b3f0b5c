import pytest


@pytest.mark.asyncio
async def test_health_endpoint(client):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["data"]["service"] == "vehicle-inspection-api"
    assert data["data"]["version"] == "0.1.0"
    assert data["data"]["detection_provider"] == "mock"
    assert data["message"] is None
