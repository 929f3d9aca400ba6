import pytest
from unittest.mock import AsyncMock

from attendancr.main import app
from attendancr.api import dependencies
from attendancr.services.sync_service import SyncOutcome


@pytest.fixture
def sync_service():
    service = AsyncMock()
    app.dependency_overrides[dependencies.get_sync_service] = lambda: service
    return service


@pytest.mark.asyncio
async def test_sync_returns_counts(http_client, admin_headers, sync_service):
    sync_service.synchronize.return_value = SyncOutcome(success=True, students_added=3, students_deleted=1)

    response = await http_client.post("/api/v1/sheets/sync", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True, "students_added": 3, "students_updated": 0, "students_deleted": 1, "errors": None,
    }


@pytest.mark.asyncio
async def test_failed_sync_surfaces_message(http_client, admin_headers, sync_service):
    sync_service.synchronize.return_value = SyncOutcome(success=False, errors=["Google Sheets API not configured"])

    response = await http_client.post("/api/v1/sheets/sync", headers=admin_headers)

    assert response.status_code == 500
    assert response.json()["errors"] == ["Google Sheets API not configured"]


@pytest.mark.asyncio
async def test_sync_logs(http_client, admin_headers, store):
    sync_id = await store.create_sync_log()
    await store.complete_sync_log(sync_id, "success", 1, 0, 0, None)

    response = await http_client.get("/api/v1/sheets/sync/logs", headers=admin_headers)

    assert response.status_code == 200
    logs = response.json()
    assert logs[0]["id"] == str(sync_id)
    assert logs[0]["status"] == "success"
