import pytest
import structlog

from fastapi.testclient import TestClient
from typing import Iterable

import os

os.environ["DEBUG"] = "true"

from kobo_permissions_service.kobo_client import BaseKoboClient, KoboRemoteError, get_kobo_client
from kobo_permissions_service.main import app
from kobo_permissions_service.models import BulkAssignmentResult, PermissionAssignment

from . import shared_data as sd


class MockKoboClient(BaseKoboClient):
    def __init__(
        self,
        assignments: Iterable[PermissionAssignment] = (),
        bulk_result: BulkAssignmentResult = sd.BULK_OK,
        fetch_error: KoboRemoteError | None = None,
    ):
        super().__init__(structlog.get_logger(), 1.0, True)
        self.assignments: list[PermissionAssignment] = list(assignments)
        self.bulk_result: BulkAssignmentResult = bulk_result
        self.fetch_error: KoboRemoteError | None = fetch_error

        self.fetch_calls: list[tuple[str, str, str]] = []
        self.bulk_calls: list[list[PermissionAssignment]] = []

    async def get_permission_assignments(self, token: str, base_url: str, asset_uid: str) -> list[PermissionAssignment]:
        self.fetch_calls.append((token, base_url, asset_uid))
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.assignments)

    async def bulk_assign_permissions(
        self, token: str, base_url: str, asset_uid: str, assignments: Iterable[PermissionAssignment]
    ) -> BulkAssignmentResult:
        self.bulk_calls.append(list(assignments))
        return self.bulk_result


@pytest.fixture
def kobo_client() -> MockKoboClient:
    return MockKoboClient(sd.CURRENT_ASSIGNMENTS)


@pytest.fixture
def test_client(kobo_client: MockKoboClient):
    app.dependency_overrides[get_kobo_client] = lambda: kobo_client
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
