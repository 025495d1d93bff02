import pytest

from fastapi import status
from fastapi.testclient import TestClient

from kobo_permissions_service.kobo_client import KoboRemoteError
from kobo_permissions_service.models import BulkAssignmentResult
from kobo_permissions_service.permissions.kinds import TSV_COLUMNS
from kobo_permissions_service.permissions.merge import compute_replacement
from kobo_permissions_service.permissions.tsv import rows_to_tsv

from . import shared_data as sd
from .conftest import MockKoboClient
from .utils import compare_via_json, dump_assignments

TARGET = {"token": sd.TOKEN, "baseUrl": sd.BASE_URL, "assetUid": sd.ASSET_UID}


def _update_body(**kwargs) -> dict:
    return {
        **TARGET,
        "owner": sd.OWNER,
        "users": [
            sd.ROW_ALICE_PARTIAL_VALIDATE.model_dump(),
            sd.ROW_BOB_VIEWER.model_dump(),
        ],
        **kwargs,
    }


# Update ---------------------------------------------------------------------------------------------------------------


def test_update_permissions(test_client: TestClient, kobo_client: MockKoboClient):
    res = test_client.post("/api/update-permissions", json=_update_body())
    assert res.status_code == status.HTTP_200_OK

    data = res.json()
    assert data["success"]
    assert data["status"] == 200
    assert data["message"] == f"Updated permissions for 2 users on asset {sd.ASSET_UID}"

    assert kobo_client.fetch_calls == [(sd.TOKEN, sd.BASE_URL, sd.ASSET_UID)]
    assert len(kobo_client.bulk_calls) == 1

    expected = compute_replacement(
        sd.CURRENT_ASSIGNMENTS, [sd.ROW_ALICE_PARTIAL_VALIDATE, sd.ROW_BOB_VIEWER], sd.OWNER, sd.BASE_URL
    )
    assert compare_via_json(dump_assignments(kobo_client.bulk_calls[0]), dump_assignments(expected))


def test_update_permissions_partial_row(test_client: TestClient, kobo_client: MockKoboClient):
    # Rows may carry only some of the columns, plus unknown ones
    res = test_client.post(
        "/api/update-permissions",
        json=_update_body(users=[{"username": "erin", "view_form": "TRUE", "notes": "new hire"}]),
    )
    assert res.status_code == status.HTTP_200_OK
    erin = [a for a in kobo_client.bulk_calls[0] if a.user == sd.user_ref("erin")]
    assert dump_assignments(erin) == [{"user": sd.user_ref("erin"), "permission": sd.perm_ref("view_asset")}]


def test_update_permissions_non_string_cells(test_client: TestClient, kobo_client: MockKoboClient):
    # Only the exact string "TRUE" enables a permission
    users = [{"username": "erin", "view_form": True, "edit_form": "TRUE", "add_submissions": 1, "partial_view": None}]
    res = test_client.post("/api/update-permissions", json=_update_body(users=users))
    assert res.status_code == status.HTTP_200_OK
    erin = [a for a in kobo_client.bulk_calls[0] if a.user == sd.user_ref("erin")]
    assert dump_assignments(erin) == [{"user": sd.user_ref("erin"), "permission": sd.perm_ref("change_asset")}]


@pytest.mark.parametrize(
    "body, missing",
    [
        ({}, ["token", "baseUrl", "assetUid", "owner", "users"]),
        ({"token": ""}, ["token"]),
        ({"owner": ""}, ["owner"]),
        ({"users": None}, ["users"]),
        ({"assetUid": "", "baseUrl": ""}, ["baseUrl", "assetUid"]),
    ],
)
def test_update_permissions_missing_fields(test_client: TestClient, kobo_client: MockKoboClient, body, missing):
    res = test_client.post("/api/update-permissions", json=_update_body(**body) if body else {})
    assert res.status_code == status.HTTP_400_BAD_REQUEST
    assert res.json()["detail"] == {"error": "Missing required fields", "missing": missing}

    # Nothing was sent to KoboToolbox
    assert kobo_client.fetch_calls == []
    assert kobo_client.bulk_calls == []


def test_update_permissions_empty_users(test_client: TestClient, kobo_client: MockKoboClient):
    res = test_client.post("/api/update-permissions", json=_update_body(users=[]))
    assert res.status_code == status.HTTP_200_OK
    assert res.json()["message"] == f"Updated permissions for 0 users on asset {sd.ASSET_UID}"
    # Only the owner's assignments are dropped
    assert len(kobo_client.bulk_calls[0]) == len(sd.CURRENT_ASSIGNMENTS) - 2


def test_update_permissions_invalid_row(test_client: TestClient, kobo_client: MockKoboClient):
    res = test_client.post("/api/update-permissions", json=_update_body(users=[{"view_form": "TRUE"}]))
    assert res.status_code == 422
    assert kobo_client.fetch_calls == []


def test_update_permissions_fetch_error(test_client: TestClient, kobo_client: MockKoboClient):
    kobo_client.fetch_error = KoboRemoteError("Failed to fetch permissions", 401, '{"detail":"Invalid token."}')

    res = test_client.post("/api/update-permissions", json=_update_body())
    assert res.status_code == status.HTTP_401_UNAUTHORIZED
    assert res.json()["detail"] == {
        "error": "Failed to fetch existing permissions",
        "status": 401,
        "body": '{"detail":"Invalid token."}',
    }
    assert kobo_client.bulk_calls == []


def test_update_permissions_bulk_failure(test_client: TestClient, kobo_client: MockKoboClient):
    kobo_client.bulk_result = BulkAssignmentResult(ok=False, status=400, data="Invalid permission assignment")

    res = test_client.post("/api/update-permissions", json=_update_body())
    assert res.status_code == status.HTTP_400_BAD_REQUEST
    data = res.json()
    assert not data["success"]
    assert data["status"] == 400
    assert data["data"] == "Invalid permission assignment"


def test_update_permissions_bad_remote_data(test_client: TestClient, kobo_client: MockKoboClient):
    kobo_client.fetch_error = ValueError("Expecting value: line 1 column 1 (char 0)")
    res = test_client.post("/api/update-permissions", json=_update_body())
    assert res.status_code == status.HTTP_502_BAD_GATEWAY
    assert res.json()["detail"]["error"].startswith("Unexpected response from KoboToolbox")


# Export ---------------------------------------------------------------------------------------------------------------


def test_export_permissions(test_client: TestClient, kobo_client: MockKoboClient):
    res = test_client.post("/api/export-permissions", json={**TARGET, "owner": sd.OWNER})
    assert res.status_code == status.HTTP_200_OK
    assert res.headers["content-type"].startswith("text/tab-separated-values")
    assert res.headers["content-disposition"] == f'attachment; filename="kobo_permissions_{sd.ASSET_UID}.tsv"'

    lines = res.text.split("\n")
    assert lines[0] == "\t".join(TSV_COLUMNS)
    assert [line.split("\t")[0] for line in lines[1:]] == ["alice", "bob", "carol"]
    assert lines[2] == "\t".join(
        (
            "bob",
            "TRUE",
            *(["FALSE"] * 7),
            "TRUE",
            "organization",
            "bar,baz",
            *(["FALSE", "", ""] * 3),
        )
    )

    assert kobo_client.fetch_calls == [(sd.TOKEN, sd.BASE_URL, sd.ASSET_UID)]


def test_export_permissions_without_owner(test_client: TestClient):
    res = test_client.post("/api/export-permissions", json=TARGET)
    assert res.status_code == status.HTTP_200_OK
    assert [line.split("\t")[0] for line in res.text.split("\n")[1:]] == [sd.OWNER, "alice", "bob", "carol"]


def test_export_permissions_no_assignments(test_client: TestClient, kobo_client: MockKoboClient):
    kobo_client.assignments = []
    res = test_client.post("/api/export-permissions", json=TARGET)
    assert res.status_code == status.HTTP_200_OK
    assert res.text == rows_to_tsv([])


def test_export_permissions_missing_fields(test_client: TestClient, kobo_client: MockKoboClient):
    res = test_client.post("/api/export-permissions", json={"token": sd.TOKEN, "baseUrl": sd.BASE_URL})
    assert res.status_code == status.HTTP_400_BAD_REQUEST
    assert res.json()["detail"] == {"error": "Missing required fields", "missing": ["assetUid"]}
    assert kobo_client.fetch_calls == []


def test_export_permissions_fetch_error(test_client: TestClient, kobo_client: MockKoboClient):
    kobo_client.fetch_error = KoboRemoteError("Failed to fetch permissions", 404, "Not found")
    res = test_client.post("/api/export-permissions", json=TARGET)
    assert res.status_code == status.HTTP_404_NOT_FOUND
    assert res.json()["detail"] == {"error": "Failed to fetch permissions", "status": 404, "body": "Not found"}


# Template & form ------------------------------------------------------------------------------------------------------


def test_download_template(test_client: TestClient):
    res = test_client.get("/download-template")
    assert res.status_code == status.HTTP_200_OK
    assert res.headers["content-type"].startswith("text/tab-separated-values")
    assert res.headers["content-disposition"] == 'attachment; filename="kobo_permissions_template.tsv"'
    assert res.text.split("\n")[0] == "\t".join(TSV_COLUMNS)
    assert len(res.text.split("\n")) == 4


def test_index(test_client: TestClient):
    res = test_client.get("/")
    assert res.status_code == status.HTTP_200_OK
    assert res.headers["content-type"].startswith("text/html")
    assert "KoboToolbox Bulk Permission Updater" in res.text
    assert "/api/update-permissions" in res.text


def test_not_found(test_client: TestClient):
    assert test_client.get("/api/nothing-here").status_code == status.HTTP_404_NOT_FOUND
