"""
End-to-end route tests: auth, upload and analytics against an in-memory
database and object store (see conftest.py).
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import signup_user

from app.services.auth import REFRESH_COOKIE_NAME, create_access_token

SALES_CSV = (
    b"date,region,product,revenue,units\n"
    b"2024-01-03,North,Widget,120,3\n"
    b"2024-01-01,South,Gadget,80,2\n"
    b"2024-01-02,North,Gadget,100,5\n"
    b"2024-01-04,East,Widget,60,1\n"
)


def upload(client, headers, content: bytes = SALES_CSV, filename: str = "sales.csv"):
    return client.post(
        "/api/upload",
        files={"file": (filename, content, "text/csv")},
        headers=headers,
    )


@pytest.fixture
def file_id(client, auth_headers):
    response = upload(client, auth_headers)
    assert response.status_code == 200, response.text
    return response.json()["fileId"]


# ─────────────────────────────────────────────────────────────────────────────
# Health
# ─────────────────────────────────────────────────────────────────────────────

def test_root_and_health(client):
    assert client.get("/").json()["message"] == "Excel Analytics API is running"
    assert client.get("/api/health").json() == {"status": "healthy"}


# ─────────────────────────────────────────────────────────────────────────────
# Auth
# ─────────────────────────────────────────────────────────────────────────────

class TestAuth:

    def test_signup_returns_token_and_sets_cookie(self, client):
        body = signup_user(client)
        assert body["success"] is True
        assert body["user"]["username"] == "alice"
        assert body["user"]["firstName"] == "Alice"
        assert "passwordHash" not in body["user"]
        assert body["accessToken"]
        assert client.cookies.get(REFRESH_COOKIE_NAME)

    def test_signup_requires_all_fields(self, client):
        response = client.post("/api/auth/signup", data={"username": "bob", "password": "secret123"})
        assert response.status_code == 400

    def test_signup_short_password(self, client):
        response = client.post(
            "/api/auth/signup",
            data={"username": "bob", "email": "b@x.io", "password": "123",
                  "firstName": "B", "lastName": "C"},
        )
        assert response.status_code == 400

    def test_duplicate_email_and_username(self, client):
        signup_user(client)
        dup_email = client.post(
            "/api/auth/signup",
            data={"username": "other", "email": "ALICE@example.com", "password": "secret123",
                  "firstName": "A", "lastName": "B"},
        )
        assert dup_email.status_code == 409
        assert dup_email.json()["detail"] == "Email already registered"

        dup_name = client.post(
            "/api/auth/signup",
            data={"username": "alice", "email": "new@example.com", "password": "secret123",
                  "firstName": "A", "lastName": "B"},
        )
        assert dup_name.status_code == 409
        assert dup_name.json()["detail"] == "Username already taken"

    @pytest.mark.parametrize("identifier", ["alice", "Alice@Example.com"])
    def test_login_by_username_or_email(self, client, identifier):
        signup_user(client)
        response = client.post(
            "/api/auth/login",
            json={"emailOrUsername": identifier, "password": "secret123"},
        )
        assert response.status_code == 200
        assert response.json()["user"]["lastLogin"] is not None

    def test_login_wrong_password(self, client):
        signup_user(client)
        response = client.post("/api/auth/login", json={"emailOrUsername": "alice", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_me_rejects_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid access token"

    def test_me_rejects_expired_token(self, client, auth_headers):
        me = client.get("/api/auth/me", headers=auth_headers).json()["user"]
        expired = create_access_token(me["id"], expires_delta=timedelta(seconds=-10))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Access token expired"

    def test_refresh_issues_new_access_token(self, client):
        signup_user(client)
        response = client.post("/api/auth/refresh")
        assert response.status_code == 200
        assert response.json()["accessToken"]

    def test_refresh_after_logout_is_rejected(self, client):
        signup_user(client)
        token = client.cookies.get(REFRESH_COOKIE_NAME)

        assert client.post("/api/auth/logout").status_code == 200

        client.cookies.set(REFRESH_COOKIE_NAME, token)
        response = client.post("/api/auth/refresh")
        assert response.status_code == 401

    def test_refresh_with_malformed_cookie(self, client):
        client.cookies.set(REFRESH_COOKIE_NAME, "short")
        response = client.post("/api/auth/refresh")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid refresh token"

    def test_logout_all_revokes_every_session(self, client, auth_headers):
        first = client.cookies.get(REFRESH_COOKIE_NAME)
        client.post("/api/auth/login", json={"emailOrUsername": "alice", "password": "secret123"})

        assert client.post("/api/auth/logout-all", headers=auth_headers).status_code == 200

        client.cookies.set(REFRESH_COOKIE_NAME, first)
        assert client.post("/api/auth/refresh").status_code == 401

    def test_update_profile(self, client, auth_headers):
        response = client.put("/api/auth/profile", data={"firstName": "Alicia"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["user"]["firstName"] == "Alicia"
        assert response.json()["user"]["lastName"] == "Example"

    def test_profile_photo_roundtrip(self, client, auth_headers, storage):
        response = client.put(
            "/api/auth/profile",
            files={"profilePhoto": ("me.png", b"\x89PNG fake", "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["user"]["profilePhotoUrl"].endswith(".png")
        assert len(storage.objects) == 1

        response = client.delete("/api/auth/profile-photo", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["user"]["profilePhotoUrl"] is None
        assert storage.objects == {}

    def test_profile_photo_rejects_non_images(self, client, auth_headers):
        response = client.put(
            "/api/auth/profile",
            files={"profilePhoto": ("notes.txt", b"hello", "text/plain")},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_token_cleanup_is_admin_only(self, client, auth_headers):
        assert client.post("/api/auth/tokens/cleanup", headers=auth_headers).status_code == 403


# ─────────────────────────────────────────────────────────────────────────────
# Upload
# ─────────────────────────────────────────────────────────────────────────────

class TestUpload:

    def test_upload_requires_auth(self, client):
        assert upload(client, {}).status_code == 401

    def test_upload_parses_and_stores(self, client, auth_headers, storage):
        response = upload(client, auth_headers)
        assert response.status_code == 200
        body = response.json()

        assert body["success"] is True
        assert len(body["data"]) == 4
        meta = body["metadata"]
        assert meta["rows"] == 4
        assert meta["columns"] == 5
        assert meta["headers"] == ["date", "region", "product", "revenue", "units"]
        assert meta["columnTypes"]["revenue"] == "numerical"
        assert meta["columnTypes"]["date"] == "date"
        assert len(meta["sampleData"]) == 4
        assert len(storage.objects) == 1

    def test_rejects_unsupported_extension(self, client, auth_headers):
        response = upload(client, auth_headers, b"hello", "notes.txt")
        assert response.status_code == 400
        assert response.json()["detail"] == "Only Excel and CSV files are allowed!"

    def test_rejects_missing_file(self, client, auth_headers):
        response = client.post("/api/upload", headers=auth_headers)
        assert response.status_code == 400

    def test_rejects_unreadable_file(self, client, auth_headers):
        response = upload(client, auth_headers, b"not a workbook", "broken.xlsx")
        assert response.status_code == 400

    def test_storage_failure_is_500(self, client, auth_headers, storage):
        storage.fail_uploads = True
        assert upload(client, auth_headers).status_code == 500

    def test_windows_encoded_csv_upload(self, client, auth_headers):
        response = upload(client, auth_headers, "city\nM\u00fcnchen\n".encode("cp1252"))
        assert response.status_code == 200
        assert response.json()["data"] == [{"city": "M\u00fcnchen"}]

    def test_failed_record_save_removes_stored_object(self, client, auth_headers, storage, db_session, monkeypatch):
        def failing_commit():
            raise SQLAlchemyError("database unavailable")

        monkeypatch.setattr(db_session, "commit", failing_commit)
        response = upload(client, auth_headers)
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to save file record"
        assert storage.objects == {}

    def test_list_get_delete(self, client, auth_headers, file_id, storage):
        files = client.get("/api/upload/files", headers=auth_headers).json()["files"]
        assert [f["id"] for f in files] == [file_id]
        assert files[0]["originalName"] == "sales.csv"

        detail = client.get(f"/api/upload/files/{file_id}", headers=auth_headers)
        assert detail.status_code == 200
        assert detail.json()["file"]["rowCount"] == 4

        assert client.delete(f"/api/upload/files/{file_id}", headers=auth_headers).status_code == 200
        assert storage.objects == {}
        assert client.get(f"/api/upload/files/{file_id}", headers=auth_headers).status_code == 404

    def test_other_users_cannot_see_file(self, client, file_id):
        bob = signup_user(client, username="bob", email="bob@example.com")
        headers = {"Authorization": f"Bearer {bob['accessToken']}"}
        assert client.get(f"/api/upload/files/{file_id}", headers=headers).status_code == 404
        assert client.get("/api/upload/files", headers=headers).json()["files"] == []


# ─────────────────────────────────────────────────────────────────────────────
# Analytics
# ─────────────────────────────────────────────────────────────────────────────

class TestAnalytics:

    def test_stats(self, client, auth_headers, file_id):
        response = client.get(f"/api/analytics/stats/{file_id}", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()

        assert body["totalRows"] == 4
        assert body["totalColumns"] == 5
        assert body["numericalColumns"] == ["revenue", "units"]
        assert body["categoricalColumns"] == ["date", "region", "product"]

        revenue = body["summary"]["revenue"]
        assert revenue == {"type": "numerical", "min": 60, "max": 120, "avg": 90, "count": 4}

        region = body["summary"]["region"]
        assert region["uniqueCount"] == 3
        assert region["topValues"][0] == {"value": "North", "count": 2}

    def test_stats_unknown_file(self, client, auth_headers):
        response = client.get("/api/analytics/stats/999", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "File not found"

    def test_stats_other_users_file(self, client, file_id):
        bob = signup_user(client, username="bob", email="bob@example.com")
        headers = {"Authorization": f"Bearer {bob['accessToken']}"}
        assert client.get(f"/api/analytics/stats/{file_id}", headers=headers).status_code == 404

    def test_missing_stored_object_is_500(self, client, auth_headers, file_id, storage):
        storage.objects.clear()
        response = client.get(f"/api/analytics/stats/{file_id}", headers=auth_headers)
        assert response.status_code == 500

    def test_bar_chart(self, client, auth_headers, file_id):
        response = client.post(
            f"/api/analytics/chart/{file_id}",
            json={"chartType": "bar", "groupBy": "region", "yColumn": "revenue"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["chartType"] == "bar"
        assert body["chartData"]["labels"] == ["North", "South", "East"]
        assert body["chartData"]["datasets"][0]["data"] == [220, 80, 60]
        assert body["config"] == {"xColumn": None, "yColumn": "revenue", "groupBy": "region"}

    def test_line_chart_sorted_by_date(self, client, auth_headers, file_id):
        response = client.post(
            f"/api/analytics/chart/{file_id}",
            json={"chartType": "line", "xColumn": "date", "yColumn": "units"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        chart = response.json()["chartData"]
        assert chart["labels"] == ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04"]
        assert chart["datasets"][0]["data"] == [2, 5, 3, 1]

    def test_scatter_chart(self, client, auth_headers, file_id):
        response = client.post(
            f"/api/analytics/chart/{file_id}",
            json={"chartType": "scatter", "xColumn": "revenue", "yColumn": "units"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        points = response.json()["chartData"]["datasets"][0]["data"]
        assert points[0] == {"x": 120, "y": 3}

    @pytest.mark.parametrize("body, message", [
        ({}, "Chart type is required"),
        ({"chartType": "line", "xColumn": "date"}, "Both xColumn and yColumn are required for line charts"),
        ({"chartType": "bar", "groupBy": "nope"}, "Column 'nope' not found in file"),
        ({"chartType": "radar", "groupBy": "region"}, "Unsupported chart type: radar"),
    ])
    def test_invalid_chart_requests(self, client, auth_headers, file_id, body, message):
        response = client.post(f"/api/analytics/chart/{file_id}", json=body, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == message

    def test_empty_chart_is_rejected(self, client, auth_headers, file_id):
        response = client.post(
            f"/api/analytics/chart/{file_id}",
            json={"chartType": "scatter", "xColumn": "region", "yColumn": "product"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "details" in response.json()

    def test_suggest(self, client, auth_headers, file_id):
        response = client.get(f"/api/analytics/suggest/{file_id}", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()

        assert body["columnTypes"] == {
            "date": "date",
            "region": "categorical",
            "product": "categorical",
            "revenue": "numerical",
            "units": "numerical",
        }
        assert body["summary"] == {
            "totalColumns": 5,
            "numericalColumns": 2,
            "categoricalColumns": 2,
            "dateColumns": 1,
        }
        suggestions = body["suggestions"]
        assert len(suggestions) == 10
        assert all(s["suitability"] == "high" for s in suggestions[:8])
        assert suggestions[0] == {
            "chartType": "bar",
            "xColumn": None,
            "yColumn": None,
            "groupBy": "region",
            "title": "Distribution of region",
            "description": "Bar chart showing count by region",
            "suitability": "high",
            "reason": "Good for showing distribution of categorical data",
        }
