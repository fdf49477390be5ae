"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Exercises the HTTP surface with the FastAPI TestClient against the
in-memory database: auth guards, error body shape, and the main
student and admin flows.
"""

from __future__ import annotations

import pytest



# ===========================================================================
# Health & auth
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestAuthGuards:
    ENDPOINTS = [
        ("GET", "/api/profiles/me"),
        ("GET", "/api/community"),
        ("GET", "/api/library"),
        ("GET", "/api/vault"),
        ("GET", "/api/announcements"),
        ("GET", "/api/admin/users"),
        ("GET", "/api/admin/audit"),
    ]

    @pytest.mark.parametrize("method,path", ENDPOINTS)
    def test_missing_token_401(self, client, method, path):
        assert client.request(method, path).status_code == 401

    @pytest.mark.parametrize("method,path", ENDPOINTS)
    def test_invalid_token_401(self, client, method, path):
        resp = client.request(method, path, headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401

    @pytest.mark.parametrize("headers,message", [
        ({}, "Missing token"),
        ({"Authorization": "Bearer not.a.jwt"}, "Invalid token"),
    ])
    def test_401_uses_error_body(self, client, headers, message):
        resp = client.get("/api/profiles/me", headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"error": "unauthorized", "message": message}

    def test_unknown_route_uses_error_body(self, client):
        resp = client.get("/api/nowhere")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    @pytest.mark.parametrize("path", ["/api/admin/users", "/api/admin/reports", "/api/admin/audit"])
    def test_student_gets_403_error_body(self, client, student_headers, path):
        resp = client.get(path, headers=student_headers)
        assert resp.status_code == 403
        assert resp.json() == {"error": "forbidden", "message": "Admin access required"}


# ===========================================================================
# Profiles
# ===========================================================================
class TestProfiles:
    def test_first_request_creates_profile(self, client, token_headers):
        resp = client.get("/api/profiles/me", headers=token_headers("new-sub", "Dana"))
        assert resp.status_code == 200
        body = resp.json()
        assert body["user_id"] == "new-sub"
        assert body["username"] == "Dana"
        assert body["role"] == "student"

    def test_long_identity_claims_are_stored(self, client, token_headers):
        sub, name = "oidc|" + "9" * 300, "N" * 250
        resp = client.get("/api/profiles/me", headers=token_headers(sub, name))
        assert resp.status_code == 200
        assert resp.json()["user_id"] == sub
        assert resp.json()["username"] == name

    def test_update_me(self, client, student_headers):
        resp = client.put("/api/profiles/me", json={"bio": "CS 2nd year"}, headers=student_headers)
        assert resp.status_code == 200
        assert resp.json()["bio"] == "CS 2nd year"

    def test_cannot_self_promote(self, client, student_headers):
        resp = client.put("/api/profiles/me", json={"role": "admin"}, headers=student_headers)
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation"

    def test_passcode_elevation(self, client, student_headers):
        bad = client.post("/api/admin/verify", json={"passcode": "0000"}, headers=student_headers)
        assert bad.status_code == 403

        ok = client.post("/api/admin/verify", json={"passcode": "2009"}, headers=student_headers)
        assert ok.status_code == 200
        assert ok.json()["profile"]["role"] == "admin"
        assert client.get("/api/admin/users", headers=student_headers).status_code == 200


# ===========================================================================
# Community & moderation flow
# ===========================================================================
class TestCommunityFlow:
    def test_post_reply_react(self, client, student_headers):
        post = client.post(
            "/api/community", json={"content": "Anyone for algebra?"}, headers=student_headers,
        )
        assert post.status_code == 201
        post_id = post.json()["id"]
        assert post.json()["type"] == "text"

        assert client.post(
            f"/api/community/{post_id}/replies", json={"content": "Me"}, headers=student_headers,
        ).status_code == 201
        assert client.post(
            f"/api/community/{post_id}/react", json={"emoji": "👍"}, headers=student_headers,
        ).status_code == 201

        feed = client.get("/api/community", headers=student_headers).json()
        assert feed[0]["replies"][0]["content"] == "Me"
        assert feed[0]["reactions"][0]["emoji"] == "👍"
        assert feed[0]["author"]["username"] == "Alice"

    def test_missing_post_404(self, client, student_headers):
        resp = client.post("/api/community/999/replies", json={"content": "x"}, headers=student_headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_empty_content_422(self, client, student_headers):
        resp = client.post("/api/community", json={"content": ""}, headers=student_headers)
        assert resp.status_code == 422
        assert resp.json()["field"] == "content"

    def test_missing_body_field_rendered_as_validation(self, client, student_headers):
        resp = client.post("/api/community", json={}, headers=student_headers)
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation"

    def test_three_warnings_ban_then_post_forbidden(self, client, student, admin_headers, student_headers):
        for i in range(3):
            resp = client.post(
                f"/api/admin/users/{student.user_id}/warn",
                json={"reason": f"strike {i}"},
                headers=admin_headers,
            )
            assert resp.status_code == 200
        assert resp.json() == {"success": True, "autoBanned": True, "warningCount": 3}

        blocked = client.post("/api/community", json={"content": "hi"}, headers=student_headers)
        assert blocked.status_code == 403
        assert blocked.json() == {"error": "forbidden", "message": "You are banned"}

        warnings = client.get("/api/profiles/me/warnings", headers=student_headers).json()
        assert [w["reason"] for w in warnings] == ["strike 2", "strike 1", "strike 0"]

    def test_admin_cannot_be_banned(self, client, admin_headers, db_engine, make_profile):
        make_profile("admin-2", role="admin")
        resp = client.post("/api/admin/users/admin-2/ban", headers=admin_headers)
        assert resp.status_code == 403

    def test_mute_unmute(self, client, student, admin_headers, student_headers):
        assert client.post(
            f"/api/admin/users/{student.user_id}/mute", headers=admin_headers,
        ).json() == {"success": True}
        assert client.post(
            "/api/community", json={"content": "x"}, headers=student_headers,
        ).status_code == 403
        client.post(f"/api/admin/users/{student.user_id}/unmute", headers=admin_headers)
        assert client.post(
            "/api/community", json={"content": "x"}, headers=student_headers,
        ).status_code == 201

    def test_admin_deletes_post(self, client, admin_headers, student_headers):
        post_id = client.post(
            "/api/community", json={"content": "x"}, headers=student_headers,
        ).json()["id"]
        assert client.delete(f"/api/community/{post_id}", headers=student_headers).status_code == 403
        assert client.delete(f"/api/community/{post_id}", headers=admin_headers).status_code == 204
        assert client.get("/api/community", headers=student_headers).json() == []

    def test_pin_post(self, client, admin_headers, student_headers):
        post_id = client.post(
            "/api/community", json={"content": "x"}, headers=student_headers,
        ).json()["id"]
        assert client.post(f"/api/admin/posts/{post_id}/pin", headers=admin_headers).status_code == 200
        assert client.get("/api/community", headers=student_headers).json()[0]["is_pinned"] is True


# ===========================================================================
# Reports
# ===========================================================================
class TestReports:
    def test_report_and_resolve(self, client, admin_headers, student_headers, other_student):
        created = client.post(
            "/api/community/report",
            json={
                "target_id": 1, "target_type": "post",
                "reason": "off-topic", "target_user_id": other_student.user_id,
            },
            headers=student_headers,
        )
        assert created.status_code == 201
        assert created.json()["status"] == "pending"

        queue = client.get("/api/admin/reports?status=pending", headers=admin_headers).json()
        assert len(queue) == 1
        assert queue[0]["target_user"]["username"] == "Bob"

        resolved = client.post(
            f"/api/admin/reports/{queue[0]['id']}/resolve",
            json={"status": "dismissed"},
            headers=admin_headers,
        )
        assert resolved.json()["status"] == "dismissed"
        assert client.get("/api/admin/reports?status=pending", headers=admin_headers).json() == []

    def test_audit_log_records_resolution(self, client, admin_headers, student_headers):
        rid = client.post(
            "/api/community/report",
            json={"target_id": 1, "target_type": "reply", "reason": "rude"},
            headers=student_headers,
        ).json()["id"]
        client.post(f"/api/admin/reports/{rid}/resolve", json={"status": "resolved"}, headers=admin_headers)

        audit = client.get("/api/admin/audit", headers=admin_headers).json()
        assert audit["total"] == 1
        assert audit["entries"][0]["action_type"] == "RESOLVE"
        assert audit["entries"][0]["target_table"] == "reports"


# ===========================================================================
# Library, vault, announcements, uploads
# ===========================================================================
class TestLibraryAndVault:
    def test_library_flow(self, client, admin_headers, student_headers):
        created = client.post(
            "/api/library",
            json={"title": "Organic Chem", "category": "Book", "link_url": "https://lib/oc"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        item_id = created.json()["id"]

        assert client.post(
            "/api/library", json={"title": "x", "category": "Book"}, headers=student_headers,
        ).status_code == 403

        rated = client.post(f"/api/library/{item_id}/rate", json={"rating": 4}, headers=student_headers)
        assert rated.json()["average_rating"] == 4.0

        assert client.post(
            f"/api/library/{item_id}/rate", json={"rating": 9}, headers=student_headers,
        ).status_code == 422

        comment = client.post(
            f"/api/library/{item_id}/comments", json={"content": "Chapter 3 is key"},
            headers=student_headers,
        )
        assert comment.status_code == 201
        comments = client.get(f"/api/library/{item_id}/comments", headers=student_headers).json()
        assert comments[0]["content"] == "Chapter 3 is key"

        listing = client.get("/api/library?category=Book", headers=student_headers).json()
        assert listing[0]["rating_count"] == 1

        assert client.delete(f"/api/library/{item_id}", headers=admin_headers).status_code == 204
        assert client.get("/api/library", headers=student_headers).json() == []

    def test_vault_is_private(self, client, student_headers, other_student, token_headers):
        created = client.post(
            "/api/vault", json={"title": "Flashcards", "link_url": "https://cards/1"},
            headers=student_headers,
        )
        assert created.status_code == 201
        vid = created.json()["id"]

        bob = token_headers(other_student.user_id, other_student.username)
        assert client.get("/api/vault", headers=bob).json() == []
        assert client.delete(f"/api/vault/{vid}", headers=bob).status_code == 403
        assert client.delete(f"/api/vault/{vid}", headers=student_headers).status_code == 204


class TestAnnouncementsAndUploads:
    def test_announcements(self, client, admin_headers, student_headers):
        assert client.post(
            "/api/announcements", json={"title": "t", "content": "c"}, headers=student_headers,
        ).status_code == 403
        created = client.post(
            "/api/announcements", json={"title": "Exams", "content": "Week 12"}, headers=admin_headers,
        )
        assert created.status_code == 201
        assert client.get("/api/announcements", headers=student_headers).json()[0]["title"] == "Exams"
        assert client.delete(
            f"/api/announcements/{created.json()['id']}", headers=admin_headers,
        ).status_code == 204

    def test_upload_url(self, client, student_headers):
        resp = client.post(
            "/api/uploads/request-url",
            json={"filename": "notes.pdf", "size": 2048, "content_type": "application/pdf"},
            headers=student_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["upload_url"].startswith("https://storage.test/studyhall/uploads/")

    def test_upload_rejected(self, client, student_headers):
        resp = client.post(
            "/api/uploads/request-url",
            json={"filename": "virus.exe", "size": 10},
            headers=student_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["field"] == "filename"
