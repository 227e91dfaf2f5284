import uuid

from app.models.project import ProjectMember, ProjectRole


class TestProjectEndpoints:
    def test_requires_token(self, client):
        resp = client.get("/api/projects")
        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "error": "Authentication required",
            "code": "authentication_required",
        }

    def test_bad_token(self, client):
        resp = client.get(
            "/api/projects", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401

    def test_create(self, client, auth_headers, company):
        resp = client.post(
            "/api/projects",
            json={"name": "Civic Center", "address": "1 Main St"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Project created"
        assert body["data"]["name"] == "Civic Center"
        assert body["data"]["status"] == "planning"
        assert body["data"]["company_id"] == str(company.id)

    def test_create_missing_name(self, client, auth_headers):
        resp = client.post("/api/projects", json={}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_list(self, client, auth_headers, project):
        resp = client.get("/api/projects", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 1
        assert body["data"][0]["id"] == str(project.id)
        assert body["data"][0]["my_role"] == "owner"

    def test_get_detail(self, client, auth_headers, project):
        resp = client.get(f"/api/projects?id={project.id}", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["name"] == "Riverside Library"
        assert data["members"] == []
        assert data["total_tasks"] == 0

    def test_get_not_found(self, client, auth_headers):
        resp = client.get(f"/api/projects?id={uuid.uuid4()}", headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    def test_viewer_cannot_update(
        self, client, db_session, project, teammate, headers_for
    ):
        db_session.add(
            ProjectMember(
                project_id=project.id, user_id=teammate.id, role=ProjectRole.viewer
            )
        )
        db_session.commit()
        resp = client.put(
            f"/api/projects?id={project.id}",
            json={"name": "Renamed"},
            headers=headers_for(teammate),
        )
        assert resp.status_code == 403
        assert resp.json()["success"] is False
        assert resp.json()["code"] == "forbidden"
        db_session.refresh(project)
        assert project.name == "Riverside Library"

    def test_update(self, client, auth_headers, project):
        resp = client.put(
            f"/api/projects?id={project.id}",
            json={"status": "on_hold"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "on_hold"

    def test_delete(self, client, auth_headers, project):
        resp = client.delete(f"/api/projects?id={project.id}", headers=auth_headers)
        assert resp.status_code == 200
        resp = client.get(f"/api/projects?id={project.id}", headers=auth_headers)
        assert resp.status_code == 404


class TestProjectMemberEndpoints:
    def test_add_and_list(self, client, auth_headers, project, teammate):
        resp = client.post(
            "/api/project-members",
            json={
                "project_id": str(project.id),
                "user_id": str(teammate.id),
                "role": "manager",
            },
            headers=auth_headers,
        )
        assert resp.status_code == 201
        resp = client.get(
            f"/api/project-members?project_id={project.id}", headers=auth_headers
        )
        body = resp.json()
        assert body["count"] == 1
        assert body["data"][0]["role"] == "manager"
        assert body["data"][0]["user"]["full_name"] == "Bob Builder"


class TestAppEndpoints:
    def test_preflight(self, client):
        resp = client.options(
            "/api/projects",
            headers={
                "Origin": "https://app.olumba.test",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "https://app.olumba.test"
        assert "PUT" in resp.headers["access-control-allow-methods"]
        assert resp.headers["access-control-allow-headers"] == (
            "Content-Type, Authorization"
        )

    def test_cors_on_regular_response(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_metrics(self, client):
        resp = client.get("/metrics")
        assert resp.status_code == 200

    def test_unknown_route_uses_envelope(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json() == {
            "success": False,
            "error": "Not Found",
            "code": "http_404",
        }

    def test_unsupported_method_uses_envelope(self, client, auth_headers):
        resp = client.put("/api/documents", headers=auth_headers)
        assert resp.status_code == 405
        assert resp.json()["success"] is False
        assert resp.json()["code"] == "http_405"
