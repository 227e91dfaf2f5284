from app.models.project import Task


class TestSearchEndpoints:
    def test_search(self, client, db_session, auth_headers, project, user):
        db_session.add(
            Task(project_id=project.id, name="Riverside egress review", created_by=user.id)
        )
        db_session.commit()
        resp = client.get("/api/search?q=riverside", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert body["data"]["projects"][0]["name"] == "Riverside Library"
        assert body["data"]["tasks"][0]["project_name"] == "Riverside Library"
        assert body["data"]["users"] == []

    def test_short_query(self, client, auth_headers, project):
        resp = client.get("/api/search?q=r", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["count"] == 0

    def test_requires_auth(self, client):
        resp = client.get("/api/search?q=riverside")
        assert resp.status_code == 401
        assert resp.json()["success"] is False
