class TestClientEndpoints:
    def test_crud(self, client, auth_headers, company_admin, headers_for):
        resp = client.post(
            "/api/clients",
            json={"name": "Marin County Library", "email": "facilities@marin.test"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        client_id = resp.json()["data"]["id"]

        resp = client.put(
            f"/api/clients?id={client_id}",
            json={"contact_person": "Jo Park"},
            headers=auth_headers,
        )
        assert resp.json()["data"]["contact_person"] == "Jo Park"

        resp = client.get("/api/clients", headers=auth_headers)
        assert resp.json()["count"] == 1

        resp = client.delete(f"/api/clients?id={client_id}", headers=auth_headers)
        assert resp.status_code == 403

        resp = client.delete(
            f"/api/clients?id={client_id}", headers=headers_for(company_admin)
        )
        assert resp.json()["message"] == "Client deleted"

    def test_missing_name(self, client, auth_headers):
        resp = client.post("/api/clients", json={"email": "x@y.test"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_other_company_gets_404(self, client, auth_headers, outsider, headers_for):
        created = client.post(
            "/api/clients", json={"name": "Acme Schools"}, headers=auth_headers
        ).json()["data"]
        resp = client.get(f"/api/clients?id={created['id']}", headers=headers_for(outsider))
        assert resp.status_code == 404
