from prometheus_client import REGISTRY

from app.observability import UNMATCHED_ROUTE


def _count(path, status, method="GET"):
    value = REGISTRY.get_sample_value(
        "olumba_http_requests_total",
        {"method": method, "path": path, "status": status},
    )
    return value or 0


class TestObservabilityMiddleware:
    def test_unknown_paths_share_one_label(self, client):
        before = _count(UNMATCHED_ROUTE, "404")
        client.get("/api/nope-1")
        client.get("/api/nope-2")
        assert _count(UNMATCHED_ROUTE, "404") == before + 2
        assert _count("/api/nope-1", "404") == 0

    def test_matched_route_labelled_by_template(self, client, auth_headers, project):
        before = _count("/api/projects", "200")
        client.get(f"/api/projects?id={project.id}", headers=auth_headers)
        assert _count("/api/projects", "200") == before + 1
