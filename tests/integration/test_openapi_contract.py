from fastapi.testclient import TestClient

from bankbot.main import app


client = TestClient(app)


def test_openapi_contains_expected_paths():
    response = client.get("/openapi.json")
    assert response.status_code == 200
    schema = response.json()
    paths = schema.get("paths", {})

    expected = [
        "/chat",
        "/conversations",
        "/conversations/{conversation_id}",
        "/metrics",
        "/health",
    ]

    for path in expected:
        assert path in paths, f"Missing {path} from OpenAPI paths"

    assert "post" in paths["/chat"]
    assert {"get", "delete"} <= set(paths["/conversations/{conversation_id}"])
