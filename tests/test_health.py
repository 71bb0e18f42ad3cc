from fastapi.testclient import TestClient
from app.core.config import PROJECT_NAME


def test_health_endpoint():
    """Test health endpoint"""
    from app.main import app

    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["app_name"] == PROJECT_NAME
