"""Tests for class endpoints."""


class TestClassesCrud:
    """Tests for /api/classes."""

    def test_list_empty(self, client):
        response = client.get("/api/classes")
        assert response.status_code == 200
        assert response.json() == {"classes": [], "count": 0}

    def test_create_and_get(self, client):
        response = client.post(
            "/api/classes", json={"name": "Class B", "department": "IT", "year": 1}
        )
        assert response.status_code == 201
        created = response.json()
        assert created["name"] == "Class B"

        fetched = client.get(f"/api/classes/{created['id']}").json()
        assert fetched["department"] == "IT"
        assert client.get("/api/classes").json()["count"] == 1

    def test_create_validates_year(self, client):
        response = client.post("/api/classes", json={"name": "Class C", "year": 42})
        assert response.status_code == 422

    def test_update(self, client, school):
        response = client.patch(f"/api/classes/{school.cls.id}", json={"year": 3})
        assert response.status_code == 200
        assert response.json()["year"] == 3
        assert response.json()["name"] == "Class A"

    def test_update_unknown(self, client):
        assert client.patch("/api/classes/missing", json={"year": 3}).status_code == 404

    def test_delete(self, client, school):
        assert client.delete(f"/api/classes/{school.cls.id}").status_code == 204
        assert client.get(f"/api/classes/{school.cls.id}").status_code == 404
        assert client.delete(f"/api/classes/{school.cls.id}").status_code == 404
