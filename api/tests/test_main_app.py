"""
Tests for the application shell: liveness endpoints, request IDs, CLI dry run.
"""
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from conftest import make_image


@pytest.fixture
def client():
    from main import app

    return TestClient(app)


class TestServiceEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root_lists_composition_endpoints(self, client):
        data = client.get("/").json()

        assert data["endpoints"]["compose"] == "/api/composition/compose"

    @pytest.mark.parametrize(
        "path", ["/api/composition/compose", "/api/composition/compose-upload", "/api/composition/locate"]
    )
    def test_composition_routes_are_mounted(self, client, path):
        # An empty body fails validation on a mounted route instead of 404
        response = client.post(path)

        assert response.status_code == 422


class TestRequestId:
    def test_generated_when_absent(self, client):
        response = client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 8

    def test_caller_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "trace-123"})

        assert response.headers["X-Request-ID"] == "trace-123"


class TestComposeSceneScript:
    @pytest.mark.asyncio
    async def test_dry_run_writes_marked_scene(self, tmp_path):
        from scripts.compose_scene import main

        product_path = tmp_path / "tile.png"
        scene_path = tmp_path / "room.jpg"
        product_path.write_bytes(make_image(100, 100, format="PNG").data)
        scene_path.write_bytes(make_image(1600, 900).data)

        exit_code = await main(
            [str(product_path), str(scene_path), "oak parquet", "--x", "50", "--y", "50",
             "--dry-run", "--output-dir", str(tmp_path / "out")]
        )

        assert exit_code == 0
        marked = Image.open(tmp_path / "out" / "room_marked.jpg")
        assert marked.size == (1024, 1024)
        r, g, b = marked.convert("RGB").getpixel((512, 512))
        assert r > 200 and g < 80 and b < 80

    @pytest.mark.asyncio
    async def test_bad_input_returns_non_zero(self, tmp_path):
        from scripts.compose_scene import main

        product_path = tmp_path / "tile.png"
        product_path.write_bytes(b"not an image")

        exit_code = await main([str(product_path), str(product_path), "oak", "--x", "50", "--y", "50", "--dry-run"])

        assert exit_code == 1
