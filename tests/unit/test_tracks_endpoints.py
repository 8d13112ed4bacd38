"""
Unit tests for the /tracks endpoints.
"""

import pytest
from unittest.mock import AsyncMock, patch
import httpx


class TestTracksEndpoint:
    """Test POST /tracks and GET /tracks"""

    @pytest.fixture(autouse=True)
    def _set_client(self, api_client):
        self.client = api_client
        self.drive_client = api_client.app.state.drive_client

    def _patch_request(self):
        return patch.object(self.drive_client._http_client, 'request', new_callable=AsyncMock)

    def test_post_tracks_success(self, valid_folder_id):
        with self._patch_request() as mock_request:
            mock_request.return_value = httpx.Response(200, json={"files": [
                {"id": "file-one", "name": "Intro.m4a", "mimeType": "audio/mp4"},
            ]})

            response = self.client.post("/tracks", json={"folderId": valid_folder_id})

        assert response.status_code == 200
        assert response.json() == {"tracks": [
            {"id": "file-one", "title": "Intro", "googleDriveFileId": "file-one", "duration": 180},
        ]}
        assert response.headers["access-control-allow-origin"] == "*"

    def test_post_tracks_missing_folder_id(self):
        with self._patch_request() as mock_request:
            response = self.client.post("/tracks", json={})

            assert response.status_code == 400
            assert response.json() == {"error": "Folder ID is required"}
            assert response.headers["access-control-allow-origin"] == "*"
            mock_request.assert_not_called()

    def test_post_tracks_non_json_body(self):
        response = self.client.post("/tracks", content=b"not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Folder ID is required"}

    def test_post_tracks_invalid_folder_id(self):
        response = self.client.post("/tracks", json={"folderId": "abc' in parents or '"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid folder ID format"}

    def test_post_tracks_numeric_folder_id(self):
        with self._patch_request() as mock_request:
            mock_request.return_value = httpx.Response(200, json={"files": []})

            response = self.client.post("/tracks", json={"folderId": 12345})

            assert response.status_code == 200
            assert response.json() == {"tracks": []}
            assert mock_request.call_args[1]["params"]["q"].startswith("'12345' in parents")

    def test_post_tracks_referrer_blocked(self, valid_folder_id):
        with self._patch_request() as mock_request:
            mock_request.return_value = httpx.Response(403, text="API_KEY_HTTP_REFERRER_BLOCKED")

            response = self.client.post("/tracks", json={"folderId": valid_folder_id})

        assert response.status_code == 500
        body = response.json()
        assert body["error"].startswith("API configuration error.")
        assert "hint" in body

    def test_post_tracks_unexpected_error(self, valid_folder_id):
        with self._patch_request() as mock_request:
            mock_request.return_value = httpx.Response(200, text="<html>not json</html>")

            response = self.client.post("/tracks", json={"folderId": valid_folder_id})

        assert response.status_code == 500
        assert "error" in response.json()
        assert response.headers["access-control-allow-origin"] == "*"

    def test_get_tracks_uses_configured_folder(self, valid_folder_id):
        with self._patch_request() as mock_request:
            mock_request.return_value = httpx.Response(200, json={"files": []})

            response = self.client.get("/tracks")

            assert response.status_code == 200
            assert response.json() == {"tracks": []}
            assert valid_folder_id in mock_request.call_args[1]["params"]["q"]


class TestTracksEndpointUnconfigured:

    def test_get_tracks_without_default_folder(self, make_config, drive_env):
        from fastapi.testclient import TestClient
        from drive_backend.main import create_app

        env = dict(drive_env)
        env.pop("GOOGLE_DRIVE_FOLDER_ID")

        with TestClient(create_app(make_config(env))) as client:
            response = client.get("/tracks")

        assert response.status_code == 500
        assert response.json() == {"error": "Folder ID not configured"}

    def test_post_tracks_missing_api_key(self, unconfigured_api_client, valid_folder_id):
        response = unconfigured_api_client.post("/tracks", json={"folderId": valid_folder_id})

        assert response.status_code == 500
        assert response.json() == {"error": "API key not configured"}
