"""
Centralized test configuration and fixtures for the Drive stream backend.

This module provides shared test fixtures that:
1. Build ConfigManager instances from an isolated environment
2. Provide fake upstream Drive responses with controllable byte streams
3. Provide a FastAPI TestClient running the real application lifespan
"""

import os
import logging
from typing import Dict, Iterable, Optional
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from drive_backend.main import create_app
from drive_shared.config.config_manager import ConfigManager

# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DRIVE_BASE_URL = "https://drive.test/drive/v3/files"
TEST_API_KEY = "test-drive-api-key"
VALID_FILE_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz_-09"
VALID_FOLDER_ID = "1JZuhm773M0BXi1TDnumkzFXzi-NZ_U1W"


class ChunkStream(httpx.AsyncByteStream):
    """Upstream body that yields fixed chunks and records whether it was closed."""

    def __init__(self, chunks: Iterable[bytes]):
        self.chunks = list(chunks)
        self.yielded = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.yielded += 1
            yield chunk

    async def aclose(self):
        self.closed = True


def make_upstream_response(
    status_code: int,
    headers: Optional[Dict[str, str]] = None,
    chunks: Iterable[bytes] = (),
) -> httpx.Response:
    """Streaming httpx response as returned by AsyncClient.send(..., stream=True)."""
    return httpx.Response(
        status_code,
        headers=headers or {},
        stream=ChunkStream(chunks),
        request=httpx.Request("GET", f"{DRIVE_BASE_URL}/{VALID_FILE_ID}"),
    )


@pytest.fixture
def drive_env() -> Dict[str, str]:
    """Environment of a fully configured deployment."""
    return {
        "GOOGLE_DRIVE_API_KEY": TEST_API_KEY,
        "DRIVE_API_BASE_URL": DRIVE_BASE_URL,
        "UPSTREAM_TIMEOUT": "5",
        "STREAM_CHUNK_SIZE": "6",
        "GOOGLE_DRIVE_FOLDER_ID": VALID_FOLDER_ID,
    }


@pytest.fixture
def make_config(tmp_path):
    """Factory building a ConfigManager from exactly the given environment."""
    def _make(env: Dict[str, str]) -> ConfigManager:
        with patch.dict(os.environ, env, clear=True):
            return ConfigManager(config_dir=str(tmp_path))
    return _make


@pytest.fixture
def config_manager(make_config, drive_env) -> ConfigManager:
    return make_config(drive_env)


@pytest.fixture
def unconfigured_config_manager(make_config, drive_env) -> ConfigManager:
    """Same deployment with the Drive API key missing."""
    env = dict(drive_env)
    env.pop("GOOGLE_DRIVE_API_KEY")
    return make_config(env)


@pytest.fixture
def api_client(config_manager):
    """FastAPI TestClient running the application lifespan."""
    with TestClient(create_app(config_manager)) as client:
        yield client


@pytest.fixture
def unconfigured_api_client(unconfigured_config_manager):
    with TestClient(create_app(unconfigured_config_manager)) as client:
        yield client


@pytest.fixture
def upstream_factory():
    """Factory for fake upstream Drive responses."""
    return make_upstream_response


@pytest.fixture
def valid_file_id() -> str:
    return VALID_FILE_ID


@pytest.fixture
def valid_folder_id() -> str:
    return VALID_FOLDER_ID
