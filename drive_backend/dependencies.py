"""
Dependency injection for the Drive stream backend.

Service objects are built once by the application lifespan and kept on
``app.state``; these providers hand them to the endpoints.
"""

from fastapi import Request

from drive_backend.cors import CorsPolicy
from drive_backend.drive_client import DriveFolderClient
from drive_backend.streaming_proxy import StreamingProxy
from drive_shared.config.config_manager import ConfigManager


def get_config_manager(request: Request) -> ConfigManager:
    """Get the configuration loaded at start-up."""
    return request.app.state.config_manager


def get_cors_policy(request: Request) -> CorsPolicy:
    return request.app.state.cors_policy


def get_streaming_proxy(request: Request) -> StreamingProxy:
    return request.app.state.streaming_proxy


def get_drive_client(request: Request) -> DriveFolderClient:
    return request.app.state.drive_client
