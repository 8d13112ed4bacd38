"""ASGI middleware for the Drive stream backend."""
