"""Shared configuration and models for the Drive stream backend."""
