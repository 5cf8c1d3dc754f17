"""Shared helpers for configuration validation."""
