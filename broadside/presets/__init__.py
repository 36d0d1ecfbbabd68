"""Versioned import/export payloads for AI configuration."""
