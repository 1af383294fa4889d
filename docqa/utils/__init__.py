"""Shared utilities: structured logging, the error hierarchy, model JSON parsing."""
