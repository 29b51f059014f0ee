"""Concurrent stress tests for a session provisioning API."""
