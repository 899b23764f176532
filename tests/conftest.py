"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set here, before anything imports
``governor.core.config``, so the settings singleton is built for tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("DATASTORE_PROVIDER", "memory")
# Keep the persisted snapshot slot out of the working tree during tests
os.environ.setdefault("GOVERNOR_SNAPSHOT_PATH", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")
