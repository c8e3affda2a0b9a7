"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach real collaborators
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("PROFILE_API_URL", "http://profile-api.test")
os.environ.setdefault("GATEWAY_URL", "http://bot-gateway.test")
os.environ.setdefault("GATEWAY_TOKEN", "gateway-test-token")
