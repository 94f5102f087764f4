"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real API keys or databases
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)
os.environ.setdefault("SESSION_SECRET", "test-signing-secret")
os.environ.setdefault("LOG_FORMAT", "text")
