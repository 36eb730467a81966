"""
Top-level test configuration for Figma for Jira.
"""

import os
import uuid
from datetime import UTC, datetime

import pytest

# Ensure test-friendly defaults
os.environ.setdefault("FIGMA_FOR_JIRA_JSON_LOGS", "false")
os.environ.setdefault("FIGMA_FOR_JIRA_LOG_LEVEL", "DEBUG")
os.environ.setdefault("FIGMA_FOR_JIRA_APP__BASE_URL", "https://figma-for-jira.test")
os.environ.setdefault("FIGMA_FOR_JIRA_FIGMA__OAUTH2__CLIENT_ID", "test-client-id")
os.environ.setdefault("FIGMA_FOR_JIRA_FIGMA__OAUTH2__CLIENT_SECRET", "test-client-secret")
os.environ.setdefault(
    "FIGMA_FOR_JIRA_FIGMA__OAUTH2__STATE_SECRET_KEY", "test-state-secret-0123456789abcdef"
)

from figma_for_jira.domain.entities import ConnectInstallation  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def installation() -> ConnectInstallation:
    return ConnectInstallation(
        id=uuid.UUID("01890000-0000-7000-8000-000000000001"),
        key="com.figma.jira-addon",
        client_key="client-key-1",
        shared_secret="shared-secret-0123456789abcdef0123",
        base_url="https://example.atlassian.net",
        display_url="https://example.atlassian.net",
    )
