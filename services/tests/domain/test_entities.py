"""Tests for domain entities."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from figma_for_jira.domain.entities import (
    AtlassianAssociation,
    ConnectInstallation,
    FigmaDesignIdentifier,
    FigmaOAuth2UserCredentials,
)
from figma_for_jira.domain.errors import InvalidInputError


class TestFigmaDesignIdentifier:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.figma.com/file/abc123/Title", FigmaDesignIdentifier("abc123")),
            (
                "https://www.figma.com/file/abc123/Title?node-id=1-2",
                FigmaDesignIdentifier("abc123", "1:2"),
            ),
            (
                "https://www.figma.com/design/abc123/Title?node-id=10%3A20&t=x",
                FigmaDesignIdentifier("abc123", "10:20"),
            ),
            (
                "https://figma.com/proto/abc123",
                FigmaDesignIdentifier("abc123", is_prototype=True),
            ),
            (
                "https://www.figma.com/proto/abc123/Flow?node-id=3-4",
                FigmaDesignIdentifier("abc123", "3:4", is_prototype=True),
            ),
            (
                "https://www.figma.com/file/abc123?node-id=1-2",
                FigmaDesignIdentifier("abc123", "1:2"),
            ),
        ],
    )
    def test_from_figma_design_url(self, url, expected):
        assert FigmaDesignIdentifier.from_figma_design_url(url) == expected

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.example.com/file/abc123",
            "http://www.figma.com/file/abc123",
            "https://www.figma.com/community/file/abc123",
            "not a url",
        ],
    )
    def test_rejects_other_urls(self, url):
        with pytest.raises(InvalidInputError):
            FigmaDesignIdentifier.from_figma_design_url(url)

    def test_atlassian_design_id(self):
        assert FigmaDesignIdentifier("abc").to_atlassian_design_id() == "abc"
        assert FigmaDesignIdentifier("abc", "1:2").to_atlassian_design_id() == "abc/1:2"

    def test_from_atlassian_design_id(self):
        assert FigmaDesignIdentifier.from_atlassian_design_id("abc/1:2") == (
            FigmaDesignIdentifier("abc", "1:2")
        )
        assert FigmaDesignIdentifier.from_atlassian_design_id("abc") == FigmaDesignIdentifier("abc")

    def test_empty_design_id(self):
        with pytest.raises(InvalidInputError):
            FigmaDesignIdentifier.from_atlassian_design_id("/1:2")

    def test_node_id_or_default(self):
        assert FigmaDesignIdentifier("abc").node_id_or_default == "0:0"
        assert FigmaDesignIdentifier("abc", "1:2").node_id_or_default == "1:2"


class TestCredentialsExpiry:
    def test_expired_at_boundary(self):
        expires_at = datetime(2026, 1, 1, tzinfo=UTC)
        credentials = FigmaOAuth2UserCredentials(
            id=uuid.uuid4(),
            atlassian_user_id="u",
            access_token="figd_access_value",
            refresh_token="figd_refresh_value",
            expires_at=expires_at,
            connect_installation_id=uuid.uuid4(),
        )

        assert credentials.is_expired(expires_at) is True
        assert credentials.is_expired(expires_at - timedelta(seconds=1)) is False
        assert "figd_" not in repr(credentials)


class TestConnectInstallation:
    def test_shared_secret_not_in_repr(self, installation: ConnectInstallation):
        assert installation.shared_secret not in repr(installation)


class TestAtlassianAssociation:
    def test_for_issue(self):
        association = AtlassianAssociation.for_issue("ari:cloud:jira:site:issue/1")
        assert association.association_type == "issue-has-design"
        assert association.values == ["ari:cloud:jira:site:issue/1"]
