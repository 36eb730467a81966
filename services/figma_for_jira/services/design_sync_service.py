"""Associate and disassociate Figma designs with Jira issues.

Jira's design record is the source of truth. The order of writes is:

1. resolve valid Figma credentials (abort on failure, nothing written);
2. fetch the design and the issue concurrently (a backfilled link builds
   the design from its URL instead);
3. submit the design to Jira (abort on rejection, nothing else written);
4. issue properties and the Figma dev resource, concurrently, best-effort;
5. the local association record.

Step 4 failures are logged and never undo step 3.
"""

import asyncio
from collections.abc import Awaitable
from typing import Any

from figma_for_jira.domain.entities import (
    AssociatedFigmaDesignCreateParams,
    AtlassianAssociation,
    AtlassianDesign,
    ConnectInstallation,
    ConnectUserInfo,
    FigmaDesignIdentifier,
)
from figma_for_jira.logging_config import get_logger
from figma_for_jira.repositories.protocol import AssociatedFigmaDesignRepository
from figma_for_jira.services.figma_backfill import is_design_for_backfill
from figma_for_jira.services.figma_service import FigmaService
from figma_for_jira.services.jira_service import JiraService

logger = get_logger(__name__)


async def _run_best_effort(operations: dict[str, Awaitable[Any]], **log_context: Any) -> None:
    """Run operations concurrently; log each failure without raising."""
    results = await asyncio.gather(*operations.values(), return_exceptions=True)
    for name, result in zip(operations, results, strict=True):
        if isinstance(result, Exception):
            logger.warning(
                "Secondary write failed", operation=name, error=str(result), **log_context
            )


class DesignSyncService:
    def __init__(
        self,
        figma_service: FigmaService,
        jira_service: JiraService,
        associated_designs: AssociatedFigmaDesignRepository,
    ) -> None:
        self._figma_service = figma_service
        self._jira_service = jira_service
        self._associated_designs = associated_designs

    async def associate(
        self,
        design_id: FigmaDesignIdentifier,
        design_url: str,
        issue_ari: str,
        issue_id: str,
        atlassian_user_id: str,
        installation: ConnectInstallation,
    ) -> AtlassianDesign:
        user = ConnectUserInfo(atlassian_user_id, installation.id)
        credentials = await self._figma_service.get_valid_credentials_or_raise(user)

        if is_design_for_backfill(design_url):
            design = self._figma_service.build_minimal_design(design_url)
            issue = await self._jira_service.get_issue(issue_id, installation)
        else:
            design, issue = await asyncio.gather(
                self._figma_service.fetch_design(design_id, credentials),
                self._jira_service.get_issue(issue_id, installation),
            )

        await self._jira_service.submit_design(
            design, installation, add_associations=[AtlassianAssociation.for_issue(issue_ari)]
        )

        await _run_best_effort(
            {
                "save_issue_properties": self._jira_service.save_design_url_in_issue_properties(
                    issue.id, design, installation
                ),
                "create_dev_resource": self._figma_service.try_create_dev_resource_for_jira_issue(
                    design_id,
                    issue_url=self._jira_service.build_issue_url(issue, installation),
                    issue_title=issue.summary,
                    credentials=credentials,
                ),
            },
            design_id=design.id,
            issue_key=issue.key,
        )

        await self._associated_designs.upsert(
            AssociatedFigmaDesignCreateParams(
                design_id=design_id,
                associated_with_ari=issue_ari,
                connect_installation_id=installation.id,
            )
        )
        logger.info("Associated design", design_id=design.id, issue_key=issue.key)
        return design

    async def disassociate(
        self,
        design_id: FigmaDesignIdentifier,
        issue_ari: str,
        issue_id: str,
        atlassian_user_id: str,
        installation: ConnectInstallation,
    ) -> AtlassianDesign:
        user = ConnectUserInfo(atlassian_user_id, installation.id)
        credentials = await self._figma_service.get_valid_credentials_or_raise(user)

        design, issue = await asyncio.gather(
            self._figma_service.fetch_design(design_id, credentials),
            self._jira_service.get_issue(issue_id, installation),
        )

        await self._jira_service.submit_design(
            design, installation, remove_associations=[AtlassianAssociation.for_issue(issue_ari)]
        )

        await _run_best_effort(
            {
                "delete_issue_properties": self._jira_service.delete_design_url_in_issue_properties(
                    issue.id, design, installation
                ),
                "delete_dev_resource": self._figma_service.try_delete_dev_resource(
                    design_id,
                    dev_resource_url=self._jira_service.build_issue_url(issue, installation),
                    credentials=credentials,
                ),
            },
            design_id=design.id,
            issue_key=issue.key,
        )

        await self._associated_designs.delete_by_design_id_and_installation_id(
            design_id, issue_ari, installation.id
        )
        logger.info("Disassociated design", design_id=design.id, issue_key=issue.key)
        return design
