"""Designs that Jira re-associates while backfilling existing links.

Jira marks such links with ``com.atlassian.designs.backfill=true``. They are
submitted from the URL alone, without calling the Figma API, so that a
backfill of many issues does not depend on each user's Figma credentials.
"""

from datetime import UTC, datetime
from urllib.parse import parse_qs, unquote, urlsplit

from figma_for_jira.domain.entities import (
    AtlassianDesign,
    AtlassianDesignStatus,
    AtlassianDesignType,
    FigmaDesignIdentifier,
)
from figma_for_jira.services.figma_transformer import (
    build_design_url,
    build_inspect_url,
    build_live_embed_url,
)

BACKFILL_QUERY_PARAM = "com.atlassian.designs.backfill"
UNTITLED_DESIGN_NAME = "Untitled"


def is_design_for_backfill(url: str) -> bool:
    return parse_qs(urlsplit(url).query).get(BACKFILL_QUERY_PARAM) == ["true"]


def _display_name_from_url(url: str) -> str:
    # /{file|proto|design}/{key}/{name}
    segments = urlsplit(url).path.split("/")
    if len(segments) < 4 or not segments[3]:
        return UNTITLED_DESIGN_NAME
    return unquote(segments[3].replace("-", " "))


def build_minimal_design_from_url(url: str, web_base_url: str) -> AtlassianDesign:
    design_id = FigmaDesignIdentifier.from_figma_design_url(url)
    design_url = build_design_url(web_base_url, design_id)

    if design_id.is_prototype:
        design_type = AtlassianDesignType.PROTOTYPE
    elif design_id.node_id is None:
        design_type = AtlassianDesignType.FILE
    else:
        design_type = AtlassianDesignType.NODE

    return AtlassianDesign(
        id=design_id.to_atlassian_design_id(),
        display_name=_display_name_from_url(url),
        url=design_url,
        live_embed_url=build_live_embed_url(web_base_url, design_url),
        inspect_url=build_inspect_url(design_url),
        status=AtlassianDesignStatus.UNKNOWN,
        type=design_type,
        last_updated=datetime.fromtimestamp(0, tz=UTC),
        update_sequence_number=0,
    )
