"""Mapping from Figma file/node responses to Atlassian design entities."""

from datetime import datetime
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from figma_for_jira.clients.figma import FileResponse, Node
from figma_for_jira.domain.entities import (
    AtlassianDesign,
    AtlassianDesignStatus,
    AtlassianDesignType,
    FigmaDesignIdentifier,
)
from figma_for_jira.domain.errors import FigmaDesignNotFoundError

NODE_TYPE_TO_DESIGN_TYPE = {
    "DOCUMENT": AtlassianDesignType.FILE,
    "CANVAS": AtlassianDesignType.CANVAS,
    "SECTION": AtlassianDesignType.GROUP,
    "GROUP": AtlassianDesignType.GROUP,
    "FRAME": AtlassianDesignType.NODE,
}


def build_design_url(web_base_url: str, design_id: FigmaDesignIdentifier) -> str:
    kind = "proto" if design_id.is_prototype else "file"
    url = f"{web_base_url.rstrip('/')}/{kind}/{design_id.file_key}"
    if design_id.node_id:
        url += "?" + urlencode({"node-id": design_id.node_id.replace(":", "-")})
    return url


def build_live_embed_url(web_base_url: str, design_url: str) -> str:
    """See https://www.figma.com/developers/embed"""
    query = urlencode({"embed_host": "atlassian", "url": design_url})
    return f"{web_base_url.rstrip('/')}/embed?{query}"


def build_inspect_url(design_url: str) -> str:
    """Same design, opened in Dev Mode."""
    parts = urlsplit(design_url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k not in ("type", "t", "mode")]
    query.append(("mode", "dev"))
    return urlunsplit(parts._replace(query=urlencode(query)))


def map_node_status(node: Node) -> AtlassianDesignStatus:
    if node.dev_status is None:
        return AtlassianDesignStatus.NONE
    if node.dev_status.type == "READY_FOR_DEV":
        return AtlassianDesignStatus.READY_FOR_DEVELOPMENT
    return AtlassianDesignStatus.UNKNOWN


def map_node_type(node_type: str, is_prototype: bool = False) -> AtlassianDesignType:
    if is_prototype:
        return AtlassianDesignType.PROTOTYPE
    return NODE_TYPE_TO_DESIGN_TYPE.get(node_type, AtlassianDesignType.OTHER)


def find_node(root: Node, node_id: str) -> Node | None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.id == node_id:
            return node
        stack.extend(node.children)
    return None


def parse_update_sequence_number(version: str) -> int:
    try:
        return int(version)
    except ValueError:
        raise ValueError(f"Could not convert file version {version!r} to a sequence number") from None


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def transform_to_atlassian_design(
    design_id: FigmaDesignIdentifier,
    file: FileResponse,
    web_base_url: str,
) -> AtlassianDesign:
    """Build the design entity for a whole file or for one node of it."""
    url = build_design_url(web_base_url, design_id)

    if design_id.node_id is None:
        display_name = file.name
        status = AtlassianDesignStatus.NONE
        design_type = (
            AtlassianDesignType.PROTOTYPE if design_id.is_prototype else AtlassianDesignType.FILE
        )
        last_modified = file.last_modified
    else:
        node = find_node(file.document, design_id.node_id)
        if node is None:
            raise FigmaDesignNotFoundError(str(design_id))
        display_name = node.name
        status = map_node_status(node)
        design_type = map_node_type(node.type, design_id.is_prototype)
        last_modified = node.last_modified or file.last_modified

    return AtlassianDesign(
        id=design_id.to_atlassian_design_id(),
        display_name=display_name,
        url=url,
        live_embed_url=build_live_embed_url(web_base_url, url),
        inspect_url=build_inspect_url(url),
        status=status,
        type=design_type,
        last_updated=_parse_timestamp(last_modified),
        update_sequence_number=parse_update_sequence_number(file.version),
    )
