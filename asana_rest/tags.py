#!/usr/bin/env python3
"""
Asana Tag Operations

Tag listing (paginated), lookup and creation.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .infrastructure import (
    AsanaTransport,
    encode_query,
    get_client,
    require_gid,
    to_wire_dict,
    unwrap_single,
    with_api_error_handling,
)
from .models import Tag
from .pagination import PageStream, PageToken, decode_page, paginate, with_opt_fields

# Configure logging
logger = logging.getLogger(__name__)

TAG_OPT_FIELDS = (
    "name",
    "color",
    "permalink_url",
    "workspace.name",
)


@dataclass
class CreateTagRequest:
    """New tag, sent form-encoded."""

    name: str = ""
    color: str = ""
    workspace: str = ""


def decode_tags_page(body: bytes) -> Tuple[List[Tag], Optional[PageToken]]:
    """Decode one page of tags."""
    return decode_page(body, Tag.from_dict)


def list_all_tags(client: Optional[AsanaTransport] = None) -> PageStream:
    """Stream pages of every tag visible to the authenticated user."""
    return paginate(client or get_client(), "/tags", decode_tags_page, TAG_OPT_FIELDS)


def list_tags_for_workspace(
    workspace_gid: str, client: Optional[AsanaTransport] = None
) -> PageStream:
    """
    Stream pages of the tags in one workspace.

    Raises:
        AsanaValidationError: If workspace_gid is blank
    """
    workspace_gid = require_gid(workspace_gid, "workspaceID")
    path = f"/workspaces/{workspace_gid}/tags"
    return paginate(client or get_client(), path, decode_tags_page, TAG_OPT_FIELDS)


@with_api_error_handling("fetching tag {tag_gid}")
def get_tag(tag_gid: str, client: Optional[AsanaTransport] = None) -> Tag:
    """
    Fetch a single tag by GID.

    Raises:
        AsanaValidationError: If tag_gid is blank
        ResourceNotFoundError: If the API returns no tag data
    """
    tag_gid = require_gid(tag_gid, "tagID")
    client = client or get_client()

    url = client.build_url(with_opt_fields(f"/tags/{tag_gid}", TAG_OPT_FIELDS))
    body, _ = client.authenticated_request("GET", url)
    return unwrap_single(body, Tag.from_dict, "tag", tag_gid)


@with_api_error_handling("creating tag '{tag_request.name}'")
def create_tag(tag_request: CreateTagRequest, client: Optional[AsanaTransport] = None) -> Tag:
    """
    Create a tag. This endpoint takes url-encoded form data.

    Example:
        tag = create_tag(CreateTagRequest(name='urgent', color='dark-red', workspace='123'))
    """
    client = client or get_client()
    body, _ = client.authenticated_request(
        "POST",
        client.build_url("/tags"),
        body=encode_query(to_wire_dict(tag_request)),
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    tag = unwrap_single(body, Tag.from_dict, "tag")
    logger.info(f"Created tag '{tag.name}' ({tag.gid})")
    return tag
