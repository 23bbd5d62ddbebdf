#!/usr/bin/env python3
"""
Asana Workspace Operations
"""

import logging
from typing import List, Optional, Tuple

from .infrastructure import (
    AsanaTransport,
    get_client,
    require_gid,
    unwrap_single,
    with_api_error_handling,
)
from .models import Workspace
from .pagination import PageStream, PageToken, decode_page, paginate, with_opt_fields

# Configure logging
logger = logging.getLogger(__name__)

WORKSPACE_OPT_FIELDS = (
    "name",
    "email_domains",
    "is_organization",
)


def decode_workspaces_page(body: bytes) -> Tuple[List[Workspace], Optional[PageToken]]:
    """Decode one page of workspaces."""
    return decode_page(body, Workspace.from_dict)


def list_my_workspaces(client: Optional[AsanaTransport] = None) -> PageStream:
    """
    Stream pages of the workspaces the authenticated user belongs to.

    Example:
        for page in list_my_workspaces():
            page.raise_for_error()
            for ws in page.items:
                print(f"{ws.name}: {ws.gid}")
    """
    return paginate(
        client or get_client(), "/workspaces", decode_workspaces_page, WORKSPACE_OPT_FIELDS
    )


@with_api_error_handling("fetching workspace {workspace_gid}")
def get_workspace(workspace_gid: str, client: Optional[AsanaTransport] = None) -> Workspace:
    """
    Fetch a single workspace by GID.

    Raises:
        AsanaValidationError: If workspace_gid is blank
        ResourceNotFoundError: If the API returns no workspace data
    """
    workspace_gid = require_gid(workspace_gid, "workspaceID")
    client = client or get_client()

    url = client.build_url(with_opt_fields(f"/workspaces/{workspace_gid}", WORKSPACE_OPT_FIELDS))
    body, _ = client.authenticated_request("GET", url)
    return unwrap_single(body, Workspace.from_dict, "workspace", workspace_gid)
