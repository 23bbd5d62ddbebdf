#!/usr/bin/env python3
"""
Asana Custom Field Operations

Workspace custom field listing (paginated), lookup and creation.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import AsanaValidationError
from .infrastructure import (
    AsanaTransport,
    encode_json_body,
    get_client,
    require_gid,
    to_wire_dict,
    unwrap_single,
    with_api_error_handling,
)
from .models import CustomField
from .pagination import PageStream, PageToken, decode_page, paginate, with_opt_fields

# Configure logging
logger = logging.getLogger(__name__)

CUSTOM_FIELD_OPT_FIELDS = (
    "name",
    "resource_subtype",
    "description",
    "enabled",
    "currency_code",
    "custom_label",
    "custom_label_position",
    "enum_options",
    "enum_options.name",
    "enum_options.enabled",
    "enum_options.color",
)


@dataclass
class EnumOptionRequest:
    name: str = ""
    color: str = ""
    enabled: bool = True


@dataclass
class CreateCustomFieldRequest:
    """
    New custom field, sent as a JSON body.

    resource_subtype is one of text, number, enum, multi_enum, date, people.
    """

    name: str = ""
    resource_subtype: str = ""
    workspace: str = ""
    description: str = ""
    currency_code: str = ""
    custom_label: str = ""
    custom_label_position: str = ""
    precision: int = 0
    enabled: bool = False
    enum_options: List[EnumOptionRequest] = field(default_factory=list)


def decode_custom_fields_page(body: bytes) -> Tuple[List[CustomField], Optional[PageToken]]:
    """Decode one page of custom fields."""
    return decode_page(body, CustomField.from_dict)


def list_custom_fields(
    workspace_gid: str, client: Optional[AsanaTransport] = None
) -> PageStream:
    """
    Stream pages of the custom fields defined in a workspace.

    Raises:
        AsanaValidationError: If workspace_gid is blank
    """
    workspace_gid = require_gid(workspace_gid, "workspaceID")
    path = f"/workspaces/{workspace_gid}/custom_fields"
    return paginate(
        client or get_client(), path, decode_custom_fields_page, CUSTOM_FIELD_OPT_FIELDS
    )


@with_api_error_handling("fetching custom field {custom_field_gid}")
def get_custom_field(
    custom_field_gid: str, client: Optional[AsanaTransport] = None
) -> CustomField:
    """
    Fetch a single custom field definition by GID.

    Raises:
        AsanaValidationError: If custom_field_gid is blank
        ResourceNotFoundError: If the API returns no custom field data
    """
    custom_field_gid = require_gid(custom_field_gid, "custom_field")
    client = client or get_client()

    url = client.build_url(
        with_opt_fields(f"/custom_fields/{custom_field_gid}", CUSTOM_FIELD_OPT_FIELDS)
    )
    body, _ = client.authenticated_request("GET", url)
    return unwrap_single(body, CustomField.from_dict, "custom field", custom_field_gid)


@with_api_error_handling("creating custom field '{custom_field_request.name}'")
def create_custom_field(
    custom_field_request: CreateCustomFieldRequest,
    client: Optional[AsanaTransport] = None,
) -> CustomField:
    """
    Create a custom field in a workspace.

    Raises:
        AsanaValidationError: If the workspace GID is blank
    """
    if custom_field_request is None:
        raise AsanaValidationError("expecting a non-nil custom field request")
    require_gid(custom_field_request.workspace, "workspaceID")

    client = client or get_client()
    body, _ = client.authenticated_request(
        "POST",
        client.build_url("/custom_fields"),
        body=encode_json_body(to_wire_dict(custom_field_request)),
        headers={"Content-Type": "application/json"},
    )
    custom_field = unwrap_single(body, CustomField.from_dict, "custom field")
    logger.info(f"Created custom field '{custom_field.name}' ({custom_field.gid})")
    return custom_field
