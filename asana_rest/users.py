#!/usr/bin/env python3
"""
Asana User Operations
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
from .models import User
from .pagination import PageStream, PageToken, decode_page, paginate, with_opt_fields

# Configure logging
logger = logging.getLogger(__name__)

USER_OPT_FIELDS = (
    "name",
    "email",
    "photo",
    "workspaces.name",
)


def decode_users_page(body: bytes) -> Tuple[List[User], Optional[PageToken]]:
    """Decode one page of users."""
    return decode_page(body, User.from_dict)


def list_all_users(client: Optional[AsanaTransport] = None) -> PageStream:
    """Stream pages of every user visible to the authenticated user."""
    return paginate(client or get_client(), "/users", decode_users_page, USER_OPT_FIELDS)


@with_api_error_handling("fetching user {user_gid}")
def get_user(user_gid: str, client: Optional[AsanaTransport] = None) -> User:
    """
    Fetch a single user by GID, email, or "me".

    Raises:
        AsanaValidationError: If user_gid is blank
        ResourceNotFoundError: If the API returns no user data
    """
    user_gid = require_gid(user_gid, "userID")
    client = client or get_client()

    url = client.build_url(with_opt_fields(f"/users/{user_gid}", USER_OPT_FIELDS))
    body, _ = client.authenticated_request("GET", url)
    return unwrap_single(body, User.from_dict, "user", user_gid)
