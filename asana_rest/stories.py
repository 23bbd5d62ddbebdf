#!/usr/bin/env python3
"""
Asana Story Operations

Stories are the comments and activity entries attached to a task.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

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
from .models import Story

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class CreateStoryRequest:
    """New comment on a task; task_id selects the task and is not sent in the body."""

    task_id: str = field(default="", metadata={"wire": False})
    text: str = ""
    html_text: str = ""
    is_pinned: bool = False
    sticker_name: str = ""


@with_api_error_handling("creating story for task {story_request.task_id}")
def create_story(
    story_request: CreateStoryRequest, client: Optional[AsanaTransport] = None
) -> Story:
    """
    Add a story (comment) to a task.

    Raises:
        AsanaValidationError: If the task id is blank or there is no text
    """
    if story_request is None:
        raise AsanaValidationError("expecting a non-nil story request")
    task_gid = require_gid(story_request.task_id, "taskID")
    if not (story_request.text or story_request.html_text):
        raise AsanaValidationError("expecting text or html_text for the story")

    client = client or get_client()
    body, _ = client.authenticated_request(
        "POST",
        client.build_url(f"/tasks/{task_gid}/stories"),
        body=encode_json_body(to_wire_dict(story_request)),
        headers={"Content-Type": "application/json"},
    )
    story = unwrap_single(body, Story.from_dict, "story")
    logger.info(f"Created story {story.gid} on task {task_gid}")
    return story
