#!/usr/bin/env python3
"""
Asana Task Operations

Task listing (paginated), search, lookup, creation and deletion.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from .infrastructure import (
    AsanaTransport,
    encode_json_body,
    encode_query,
    get_client,
    require_gid,
    to_wire_dict,
    unwrap_single,
    with_api_error_handling,
)
from .errors import AsanaValidationError
from .models import AssigneeStatus, DueDate, Task
from .pagination import PageStream, PageToken, decode_page, paginate, with_opt_fields

# Configure logging
logger = logging.getLogger(__name__)

ME = "me"
DEFAULT_TASK_LIMIT = 20

TASK_OPT_FIELDS = (
    "name",
    "assignee",
    "created_at",
    "completed",
    "completed_at",
    "assignee_status",
    "custom_fields",
    "due_on",
    "due_at",
    "external",
    "followers.name",
    "followers.email",
    "hearted",
    "hearts",
    "num_hearts",
    "modified_at",
    "tags.name",
    "tags.color",
    "projects.name",
    "projects.custom_fields",
)

# Filters that only make sense on a list query, never in a create body
_QUERY_ONLY_FIELDS = ("limit", "offset", "completed_since", "modified_since")


@dataclass
class TaskRequest:
    """
    Caller-built description of a task query or a task to create.

    Used as the query string for list calls and as the JSON body for
    create_task. Unset fields are omitted and read-only fields (num_hearts)
    are never sent.
    """

    name: Optional[str] = None
    notes: Optional[str] = None
    assignee: Optional[str] = None
    assignee_status: Optional[AssigneeStatus] = None
    project: Optional[str] = None
    projects: List[str] = field(default_factory=list)
    workspace: Optional[str] = None
    parent: Optional[str] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    due_on: Optional[DueDate] = None
    due_at: Optional[datetime] = None
    custom_fields: Dict[str, Any] = field(default_factory=dict)
    external: Dict[str, Any] = field(default_factory=dict)
    followers: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    hearted: bool = False
    num_hearts: Optional[int] = None
    limit: int = 0
    offset: Optional[str] = None
    completed_since: Optional[str] = None
    modified_since: Optional[str] = None

    def with_defaults(self) -> "TaskRequest":
        """Return a copy with the default page size filled in."""
        if self.limit > 0:
            return replace(self)
        return replace(self, limit=DEFAULT_TASK_LIMIT)

    def to_query(self) -> str:
        return encode_query(to_wire_dict(self))

    def to_create_body(self) -> str:
        return encode_json_body(to_wire_dict(self, exclude=_QUERY_ONLY_FIELDS))


class SearchRequest:
    """
    Chainable builder for workspace task search filters.

    Constraints are kept in insertion order; setting the same key again
    overrides the earlier value.

    Example:
        search = (SearchRequest()
            .with_field('text', 'invoice')
            .with_custom_field_is_set('12345', True)
            .with_custom_field_greater('67890', 10))
        stream = search_tasks('workspace_gid', search)
    """

    def __init__(self):
        self.fields: "OrderedDict[str, str]" = OrderedDict()

    def _set(self, key: str, value: str) -> "SearchRequest":
        self.fields[key] = value
        return self

    def with_field(self, key: str, value: str) -> "SearchRequest":
        return self._set(key, value)

    def with_custom_field_is_set(self, field_gid: str, value: bool) -> "SearchRequest":
        return self._set(f"custom_fields.{field_gid}.is_set", "true" if value else "false")

    def with_custom_field_value(self, field_gid: str, value: Any) -> "SearchRequest":
        return self._set(f"custom_fields.{field_gid}.value", str(value))

    def with_custom_field_starts(self, field_gid: str, value: str) -> "SearchRequest":
        return self._set(f"custom_fields.{field_gid}.starts_with", value)

    def with_custom_field_ends(self, field_gid: str, value: str) -> "SearchRequest":
        return self._set(f"custom_fields.{field_gid}.ends_with", value)

    def with_custom_field_contains(self, field_gid: str, value: str) -> "SearchRequest":
        return self._set(f"custom_fields.{field_gid}.contains", value)

    def with_custom_field_less(self, field_gid: str, value: float) -> "SearchRequest":
        return self._set(f"custom_fields.{field_gid}.less_than", f"{value:f}")

    def with_custom_field_greater(self, field_gid: str, value: float) -> "SearchRequest":
        return self._set(f"custom_fields.{field_gid}.greater_than", f"{value:f}")

    def to_query(self) -> str:
        return encode_query(self.fields)


def decode_tasks_page(body: bytes) -> Tuple[List[Task], Optional[PageToken]]:
    """Decode one page of tasks."""
    return decode_page(body, Task.from_dict)


# ============================================================================
# Paginated listings
# ============================================================================

def list_my_tasks(
    task_request: Optional[TaskRequest] = None,
    client: Optional[AsanaTransport] = None,
) -> PageStream:
    """
    Stream pages of tasks assigned to the authenticated user.

    Args:
        task_request: Optional extra filters (workspace, completed_since, limit...)
        client: Transport to use instead of the shared one

    Returns:
        PageStream of Task pages
    """
    request = replace(task_request) if task_request else TaskRequest()
    request.assignee = ME
    request = request.with_defaults()

    path = f"/tasks?{request.to_query()}"
    return paginate(client or get_client(), path, decode_tasks_page, TASK_OPT_FIELDS)


def list_all_my_tasks(client: Optional[AsanaTransport] = None) -> PageStream:
    """Stream every task assigned to the authenticated user."""
    return list_my_tasks(None, client=client)


def list_tasks_for_project(
    project: Union[str, TaskRequest],
    client: Optional[AsanaTransport] = None,
) -> PageStream:
    """
    Stream pages of tasks in a project.

    Args:
        project: Project GID, or a TaskRequest whose project is set
        client: Transport to use instead of the shared one

    Raises:
        AsanaValidationError: If the project GID is blank
    """
    project_gid = project.project if isinstance(project, TaskRequest) else project
    project_gid = require_gid(project_gid, "projectID")

    path = f"/projects/{project_gid}/tasks"
    return paginate(client or get_client(), path, decode_tasks_page, TASK_OPT_FIELDS)


def search_tasks(
    workspace_gid: str,
    search_request: Optional[SearchRequest] = None,
    client: Optional[AsanaTransport] = None,
) -> PageStream:
    """
    Stream pages of tasks matching search filters in a workspace.

    Raises:
        AsanaValidationError: If the workspace GID is blank
    """
    workspace_gid = require_gid(workspace_gid, "workspaceID")
    search_request = search_request or SearchRequest()

    path = f"/workspaces/{workspace_gid}/tasks/search"
    query = search_request.to_query()
    if query:
        path = f"{path}?{query}"

    logger.debug(f"Searching tasks: {path}")
    return paginate(client or get_client(), path, decode_tasks_page, TASK_OPT_FIELDS)


# ============================================================================
# Single-item operations
# ============================================================================

@with_api_error_handling("fetching task {task_gid}")
def get_task(task_gid: str, client: Optional[AsanaTransport] = None) -> Task:
    """
    Fetch a single task by GID.

    Raises:
        AsanaValidationError: If task_gid is blank
        ResourceNotFoundError: If the API returns no task data
    """
    task_gid = require_gid(task_gid, "taskID")
    client = client or get_client()

    url = client.build_url(with_opt_fields(f"/tasks/{task_gid}", TASK_OPT_FIELDS))
    body, _ = client.authenticated_request("GET", url)
    return unwrap_single(body, Task.from_dict, "task", task_gid)


@with_api_error_handling("creating task")
def create_task(task_request: TaskRequest, client: Optional[AsanaTransport] = None) -> Task:
    """
    Create a task from a TaskRequest.

    One of workspace, projects or parent must be set so Asana knows where
    the task lives.

    Example:
        task = create_task(TaskRequest(name='Fix bug', projects=['1234567890']))
    """
    if task_request is None:
        raise AsanaValidationError("expecting a non-nil task request")
    if not (task_request.workspace or task_request.projects or task_request.parent):
        raise AsanaValidationError("expecting a workspace, projects or parent for the new task")

    client = client or get_client()
    body, _ = client.authenticated_request(
        "POST",
        client.build_url("/tasks"),
        body=task_request.to_create_body(),
        headers={"Content-Type": "application/json"},
    )
    task = unwrap_single(body, Task.from_dict, "task")
    logger.info(f"Created task '{task.name}' ({task.gid})")
    return task


@with_api_error_handling("deleting task {task_gid}")
def delete_task(task_gid: str, client: Optional[AsanaTransport] = None) -> None:
    """
    Delete a task.

    Raises:
        AsanaValidationError: If task_gid is blank
    """
    task_gid = require_gid(task_gid, "taskID")
    client = client or get_client()

    client.authenticated_request("DELETE", client.build_url(f"/tasks/{task_gid}"))
    logger.info(f"Deleted task {task_gid}")
