#!/usr/bin/env python3
"""
Asana REST - Python client for the Asana REST API

Typed function calls in, authenticated HTTP requests out. List endpoints are
streamed page by page from a background worker; everything else is a single
synchronous request.

Usage:
    from asana_rest import (
        # Configuration
        get_config,
        get_client,

        # Tasks
        list_my_tasks,
        list_tasks_for_project,
        search_tasks,
        get_task,
        create_task,
        delete_task,
        TaskRequest,
        SearchRequest,

        # Tags, custom fields, users, workspaces
        list_all_tags,
        list_custom_fields,
        list_all_users,
        list_my_workspaces,

        # Attachments
        upload_attachment,
        AttachmentUpload,
    )

    for page in list_tasks_for_project('1234567890'):
        page.raise_for_error()
        for task in page.items:
            print(task.name)

Configuration:
    ASANA_ACCESS_TOKEN     Personal access token (required)
    ASANA_BASE_URL         API root, defaults to https://app.asana.com/api/1.0
    ASANA_REQUEST_TIMEOUT  Per-request timeout in seconds, defaults to 30

    config = get_config()
    config.set_alert_callback(my_alert_handler)
"""

# Error classes
from .errors import (
    AsanaClientError,
    AsanaValidationError,
    AsanaTransportError,
    AsanaHTTPError,
    AsanaBadRequestError,
    AsanaAuthenticationError,
    AsanaNotFoundError,
    AsanaRateLimitError,
    AsanaServerError,
    AsanaDecodeError,
    ResourceNotFoundError,
)

# Infrastructure
from .infrastructure import (
    DEFAULT_BASE_URL,
    READ_ONLY_FIELDS,
    AsanaClientConfig,
    AsanaTransport,
    get_config,
    get_client,
    reset_client,
    raise_alert,
    with_api_error_handling,
)

# Resource records
from .models import (
    DueDate,
    AssigneeStatus,
    NamedEntity,
    Membership,
    Workspace,
    User,
    EnumOption,
    CustomField,
    CustomFieldSettings,
    Project,
    Tag,
    Task,
    Attachment,
    Story,
)

# Pagination
from .pagination import (
    Page,
    PageToken,
    PageStream,
    paginate,
)

# Task operations
from .tasks import (
    TaskRequest,
    SearchRequest,
    list_my_tasks,
    list_all_my_tasks,
    list_tasks_for_project,
    search_tasks,
    get_task,
    create_task,
    delete_task,
)

# Tag operations
from .tags import (
    CreateTagRequest,
    list_all_tags,
    list_tags_for_workspace,
    get_tag,
    create_tag,
)

# Custom fields
from .custom_fields import (
    EnumOptionRequest,
    CreateCustomFieldRequest,
    list_custom_fields,
    get_custom_field,
    create_custom_field,
)

# Stories
from .stories import (
    CreateStoryRequest,
    create_story,
)

# User/Workspace operations
from .users import (
    list_all_users,
    get_user,
)
from .workspaces import (
    list_my_workspaces,
    get_workspace,
)

# Attachment operations
from .attachments import (
    AttachmentUpload,
    detect_content_type,
    upload_attachment,
    get_attachment,
    list_attachments_for_task,
)

__all__ = [
    # Errors
    "AsanaClientError",
    "AsanaValidationError",
    "AsanaTransportError",
    "AsanaHTTPError",
    "AsanaBadRequestError",
    "AsanaAuthenticationError",
    "AsanaNotFoundError",
    "AsanaRateLimitError",
    "AsanaServerError",
    "AsanaDecodeError",
    "ResourceNotFoundError",
    # Infrastructure
    "DEFAULT_BASE_URL",
    "READ_ONLY_FIELDS",
    "AsanaClientConfig",
    "AsanaTransport",
    "get_config",
    "get_client",
    "reset_client",
    "raise_alert",
    "with_api_error_handling",
    # Records
    "DueDate",
    "AssigneeStatus",
    "NamedEntity",
    "Membership",
    "Workspace",
    "User",
    "EnumOption",
    "CustomField",
    "CustomFieldSettings",
    "Project",
    "Tag",
    "Task",
    "Attachment",
    "Story",
    # Pagination
    "Page",
    "PageToken",
    "PageStream",
    "paginate",
    # Tasks
    "TaskRequest",
    "SearchRequest",
    "list_my_tasks",
    "list_all_my_tasks",
    "list_tasks_for_project",
    "search_tasks",
    "get_task",
    "create_task",
    "delete_task",
    # Tags
    "CreateTagRequest",
    "list_all_tags",
    "list_tags_for_workspace",
    "get_tag",
    "create_tag",
    # Custom fields
    "EnumOptionRequest",
    "CreateCustomFieldRequest",
    "list_custom_fields",
    "get_custom_field",
    "create_custom_field",
    # Stories
    "CreateStoryRequest",
    "create_story",
    # Users/Workspaces
    "list_all_users",
    "get_user",
    "list_my_workspaces",
    "get_workspace",
    # Attachments
    "AttachmentUpload",
    "detect_content_type",
    "upload_attachment",
    "get_attachment",
    "list_attachments_for_task",
]

__version__ = "1.0.0"
