#!/usr/bin/env python3
"""
Asana Resource Records

Immutable records decoded from API JSON. Every record is built once by
from_dict() from a single JSON object and never mutated afterwards.
Identity is the string gid assigned by Asana.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

T = TypeVar("T")


# ============================================================================
# Decoding helpers
# ============================================================================

def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an Asana ISO-8601 timestamp (trailing Z allowed)."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _one(data: Dict[str, Any], key: str, factory: Callable[[Dict[str, Any]], T]) -> Optional[T]:
    value = data.get(key)
    if not value:
        return None
    return factory(value)


def _many(data: Dict[str, Any], key: str, factory: Callable[[Dict[str, Any]], T]) -> Tuple[T, ...]:
    return tuple(factory(item) for item in data.get(key) or [] if item)


def _gid(data: Dict[str, Any]) -> str:
    # Older payloads carried a numeric id alongside gid
    return str(data.get("gid") or data.get("id") or "")


# ============================================================================
# Value types
# ============================================================================

@dataclass(frozen=True)
class DueDate:
    """
    A calendar date in Asana's YYYY-MM-DD form.

    The text form is computed once at construction and is zero-padded, so
    DueDate.parse("2012-03-26") formats back to "2012-03-26".
    """

    year: int
    month: int
    day: int
    text: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "text", f"{self.year:04d}-{self.month:02d}-{self.day:02d}")

    @classmethod
    def parse(cls, value: str) -> "DueDate":
        """
        Parse YYYY-MM-DD.

        Raises:
            ValueError: If there are fewer than three parts or a part is not an integer
        """
        parts = value.strip().split("-")
        if len(parts) < 3:
            raise ValueError(f"expecting YYYY-MM-DD, got {value!r}")
        year, month, day = (int(part) for part in parts[:3])
        return cls(year, month, day)

    def to_wire(self) -> str:
        return self.text

    def __str__(self) -> str:
        return self.text


class AssigneeStatus(str, Enum):
    """Scheduling bucket of a task in its assignee's My Tasks list."""

    INBOX = "inbox"
    LATER = "later"
    TODAY = "today"
    UPCOMING = "upcoming"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Union["AssigneeStatus", str]:
        """
        Map an API value to a status, defaulting to inbox when unset.

        Values outside the known buckets (e.g. "new") are kept as plain strings.
        """
        if not value:
            return cls.INBOX
        try:
            return cls(value)
        except ValueError:
            return value

    def __str__(self) -> str:
        return self.value


# ============================================================================
# Resource records
# ============================================================================

@dataclass(frozen=True)
class NamedEntity:
    """Compact reference to another resource: gid plus display name."""

    gid: str
    name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NamedEntity":
        return cls(gid=_gid(data), name=data.get("name") or "")


@dataclass(frozen=True)
class Membership:
    project: Optional[NamedEntity] = None
    section: Optional[NamedEntity] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Membership":
        return cls(
            project=_one(data, "project", NamedEntity.from_dict),
            section=_one(data, "section", NamedEntity.from_dict),
        )


@dataclass(frozen=True)
class Workspace:
    gid: str
    name: str = ""
    email_domains: Tuple[str, ...] = ()
    is_organization: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workspace":
        return cls(
            gid=_gid(data),
            name=data.get("name") or "",
            email_domains=tuple(data.get("email_domains") or ()),
            is_organization=bool(data.get("is_organization")),
        )


@dataclass(frozen=True)
class User:
    gid: str
    name: str = ""
    email: str = ""
    photo: Optional[Dict[str, str]] = None
    workspaces: Tuple[NamedEntity, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            gid=_gid(data),
            name=data.get("name") or "",
            email=data.get("email") or "",
            photo=data.get("photo") or None,
            workspaces=_many(data, "workspaces", NamedEntity.from_dict),
        )


@dataclass(frozen=True)
class EnumOption:
    gid: str
    name: str = ""
    enabled: bool = True
    color: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnumOption":
        return cls(
            gid=_gid(data),
            name=data.get("name") or "",
            enabled=data.get("enabled", True) is not False,
            color=data.get("color") or "",
        )


@dataclass(frozen=True)
class CustomField:
    """
    Custom field definition, or a custom field value when embedded in a task.

    number_value, text_value, display_value and enum_value are only populated
    in the task-embedded form.
    """

    gid: str
    name: str = ""
    resource_subtype: str = ""
    description: str = ""
    enabled: Optional[bool] = None
    currency_code: str = ""
    custom_label: str = ""
    custom_label_position: str = ""
    number_value: Optional[float] = None
    text_value: Optional[str] = None
    display_value: Optional[str] = None
    enum_value: Optional[EnumOption] = None
    enum_options: Tuple[EnumOption, ...] = ()
    workspace: Optional[NamedEntity] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomField":
        number_value = data.get("number_value")
        workspace = data.get("workspace")
        if isinstance(workspace, str):
            workspace = {"gid": workspace}
        return cls(
            gid=_gid(data),
            name=data.get("name") or "",
            resource_subtype=data.get("resource_subtype") or data.get("type") or "",
            description=data.get("description") or "",
            enabled=data.get("enabled"),
            currency_code=data.get("currency_code") or "",
            custom_label=data.get("custom_label") or "",
            custom_label_position=data.get("custom_label_position") or "",
            number_value=float(number_value) if number_value is not None else None,
            text_value=data.get("text_value"),
            display_value=data.get("display_value"),
            enum_value=_one(data, "enum_value", EnumOption.from_dict),
            enum_options=_many(data, "enum_options", EnumOption.from_dict),
            workspace=NamedEntity.from_dict(workspace) if workspace else None,
        )


@dataclass(frozen=True)
class CustomFieldSettings:
    """Attachment of a custom field to a project or portfolio."""

    gid: str
    custom_field: Optional[CustomField] = None
    resource_type: str = ""
    is_important: bool = False
    parent: Optional[NamedEntity] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomFieldSettings":
        return cls(
            gid=_gid(data),
            custom_field=_one(data, "custom_field", CustomField.from_dict),
            resource_type=data.get("resource_type") or "",
            is_important=bool(data.get("is_important")),
            parent=_one(data, "parent", NamedEntity.from_dict),
        )


@dataclass(frozen=True)
class Project:
    gid: str
    name: str = ""
    custom_fields: Tuple[CustomField, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            gid=_gid(data),
            name=data.get("name") or "",
            custom_fields=_many(data, "custom_fields", CustomField.from_dict),
        )


@dataclass(frozen=True)
class Tag:
    gid: str
    name: str = ""
    color: str = ""
    permalink_url: str = ""
    workspace: Optional[Workspace] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tag":
        return cls(
            gid=_gid(data),
            name=data.get("name") or "",
            color=data.get("color") or "",
            permalink_url=data.get("permalink_url") or "",
            workspace=_one(data, "workspace", Workspace.from_dict),
        )


@dataclass(frozen=True)
class Task:
    gid: str
    name: str = ""
    assignee: Optional[NamedEntity] = None
    created_at: Optional[datetime] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    assignee_status: Union[AssigneeStatus, str] = AssigneeStatus.INBOX
    custom_fields: Tuple[CustomField, ...] = ()
    due_on: Optional[DueDate] = None
    due_at: Optional[datetime] = None
    external: Dict[str, Any] = field(default_factory=dict)
    followers: Tuple[User, ...] = ()
    hearted: bool = False
    hearts: Tuple[NamedEntity, ...] = ()
    num_hearts: int = 0
    modified_at: Optional[datetime] = None
    notes: str = ""
    projects: Tuple[Project, ...] = ()
    parent: Optional["Task"] = None
    workspace: Optional[NamedEntity] = None
    memberships: Tuple[Membership, ...] = ()
    tags: Tuple[Tag, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        due_on = data.get("due_on")
        return cls(
            gid=_gid(data),
            name=data.get("name") or "",
            assignee=_one(data, "assignee", NamedEntity.from_dict),
            created_at=parse_datetime(data.get("created_at")),
            completed=bool(data.get("completed")),
            completed_at=parse_datetime(data.get("completed_at")),
            assignee_status=AssigneeStatus.from_value(data.get("assignee_status")),
            custom_fields=_many(data, "custom_fields", CustomField.from_dict),
            due_on=DueDate.parse(due_on) if due_on else None,
            due_at=parse_datetime(data.get("due_at")),
            external=dict(data.get("external") or {}),
            followers=_many(data, "followers", User.from_dict),
            hearted=bool(data.get("hearted")),
            hearts=_many(data, "hearts", NamedEntity.from_dict),
            num_hearts=int(data.get("num_hearts") or 0),
            modified_at=parse_datetime(data.get("modified_at")),
            notes=data.get("notes") or "",
            projects=_many(data, "projects", Project.from_dict),
            parent=_one(data, "parent", Task.from_dict),
            workspace=_one(data, "workspace", NamedEntity.from_dict),
            memberships=_many(data, "memberships", Membership.from_dict),
            tags=_many(data, "tags", Tag.from_dict),
        )


@dataclass(frozen=True)
class Attachment:
    gid: str
    name: str = ""
    created_at: Optional[datetime] = None
    download_url: Optional[str] = None
    # One of asana, dropbox, gdrive, box
    host: Optional[str] = None
    parent: Optional[NamedEntity] = None
    view_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        return cls(
            gid=_gid(data),
            name=data.get("name") or "",
            created_at=parse_datetime(data.get("created_at")),
            download_url=data.get("download_url"),
            host=data.get("host"),
            parent=_one(data, "parent", NamedEntity.from_dict),
            view_url=data.get("view_url"),
        )


@dataclass(frozen=True)
class Story:
    gid: str = ""
    text: str = ""
    html_text: str = ""
    is_pinned: bool = False
    sticker_name: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Story":
        return cls(
            gid=_gid(data),
            text=data.get("text") or "",
            html_text=data.get("html_text") or "",
            is_pinned=bool(data.get("is_pinned")),
            sticker_name=data.get("sticker_name") or "",
            created_at=parse_datetime(data.get("created_at")),
        )


def decode_list(items: List[Any], factory: Callable[[Dict[str, Any]], T]) -> List[T]:
    """Decode a list of JSON objects, skipping nulls."""
    return [factory(item) for item in items if item]
