#!/usr/bin/env python3
"""
Asana Attachment Operations

Upload files to tasks, fetch attachment metadata and list a task's attachments.
Uploads sniff their content type from the leading bytes of the stream so that
callers can hand over any readable object without naming a MIME type.
"""

import io
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

from .errors import AsanaDecodeError, AsanaValidationError
from .infrastructure import (
    AsanaTransport,
    get_client,
    load_json,
    require_gid,
    unwrap_single,
    with_api_error_handling,
)
from .models import Attachment, decode_list
from .pagination import with_opt_fields

# Configure logging
logger = logging.getLogger(__name__)

SNIFF_LENGTH = 512

DEFAULT_CONTENT_TYPE = "application/octet-stream"

UPLOAD_OPT_FIELDS = ("name", "view_url")

ATTACHMENT_OPT_FIELDS = (
    "name",
    "created_at",
    "download_url",
    "host",
    "parent.name",
    "view_url",
)

# Leading-byte signatures, checked in order
_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"Rar!\x1a\x07", "application/x-rar-compressed"),
    (b"OggS\x00", "application/ogg"),
    (b"ID3", "audio/mpeg"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
)

_HTML_PREFIXES = (b"<!doctype html", b"<html", b"<head", b"<body")

# Control bytes other than whitespace mark content as binary
_TEXT_CONTROL_ALLOWED = {0x09, 0x0A, 0x0C, 0x0D, 0x1B}


# ============================================================================
# Content sniffing
# ============================================================================

class PrefixedReader(io.RawIOBase):
    """
    Readable stream that replays an already-consumed prefix before the rest
    of the underlying stream, for sources that cannot seek back.
    """

    def __init__(self, prefix: bytes, rest: Any):
        self._prefix = prefix
        self._rest = rest

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._prefix:
            n = min(len(buffer), len(self._prefix))
            buffer[:n] = self._prefix[:n]
            self._prefix = self._prefix[n:]
            return n
        chunk = self._rest.read(len(buffer))
        if not chunk:
            return 0
        n = len(chunk)
        buffer[:n] = chunk
        return n


def _is_binary(prefix: bytes) -> bool:
    return any(b < 0x20 and b not in _TEXT_CONTROL_ALLOWED for b in prefix)


def sniff_content_type(prefix: bytes, name: Optional[str] = None) -> str:
    """
    Guess a MIME type from the first bytes of a file.

    Known binary signatures win, then HTML and plain text, then the
    file name's extension, and finally application/octet-stream.
    """
    for signature, content_type in _SIGNATURES:
        if prefix.startswith(signature):
            return content_type
    if prefix[:4] == b"RIFF" and prefix[8:12] == b"WEBP":
        return "image/webp"

    if prefix and not _is_binary(prefix):
        head = prefix.lstrip().lower()
        if head.startswith(_HTML_PREFIXES):
            return "text/html; charset=utf-8"
        if head.startswith(b"<?xml"):
            return "text/xml; charset=utf-8"
        return "text/plain; charset=utf-8"

    if name:
        guessed, _ = mimetypes.guess_type(name)
        if guessed:
            return guessed
    return DEFAULT_CONTENT_TYPE


def detect_content_type(body: Any, name: Optional[str] = None) -> Tuple[str, Any]:
    """
    Sniff the content type of a readable stream without losing any bytes.

    Reads up to SNIFF_LENGTH bytes. Seekable streams are rewound; anything
    else is wrapped so the sniffed prefix is replayed first.

    Returns:
        (content_type, reader) where reader yields the complete original content

    Raises:
        AsanaValidationError: If the stream is empty
    """
    prefix = body.read(SNIFF_LENGTH)
    if isinstance(prefix, str):
        raise AsanaValidationError("expecting a binary stream, got text")
    if not prefix:
        raise AsanaValidationError("expecting a non-empty body to sniff")

    content_type = sniff_content_type(prefix, name)

    seekable = getattr(body, "seekable", None)
    if callable(seekable) and seekable():
        try:
            body.seek(-len(prefix), io.SEEK_CUR)
            return content_type, body
        except (OSError, ValueError) as e:
            logger.debug(f"Could not rewind upload body, replaying prefix instead: {e}")

    return content_type, io.BufferedReader(PrefixedReader(prefix, body))


def _escape_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


# ============================================================================
# Upload
# ============================================================================

@dataclass
class AttachmentUpload:
    """
    A file to attach to a task.

    body is any binary file-like object. name is optional; a random UUID
    is used as the filename when it is blank.
    """

    body: Any = None
    task_id: str = ""
    name: str = ""

    def validate(self) -> None:
        if self.body is None:
            raise AsanaValidationError("expecting a non-nil body")
        require_gid(self.task_id, "taskID")

    def non_blank_filename(self) -> str:
        if self.name:
            return self.name
        return str(uuid.uuid4())


def build_multipart(upload: AttachmentUpload, content_type: str, reader: Any) -> Tuple[bytes, str]:
    """
    Encode the multipart/form-data body for an upload.

    Returns:
        (body, content_type_header) with the boundary included in the header
    """
    file_part = RequestField(
        name="file",
        data=reader.read(),
        headers={
            "Content-Disposition": (
                f'form-data; name="file"; type="{_escape_quotes(content_type)}"; '
                f'filename="{_escape_quotes(upload.non_blank_filename())}"'
            ),
            "Content-Type": content_type,
        },
    )
    return encode_multipart_formdata([file_part, ("type", content_type)])


@with_api_error_handling("uploading attachment to task {upload.task_id}")
def upload_attachment(
    upload: AttachmentUpload, client: Optional[AsanaTransport] = None
) -> Attachment:
    """
    Upload a file attachment to an Asana task.

    Raises:
        AsanaValidationError: If the upload has no body or a blank task id

    Example:
        with open('/path/to/screenshot.png', 'rb') as f:
            attachment = upload_attachment(
                AttachmentUpload(body=f, task_id='1234567890', name='screenshot.png')
            )
    """
    if upload is None:
        raise AsanaValidationError("expecting a non-nil body")
    upload.validate()
    task_gid = upload.task_id.strip()

    content_type, reader = detect_content_type(upload.body, upload.name)
    payload, multipart_type = build_multipart(upload, content_type, reader)

    client = client or get_client()
    url = client.build_url(with_opt_fields(f"/tasks/{task_gid}/attachments", UPLOAD_OPT_FIELDS))
    body, _ = client.authenticated_request(
        "POST", url, body=payload, headers={"Content-Type": multipart_type}
    )
    attachment = unwrap_single(body, Attachment.from_dict, "attachment")
    logger.info(f"Uploaded attachment '{attachment.name}' ({content_type}) to task {task_gid}")
    return attachment


# ============================================================================
# Lookup
# ============================================================================

@with_api_error_handling("fetching attachment {attachment_gid}")
def get_attachment(
    attachment_gid: str, client: Optional[AsanaTransport] = None
) -> Attachment:
    """
    Fetch attachment metadata by GID.

    Raises:
        AsanaValidationError: If attachment_gid is blank
        ResourceNotFoundError: If the API returns no attachment data
    """
    attachment_gid = require_gid(attachment_gid, "attachmentID")
    client = client or get_client()

    url = client.build_url(
        with_opt_fields(f"/attachments/{attachment_gid}", ATTACHMENT_OPT_FIELDS)
    )
    body, _ = client.authenticated_request("GET", url)
    return unwrap_single(body, Attachment.from_dict, "attachment", attachment_gid)


@with_api_error_handling("listing attachments for task {task_gid}")
def list_attachments_for_task(
    task_gid: str, client: Optional[AsanaTransport] = None
) -> List[Attachment]:
    """List every attachment on a task. Asana returns these in a single response."""
    task_gid = require_gid(task_gid, "taskID")
    client = client or get_client()

    url = client.build_url(
        with_opt_fields(f"/tasks/{task_gid}/attachments", ATTACHMENT_OPT_FIELDS)
    )
    body, _ = client.authenticated_request("GET", url)

    payload = load_json(body)
    items = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise AsanaDecodeError("expecting a JSON array in data for attachments")
    try:
        return decode_list(items, Attachment.from_dict)
    except (KeyError, TypeError, ValueError) as e:
        raise AsanaDecodeError(f"unexpected attachment shape: {e}") from e
