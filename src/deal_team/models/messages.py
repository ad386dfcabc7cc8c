"""
Conversation messages and file attachments.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import Field

from .base import CamelModel

MessageRole = Literal['user', 'model', 'system']


class FileAttachment(CamelModel):
    """
    A user-supplied file.

    ``data`` is a base64 data URI (``data:application/pdf;base64,JVBERi0...``),
    the form browsers and upload endpoints hand over.
    """

    name: str
    mime_type: str = Field(alias='type')
    data: str

    @property
    def base64_payload(self) -> str:
        """The raw base64 content with any data-URI prefix removed."""
        if self.data.startswith('data:') and ',' in self.data:
            return self.data.split(',', 1)[1]
        return self.data


class MessageAttachment(CamelModel):
    """Generated output attached to a message (image, chart, file)."""

    type: Literal['image', 'chart', 'file']
    url: str | None = None
    data: Any = None
    title: str | None = None


class Message(CamelModel):
    id: str
    deal_id: str | None = None
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    sender: str | None = None
    input_attachments: list[FileAttachment] = Field(default_factory=list)
    attachments: list[MessageAttachment] = Field(default_factory=list)
    suggested_actions: list[str] = Field(default_factory=list)
