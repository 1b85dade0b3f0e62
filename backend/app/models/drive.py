"""
Pydantic models for Drive entries and resolved handles.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class EntryKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"


class DriveEntry(BaseModel):
    """A child of a Drive folder as returned by a listing or name query."""
    id: str
    name: str
    kind: EntryKind = EntryKind.FILE
    mime_type: Optional[str] = None
    size: Optional[int] = None
    parent_id: Optional[str] = None

    @classmethod
    def from_api(cls, item: dict) -> "DriveEntry":
        """Build an entry from a Drive v3 files resource dict."""
        mime_type = item.get("mimeType")
        parents = item.get("parents") or []
        size = item.get("size")
        return cls(
            id=item["id"],
            name=item.get("name", ""),
            kind=EntryKind.FOLDER if mime_type == FOLDER_MIME_TYPE else EntryKind.FILE,
            mime_type=mime_type,
            size=int(size) if size is not None else None,
            parent_id=parents[0] if parents else None,
        )


class FileDescriptor(BaseModel):
    """What a mutating Drive call reports back about the affected file."""
    id: str
    name: str
    parent_id: Optional[str] = None
    mime_type: Optional[str] = None
    web_view_link: Optional[str] = None

    @classmethod
    def from_api(cls, item: dict) -> "FileDescriptor":
        parents = item.get("parents") or []
        return cls(
            id=item["id"],
            name=item.get("name", ""),
            parent_id=parents[0] if parents else None,
            mime_type=item.get("mimeType"),
            web_view_link=item.get("webViewLink"),
        )


class ResolvedFolder(BaseModel):
    """A folder found by name under the Drive root. Valid for one message only."""
    id: str
    name: str


class ResolvedFile(BaseModel):
    """A file found by name inside a resolved folder. Valid for one message only."""
    id: str
    name: str
    parent_id: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
