"""
Shared test doubles for the command pipeline.

FakeDriveStore mimics the DriveStore interface in memory and records every
call, so tests can assert which remote operations ran and in what order.
"""

import os
from typing import Optional

import pytest

# Keep app imports from reading a developer's real credentials
os.environ.setdefault("CHAT_PROVIDER", "telegram")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test-bot-token")

from app.models.drive import DriveEntry, EntryKind, FileDescriptor, FOLDER_MIME_TYPE


class FakeDriveStore:
    """In-memory Drive: a root folder with named subfolders holding files."""

    def __init__(self, root_folder_id: str = "root"):
        self.root_folder_id = root_folder_id
        self.entries: dict[str, DriveEntry] = {}
        self.contents: dict[str, bytes] = {}
        self.trashed: set[str] = set()
        self.calls: list[tuple] = []
        self._next_id = 0

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    # -- setup helpers -----------------------------------------------------

    def add_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        folder_id = self._new_id("folder")
        self.entries[folder_id] = DriveEntry(
            id=folder_id,
            name=name,
            kind=EntryKind.FOLDER,
            mime_type=FOLDER_MIME_TYPE,
            parent_id=parent_id or self.root_folder_id,
        )
        return folder_id

    def add_file(
        self,
        folder_id: str,
        name: str,
        content: bytes = b"hello",
        mime_type: str = "text/plain",
        size: Optional[int] = None,
    ) -> str:
        file_id = self._new_id("file")
        self.entries[file_id] = DriveEntry(
            id=file_id,
            name=name,
            kind=EntryKind.FILE,
            mime_type=mime_type,
            size=len(content) if size is None else size,
            parent_id=folder_id,
        )
        self.contents[file_id] = content
        return file_id

    def children_of(self, folder_id: str) -> list[DriveEntry]:
        return [
            e for e in self.entries.values()
            if e.parent_id == folder_id and e.id not in self.trashed
        ]

    def _descriptor(self, file_id: str) -> FileDescriptor:
        entry = self.entries[file_id]
        return FileDescriptor(
            id=entry.id,
            name=entry.name,
            parent_id=entry.parent_id,
            mime_type=entry.mime_type,
        )

    # -- DriveStore interface ---------------------------------------------

    def list_children(self, folder_id: str) -> list[DriveEntry]:
        self.calls.append(("list_children", folder_id))
        return self.children_of(folder_id)

    def find_by_name(self, folder_id: str, name: str, kind: Optional[EntryKind] = None):
        self.calls.append(("find_by_name", folder_id, name))
        # Drive's name filter ignores case
        return [
            e for e in self.children_of(folder_id)
            if e.name.lower() == name.lower() and (kind is None or e.kind is kind)
        ]

    def soft_delete(self, file_id: str) -> FileDescriptor:
        self.calls.append(("soft_delete", file_id))
        self.trashed.add(file_id)
        return self._descriptor(file_id)

    def reparent(self, file_id: str, new_parent_id: str, previous_parent_id: str) -> FileDescriptor:
        self.calls.append(("reparent", file_id, new_parent_id, previous_parent_id))
        self.entries[file_id] = self.entries[file_id].model_copy(update={"parent_id": new_parent_id})
        return self._descriptor(file_id)

    def rename(self, file_id: str, new_name: str) -> FileDescriptor:
        self.calls.append(("rename", file_id, new_name))
        self.entries[file_id] = self.entries[file_id].model_copy(update={"name": new_name})
        return self._descriptor(file_id)

    def create_file(self, folder_id: str, name: str, content: bytes, mime_type: str = "application/octet-stream"):
        self.calls.append(("create_file", folder_id, name))
        file_id = self.add_file(folder_id, name, content, mime_type)
        return self._descriptor(file_id)

    def download_content(self, file_id: str, mime_type: Optional[str] = None) -> bytes:
        self.calls.append(("download_content", file_id))
        return self.contents[file_id]

    def method_names_called(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakeSummarizer:
    """Summarizer double: returns '- summary of <text>' or raises for chosen inputs."""

    def __init__(self, failures: Optional[dict[bytes, Exception]] = None):
        self.failures = failures or {}
        self.seen: list[bytes] = []

    def summarize_document(self, content: bytes, mime_hint: str) -> str:
        self.seen.append(content)
        if content in self.failures:
            raise self.failures[content]
        return f"- summary of {content.decode()}"


@pytest.fixture
def store():
    return FakeDriveStore()


@pytest.fixture
def summarizer():
    return FakeSummarizer()
