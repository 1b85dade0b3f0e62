"""
Folder/file name resolution against the remote store.

One name query per call, nothing cached: each message resolves from scratch.

Duplicate names: Drive allows several entries with the same name in one
folder, and its name filter is case-insensitive. Resolution keeps only exact,
case-sensitive matches and then takes the first one in query order. Duplicates
are neither de-duplicated nor reported as an error.
"""

from typing import Union

from app.models.drive import EntryKind, ResolvedFile, ResolvedFolder
from app.models.outcome import NotFound


def resolve_folder(store, name: str, role: str | None = None) -> Union[ResolvedFolder, NotFound]:
    """
    Find a folder by display name directly under the store's root folder.

    Args:
        store: Remote store client (DriveStore or a test double)
        name: Exact folder name
        role: Optional label copied into NotFound (e.g. "destination")
    """
    candidates = store.find_by_name(store.root_folder_id, name, kind=EntryKind.FOLDER)
    for entry in candidates:
        if entry.name == name:
            return ResolvedFolder(id=entry.id, name=entry.name)
    return NotFound(what="folder", name=name, role=role)


def resolve_file(store, folder: ResolvedFolder, name: str) -> Union[ResolvedFile, NotFound]:
    """Find a file by display name inside an already resolved folder."""
    candidates = store.find_by_name(folder.id, name, kind=EntryKind.FILE)
    for entry in candidates:
        if entry.name == name:
            return ResolvedFile(
                id=entry.id,
                name=entry.name,
                parent_id=folder.id,
                mime_type=entry.mime_type,
                size=entry.size,
            )
    return NotFound(what="file", name=name)
