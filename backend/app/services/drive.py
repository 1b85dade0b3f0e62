"""
Google Drive remote store client.

Thin wrapper over the Drive v3 API. Every method is one request/response
round-trip from the caller's point of view; retries are delegated to the
google-api-python-client via num_retries.

The client is shared across concurrently handled messages, so each request
executes on its own authorized HTTP object (httplib2.Http is not thread-safe).
"""

import json
import logging
import os
from functools import lru_cache
from io import BytesIO
from typing import Optional

import google_auth_httplib2
import httplib2
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload
from dotenv import load_dotenv

from app.models.drive import FOLDER_MIME_TYPE, DriveEntry, EntryKind, FileDescriptor

load_dotenv()

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]

_ENTRY_FIELDS = "id, name, mimeType, size, parents"
_DESCRIPTOR_FIELDS = "id, name, mimeType, parents, webViewLink"

# Google-native documents cannot be downloaded directly, only exported
_EXPORT_MIME_TYPES = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.presentation": "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
}


class DriveError(Exception):
    """A Drive API call failed (after the client's own retries)."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.message = message


def _escape_query_value(value: str) -> str:
    """Escape a string for use inside single quotes in a Drive query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def export_mime_type(mime_type: Optional[str]) -> Optional[str]:
    """Return the export format for a Google-native MIME type, else None."""
    if mime_type is None:
        return None
    return _EXPORT_MIME_TYPES.get(mime_type)


class DriveStore:
    """
    Remote store backed by Google Drive.

    Args:
        credentials: google-auth credentials with a Drive scope
        root_folder_id: Folder that all name lookups are relative to
            ("root" is the account's My Drive)
        num_retries: Passed to every request's execute()
    """

    def __init__(self, credentials, root_folder_id: str = "root", num_retries: int = 2):
        self._credentials = credentials
        self.root_folder_id = root_folder_id
        self._num_retries = num_retries
        self._service = build(
            "drive", "v3", credentials=credentials, cache_discovery=False
        )

    def _execute(self, operation: str, request):
        http = google_auth_httplib2.AuthorizedHttp(self._credentials, http=httplib2.Http())
        try:
            return request.execute(http=http, num_retries=self._num_retries)
        except HttpError as error:
            logger.error(f"Drive {operation} failed: {error}")
            raise DriveError(operation, str(error)) from error
        except (httplib2.HttpLib2Error, OSError) as error:
            logger.error(f"Drive {operation} could not reach the API: {error}")
            raise DriveError(operation, str(error)) from error

    def list_children(self, folder_id: str) -> list[DriveEntry]:
        """List every non-trashed child of a folder, following pagination."""
        query = f"'{_escape_query_value(folder_id)}' in parents and trashed = false"
        entries: list[DriveEntry] = []
        page_token = None
        while True:
            response = self._execute(
                "list",
                self._service.files().list(
                    q=query,
                    fields=f"nextPageToken, files({_ENTRY_FIELDS})",
                    orderBy="folder,name",
                    pageSize=1000,
                    pageToken=page_token,
                ),
            )
            entries.extend(DriveEntry.from_api(item) for item in response.get("files", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return entries

    def find_by_name(
        self,
        folder_id: str,
        name: str,
        kind: Optional[EntryKind] = None,
    ) -> list[DriveEntry]:
        """
        Query children of folder_id whose name equals name.

        Single page only. Drive's name comparison is case-insensitive, so
        callers must apply their own exact-match filter.
        """
        clauses = [
            f"'{_escape_query_value(folder_id)}' in parents",
            f"name = '{_escape_query_value(name)}'",
            "trashed = false",
        ]
        if kind is EntryKind.FOLDER:
            clauses.append(f"mimeType = '{FOLDER_MIME_TYPE}'")
        elif kind is EntryKind.FILE:
            clauses.append(f"mimeType != '{FOLDER_MIME_TYPE}'")

        response = self._execute(
            "find",
            self._service.files().list(
                q=" and ".join(clauses),
                fields=f"files({_ENTRY_FIELDS})",
                pageSize=100,
            ),
        )
        return [DriveEntry.from_api(item) for item in response.get("files", [])]

    def soft_delete(self, file_id: str) -> FileDescriptor:
        """Move a file to the trash. Nothing in this client deletes permanently."""
        response = self._execute(
            "trash",
            self._service.files().update(
                fileId=file_id,
                body={"trashed": True},
                fields=_DESCRIPTOR_FIELDS,
            ),
        )
        return FileDescriptor.from_api(response)

    def reparent(self, file_id: str, new_parent_id: str, previous_parent_id: str) -> FileDescriptor:
        """Move a file to another folder in a single update call."""
        response = self._execute(
            "move",
            self._service.files().update(
                fileId=file_id,
                addParents=new_parent_id,
                removeParents=previous_parent_id,
                fields=_DESCRIPTOR_FIELDS,
            ),
        )
        return FileDescriptor.from_api(response)

    def rename(self, file_id: str, new_name: str) -> FileDescriptor:
        response = self._execute(
            "rename",
            self._service.files().update(
                fileId=file_id,
                body={"name": new_name},
                fields=_DESCRIPTOR_FIELDS,
            ),
        )
        return FileDescriptor.from_api(response)

    def create_file(
        self,
        folder_id: str,
        name: str,
        content: bytes,
        mime_type: str = "application/octet-stream",
    ) -> FileDescriptor:
        """Create a new file. Existing files with the same name are left alone."""
        media = MediaIoBaseUpload(BytesIO(content), mimetype=mime_type, resumable=False)
        response = self._execute(
            "upload",
            self._service.files().create(
                body={"name": name, "parents": [folder_id]},
                media_body=media,
                fields=_DESCRIPTOR_FIELDS,
            ),
        )
        return FileDescriptor.from_api(response)

    def download_content(self, file_id: str, mime_type: Optional[str] = None) -> bytes:
        """Download file bytes, exporting Google-native documents to text."""
        export_as = export_mime_type(mime_type)
        if export_as:
            request = self._service.files().export_media(fileId=file_id, mimeType=export_as)
        else:
            request = self._service.files().get_media(fileId=file_id)
        return self._execute("download", request)


def _load_credentials():
    raw = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON")
    if not raw:
        raise ValueError("GOOGLE_SERVICE_ACCOUNT_JSON must be set for Drive access")

    credentials = service_account.Credentials.from_service_account_info(
        json.loads(raw), scopes=SCOPES
    )
    # Act on a user's My Drive through domain-wide delegation when configured
    delegated_user = os.getenv("GOOGLE_DELEGATED_USER")
    if delegated_user:
        credentials = credentials.with_subject(delegated_user)
    return credentials


@lru_cache()
def get_drive_store() -> DriveStore:
    """Build the process-wide Drive client from environment variables."""
    return DriveStore(
        _load_credentials(),
        root_folder_id=os.getenv("DRIVE_ROOT_FOLDER_ID", "root"),
        num_retries=int(os.getenv("DRIVE_NUM_RETRIES", "2")),
    )
