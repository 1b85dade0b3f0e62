"""
Unit tests for the Google Drive store client.
The Drive discovery service is mocked; no real API calls.
"""

import json
from unittest.mock import MagicMock, Mock, patch

import httplib2
import pytest
from googleapiclient.errors import HttpError

from app.models.drive import FOLDER_MIME_TYPE, EntryKind
from app.services import drive
from app.services.drive import DriveError, DriveStore, _escape_query_value


@pytest.fixture
def service():
    with patch("app.services.drive.build") as mock_build, \
         patch("app.services.drive.google_auth_httplib2.AuthorizedHttp"):
        mock_service = MagicMock()
        mock_build.return_value = mock_service
        yield mock_service


@pytest.fixture
def drive_store(service):
    return DriveStore(Mock(), root_folder_id="root", num_retries=3)


def _http_error(status: int = 500) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b'{"error": {"message": "boom"}}')


class TestQueries:

    def test_escape_query_value(self):
        assert _escape_query_value("Bob's \\ files") == "Bob\\'s \\\\ files"

    def test_find_folder_by_name(self, service, drive_store):
        files = service.files.return_value
        files.list.return_value.execute.return_value = {
            "files": [{"id": "f1", "name": "Work", "mimeType": FOLDER_MIME_TYPE, "parents": ["root"]}]
        }

        result = drive_store.find_by_name("root", "Work", kind=EntryKind.FOLDER)

        assert [e.id for e in result] == ["f1"]
        assert result[0].kind is EntryKind.FOLDER
        query = files.list.call_args.kwargs["q"]
        assert "'root' in parents" in query
        assert "name = 'Work'" in query
        assert "trashed = false" in query
        assert f"mimeType = '{FOLDER_MIME_TYPE}'" in query

    def test_find_file_excludes_folders(self, service, drive_store):
        files = service.files.return_value
        files.list.return_value.execute.return_value = {"files": []}

        drive_store.find_by_name("f1", "it's.txt", kind=EntryKind.FILE)

        query = files.list.call_args.kwargs["q"]
        assert f"mimeType != '{FOLDER_MIME_TYPE}'" in query
        assert "name = 'it\\'s.txt'" in query

    def test_list_children_follows_pagination(self, service, drive_store):
        files = service.files.return_value
        files.list.return_value.execute.side_effect = [
            {"files": [{"id": "1", "name": "a.txt", "mimeType": "text/plain", "size": "12"}], "nextPageToken": "p2"},
            {"files": [{"id": "2", "name": "b.txt", "mimeType": "text/plain"}]},
        ]

        result = drive_store.list_children("f1")

        assert [e.name for e in result] == ["a.txt", "b.txt"]
        assert result[0].size == 12
        assert files.list.call_args_list[1].kwargs["pageToken"] == "p2"

    def test_execute_passes_retries(self, service, drive_store):
        request = service.files.return_value.list.return_value
        request.execute.return_value = {"files": []}

        drive_store.find_by_name("root", "x")

        assert request.execute.call_args.kwargs["num_retries"] == 3


class TestMutations:

    def test_soft_delete_trashes_and_never_deletes(self, service, drive_store):
        files = service.files.return_value
        files.update.return_value.execute.return_value = {"id": "x1", "name": "old.txt", "parents": ["f1"]}

        result = drive_store.soft_delete("x1")

        assert result.id == "x1"
        assert files.update.call_args.kwargs["body"] == {"trashed": True}
        files.delete.assert_not_called()

    def test_reparent_is_a_single_update(self, service, drive_store):
        files = service.files.return_value
        files.update.return_value.execute.return_value = {"id": "x1", "name": "a.pdf", "parents": ["dst"]}

        result = drive_store.reparent("x1", "dst", "src")

        files.update.assert_called_once()
        kwargs = files.update.call_args.kwargs
        assert kwargs["addParents"] == "dst"
        assert kwargs["removeParents"] == "src"
        assert result.parent_id == "dst"

    def test_rename(self, service, drive_store):
        files = service.files.return_value
        files.update.return_value.execute.return_value = {"id": "x1", "name": "New.jpg"}

        assert drive_store.rename("x1", "New.jpg").name == "New.jpg"
        assert files.update.call_args.kwargs["body"] == {"name": "New.jpg"}

    def test_create_file(self, service, drive_store):
        files = service.files.return_value
        files.create.return_value.execute.return_value = {
            "id": "n1", "name": "a.pdf", "parents": ["f1"], "webViewLink": "https://drive/x",
        }

        result = drive_store.create_file("f1", "a.pdf", b"%PDF", "application/pdf")

        assert result.web_view_link == "https://drive/x"
        assert files.create.call_args.kwargs["body"] == {"name": "a.pdf", "parents": ["f1"]}

    def test_http_error_becomes_drive_error(self, service, drive_store):
        service.files.return_value.update.return_value.execute.side_effect = _http_error(403)

        with pytest.raises(DriveError) as exc_info:
            drive_store.rename("x1", "b")

        assert exc_info.value.operation == "rename"


class TestDownload:

    def test_binary_file_uses_get_media(self, service, drive_store):
        files = service.files.return_value
        files.get_media.return_value.execute.return_value = b"bytes"

        assert drive_store.download_content("x1", "application/pdf") == b"bytes"
        files.get_media.assert_called_once_with(fileId="x1")
        files.export_media.assert_not_called()

    def test_google_doc_is_exported_as_text(self, service, drive_store):
        files = service.files.return_value
        files.export_media.return_value.execute.return_value = b"doc text"

        assert drive_store.download_content("d1", "application/vnd.google-apps.document") == b"doc text"
        files.export_media.assert_called_once_with(fileId="d1", mimeType="text/plain")


class TestGetDriveStore:

    def test_requires_service_account_json(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_JSON", raising=False)
        drive.get_drive_store.cache_clear()
        with pytest.raises(ValueError, match="GOOGLE_SERVICE_ACCOUNT_JSON"):
            drive.get_drive_store()

    def test_builds_from_env(self, monkeypatch, service):
        monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT_JSON", json.dumps({"type": "service_account"}))
        monkeypatch.setenv("DRIVE_ROOT_FOLDER_ID", "shared-root")
        monkeypatch.delenv("GOOGLE_DELEGATED_USER", raising=False)
        drive.get_drive_store.cache_clear()

        with patch("app.services.drive.service_account.Credentials.from_service_account_info") as mock_creds:
            store = drive.get_drive_store()

        drive.get_drive_store.cache_clear()
        assert store.root_folder_id == "shared-root"
        mock_creds.assert_called_once_with({"type": "service_account"}, scopes=drive.SCOPES)
